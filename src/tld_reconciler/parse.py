"""
Format parsers for the three IANA sources.

Turns the plain-text TLD list, the RDAP bootstrap ``services`` array and
the Root Zone Database HTML page into normalized records. Malformed
elements are skipped (and logged where useful); a bad element never aborts
parsing of the rest.
"""

import json
import re
from typing import Any, Optional

from selectolax.lexbor import LexborHTMLParser

from .diagnostics import DiagnosticLogger, get_default_logger
from .enums import TldCategory
from .idn import is_punycode, to_unicode
from .models import BootstrapService, RegistryEntry


COMPONENT = "parse"

NOT_ASSIGNED = "Not assigned"

# Bidirectional text-direction markers wrapped around RTL labels in the HTML
BIDI_MARKERS_PATTERN = re.compile(r"[\u200e\u200f\u202a-\u202e\u2066-\u2069]")


def is_country_code(label: str) -> bool:
    """
    Determine whether a label has the shape of a country-code TLD.

    ASCII labels are country-code when exactly two characters long. Punycode
    labels are decoded first and count as country-code when the Unicode form
    has exactly two code points. A label that fails to decode is generic.

    Args:
        label: TLD label (lowercase, no leading dot)

    Returns:
        True if the label looks like a ccTLD, False otherwise
    """
    if is_punycode(label):
        try:
            decoded = to_unicode(label)
        except UnicodeError:
            return False
        return len(decoded) == 2
    return len(label) == 2


def normalize_label(raw: str) -> str:
    """Strip a leading dot and lowercase a bootstrap label."""
    return raw[1:].lower() if raw.startswith(".") else raw.lower()


def parse_tld_list(text: str) -> list[str]:
    """
    Parse the IANA plain-text TLD list.

    Lines are trimmed and lowercased; empty lines and ``#`` comment lines
    (the version/timestamp header) are dropped.

    Args:
        text: Content of tlds-alpha-by-domain.txt

    Returns:
        TLD labels in file order
    """
    labels = []
    for line in text.strip().split("\n"):
        label = line.strip().lower()
        if label and not label.startswith("#"):
            labels.append(label)
    return labels


def parse_bootstrap(services: Any) -> list[str]:
    """
    Collect every TLD label from an RDAP bootstrap ``services`` array.

    Each service is expected as ``[[labels...], [servers...]]``. Non-list
    services, non-list label lists and non-string labels are skipped.

    Args:
        services: The ``services`` value of the bootstrap JSON

    Returns:
        Labels (leading dot stripped, lowercased) in file order
    """
    labels: list[str] = []
    if not isinstance(services, list):
        return labels

    for service in services:
        if not isinstance(service, list) or len(service) < 1:
            continue
        service_labels = service[0]
        if not isinstance(service_labels, list):
            continue
        for label in service_labels:
            if isinstance(label, str):
                labels.append(normalize_label(label))

    return labels


def parse_bootstrap_services(
    services: Any,
    logger: Optional[DiagnosticLogger] = None,
) -> list[BootstrapService]:
    """
    Parse the bootstrap ``services`` array into label/server groupings.

    Entries with fewer than two elements or with a non-list label or server
    list are skipped and logged. Non-string labels and servers are dropped.

    Args:
        services: The ``services`` value of the bootstrap JSON
        logger: Optional diagnostic logger

    Returns:
        One BootstrapService per well-formed entry, in file order
    """
    logger = logger or get_default_logger()
    result: list[BootstrapService] = []
    if not isinstance(services, list):
        logger.warn(COMPONENT, "Bootstrap services is not a list", {"type": type(services).__name__})
        return result

    for index, service in enumerate(services):
        if (
            not isinstance(service, list)
            or len(service) < 2
            or not isinstance(service[0], list)
            or not isinstance(service[1], list)
        ):
            logger.warn(COMPONENT, "Skipping malformed bootstrap service", {"index": index})
            continue

        labels = [normalize_label(label) for label in service[0] if isinstance(label, str)]
        servers = [server for server in service[1] if isinstance(server, str)]
        result.append(BootstrapService(labels=labels, servers=servers))

    return result


def load_bootstrap_services(content: str) -> list:
    """
    Decode bootstrap JSON text and return its raw ``services`` array.

    Returns an empty list when the document has no services array.

    Raises:
        json.JSONDecodeError: If the content is not valid JSON
    """
    data = json.loads(content)
    if isinstance(data, dict) and isinstance(data.get("services"), list):
        return data["services"]
    return []


def clean_registry_label(text: str) -> str:
    """Remove direction markers and dots from anchor text, then lowercase."""
    return BIDI_MARKERS_PATTERN.sub("", text).replace(".", "").strip().lower()


def parse_registry_table(
    html: str,
    logger: Optional[DiagnosticLogger] = None,
) -> list[RegistryEntry]:
    """
    Parse the Root Zone Database HTML table.

    The table is located by ``table#tld-table``. For each row the label is
    read from the ``span.domain.tld a`` anchor in the first cell, the
    category from the second cell and the manager from the third. A manager
    of "Not assigned" marks the TLD as undelegated.

    Rows without a label anchor, with missing cells, with empty label text
    or with an unrecognized category are dropped and logged.

    Args:
        html: Root Zone Database page HTML
        logger: Optional diagnostic logger

    Returns:
        RegistryEntry list in table order
    """
    logger = logger or get_default_logger()
    tree = LexborHTMLParser(html)
    table = tree.css_first("table#tld-table")
    if table is None:
        logger.log_error(COMPONENT, "TLD table not found in Root Zone Database HTML")
        return []

    entries: list[RegistryEntry] = []
    for index, row in enumerate(table.css("tr")):
        cells = row.css("td")
        if not cells:
            continue  # header row

        if len(cells) < 2:
            logger.warn(COMPONENT, "Skipping registry row with missing cells", {"row": index})
            continue

        anchor = cells[0].css_first("span.domain.tld a")
        if anchor is None:
            logger.warn(COMPONENT, "Skipping registry row without label anchor", {"row": index})
            continue

        label = clean_registry_label(anchor.text())
        if not label:
            logger.warn(COMPONENT, "Skipping registry row with empty label", {"row": index})
            continue

        category_text = cells[1].text(strip=True)
        category = TldCategory.from_text(category_text)
        if category is None:
            logger.warn(
                COMPONENT,
                "Skipping registry row with unknown category",
                {"row": index, "tld": label, "category": category_text},
            )
            continue

        manager: Optional[str] = None
        delegated = True
        if len(cells) >= 3:
            manager_text = " ".join(cells[2].text().split())
            if manager_text == NOT_ASSIGNED:
                delegated = False
            elif manager_text:
                manager = manager_text

        entries.append(RegistryEntry(
            label=label,
            category=category,
            delegated=delegated,
            manager=manager,
        ))

    return entries


def tld_list_content_changed(old: Optional[str], new: str) -> bool:
    """
    Check whether a TLD list changed beyond its comment header.

    Args:
        old: Previously stored content, or None if nothing is stored
        new: Freshly downloaded content

    Returns:
        True if the set or order of TLDs differs, False if only the
        version/timestamp comment changed
    """
    if old is None:
        return True
    return parse_tld_list(old) != parse_tld_list(new)


def bootstrap_content_changed(old: Optional[str], new: str) -> bool:
    """
    Check whether the bootstrap file changed beyond its publication stamp.

    Only the ``services`` arrays are compared. Content that cannot be
    decoded counts as changed.

    Args:
        old: Previously stored content, or None if nothing is stored
        new: Freshly downloaded content

    Returns:
        True if the services differ or either side is unreadable
    """
    if old is None:
        return True
    try:
        old_data = json.loads(old)
        new_data = json.loads(new)
    except json.JSONDecodeError:
        return True
    if not isinstance(old_data, dict) or not isinstance(new_data, dict):
        return True
    return old_data.get("services") != new_data.get("services")
