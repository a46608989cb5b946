"""
Cross-source reconciliation.

The Root Zone Database is the sole authority for country-code
classification. This module turns its entries into lookups keyed by both
the Unicode and the ASCII-compatible form of every label, so the other
sources can be classified regardless of which encoding they use.
"""

from collections import Counter
from typing import Iterable, Optional, TypeVar

from .diagnostics import DiagnosticLogger, get_default_logger
from .enums import TldCategory
from .idn import is_punycode, to_ascii
from .models import BootstrapService, RegistryEntry


COMPONENT = "reconcile"

T = TypeVar("T")


def build_cctld_lookup(
    entries: Iterable[RegistryEntry],
    logger: Optional[DiagnosticLogger] = None,
) -> frozenset[str]:
    """
    Build the set of country-code labels in both encodings.

    Every country-code entry contributes its own label; labels not already
    in Punycode form also contribute their ASCII-compatible encoding.
    Encoding failures are logged and skipped.

    Args:
        entries: Parsed Root Zone Database entries
        logger: Optional diagnostic logger

    Returns:
        Immutable set of country-code labels
    """
    logger = logger or get_default_logger()
    cctlds: set[str] = set()

    for entry in entries:
        if entry.category is not TldCategory.COUNTRY_CODE:
            continue
        cctlds.add(entry.label)
        if is_punycode(entry.label):
            continue
        try:
            cctlds.add(to_ascii(entry.label))
        except UnicodeError as e:
            logger.log_error(
                COMPONENT,
                f"Failed to convert ccTLD '{entry.label}' to punycode",
                error=e,
            )

    return frozenset(cctlds)


def index_both_forms(
    entries: Iterable[RegistryEntry],
    value_of,
    logger: Optional[DiagnosticLogger] = None,
) -> dict[str, T]:
    """
    Index a per-entry value under each entry's label and its ASCII form.

    Args:
        entries: Registry entries to index
        value_of: Callable mapping an entry to the value stored for it
        logger: Optional diagnostic logger

    Returns:
        Mapping from label (either encoding) to value
    """
    logger = logger or get_default_logger()
    index: dict[str, T] = {}

    for entry in entries:
        value = value_of(entry)
        index[entry.label] = value
        if is_punycode(entry.label):
            continue
        try:
            index[to_ascii(entry.label)] = value
        except UnicodeError as e:
            logger.debug(
                COMPONENT,
                f"No ASCII form for '{entry.label}'",
                {"error_message": str(e)},
            )

    return index


def find_duplicate_bootstrap_labels(services: Iterable[BootstrapService]) -> dict[str, int]:
    """
    Find labels that occur in more than one bootstrap service.

    Args:
        services: Parsed bootstrap services

    Returns:
        Mapping of duplicated label to the number of services listing it
    """
    counts: Counter = Counter()
    for service in services:
        for label in set(service.labels):
            counts[label] += 1
    return {label: count for label, count in sorted(counts.items()) if count > 1}
