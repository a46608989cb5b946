"""
Structural validation of downloaded upstream files.

Each validator takes the raw bytes of one IANA source and either returns the
decoded content or raises ValidationError. Counts far from the expected size
of the root zone only produce a warning, since IANA data legitimately grows.
"""

import json
import re
from typing import Optional

from selectolax.lexbor import LexborHTMLParser

from .diagnostics import DiagnosticLogger, get_default_logger
from .enums import ValidationErrorCode
from .exceptions import ValidationError


COMPONENT = "validators"

EXPECTED_TLD_COUNT = 1500
EXPECTED_RDAP_SERVICE_COUNT = 1000
VARIANCE_THRESHOLD = 0.5

TLD_FORMAT_PATTERN = re.compile(r"^[a-zA-Z0-9-]+$")


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _raise(code: ValidationErrorCode, message: str, details: Optional[dict] = None) -> None:
    raise ValidationError(code=code.value, message=message, details=details)


def _check_range(
    count: int,
    expected: int,
    what: str,
    logger: DiagnosticLogger,
) -> None:
    min_expected = expected * (1 - VARIANCE_THRESHOLD)
    max_expected = expected * (1 + VARIANCE_THRESHOLD)
    if count < min_expected or count > max_expected:
        logger.warn(
            COMPONENT,
            f"{what} ({count}) is outside expected range ({min_expected:.0f}-{max_expected:.0f})",
            {"count": count, "min": min_expected, "max": max_expected},
        )


def validate_bootstrap(data: bytes, logger: Optional[DiagnosticLogger] = None) -> dict:
    """
    Validate the RDAP bootstrap JSON.

    Args:
        data: Raw downloaded bytes
        logger: Optional diagnostic logger

    Returns:
        The decoded JSON object

    Raises:
        ValidationError: If the content is not JSON, not an object, or has
            no ``services`` array
    """
    logger = logger or get_default_logger()
    try:
        document = json.loads(_decode(data))
    except json.JSONDecodeError as e:
        _raise(
            ValidationErrorCode.INVALID_JSON,
            f"Invalid JSON in RDAP bootstrap file: {e}",
        )

    if not isinstance(document, dict):
        _raise(ValidationErrorCode.NOT_AN_OBJECT, "RDAP bootstrap file is not a valid JSON object")

    services = document.get("services")
    if not isinstance(services, list):
        _raise(ValidationErrorCode.MISSING_SERVICES, "RDAP bootstrap file missing 'services' array")

    _check_range(len(services), EXPECTED_RDAP_SERVICE_COUNT, "RDAP service count", logger)
    logger.info(COMPONENT, f"Validated RDAP bootstrap file: {len(services)} services")
    return document


def validate_tld_list(data: bytes, logger: Optional[DiagnosticLogger] = None) -> str:
    """
    Validate the plain-text TLD list.

    Args:
        data: Raw downloaded bytes
        logger: Optional diagnostic logger

    Returns:
        The decoded text

    Raises:
        ValidationError: If the file is empty or a line is not a valid label
    """
    logger = logger or get_default_logger()
    text = _decode(data)
    if not text.strip():
        _raise(ValidationErrorCode.EMPTY_CONTENT, "TLD list file is empty")

    tlds = [
        line.strip() for line in text.split("\n")
        if line.strip() and not line.strip().startswith("#")
    ]

    _check_range(len(tlds), EXPECTED_TLD_COUNT, "TLD count", logger)

    invalid = [tld for tld in tlds if not TLD_FORMAT_PATTERN.match(tld)]
    if invalid:
        _raise(
            ValidationErrorCode.INVALID_TLD_FORMAT,
            f"Invalid TLD format found: {', '.join(invalid[:5])}",
            {"invalid": invalid[:5], "invalid_count": len(invalid)},
        )

    logger.info(COMPONENT, f"Validated TLD list: {len(tlds)} TLDs")
    return text


def validate_registry_html(data: bytes, logger: Optional[DiagnosticLogger] = None) -> str:
    """
    Validate the Root Zone Database HTML page.

    Args:
        data: Raw downloaded bytes
        logger: Optional diagnostic logger

    Returns:
        The decoded HTML

    Raises:
        ValidationError: If the page is empty, not HTML, lacks the expected
            title or TLD table, has no TLD rows, or lacks generic or
            country-code rows
    """
    logger = logger or get_default_logger()
    text = _decode(data)
    if not text.strip():
        _raise(ValidationErrorCode.EMPTY_CONTENT, "Root Zone DB file is empty")

    lowered = text.lower()
    if "<html" not in lowered and "<!doctype html>" not in lowered:
        _raise(ValidationErrorCode.NOT_HTML, "Root Zone DB file is not valid HTML")

    tree = LexborHTMLParser(text)

    title = tree.css_first("title")
    if title is None or "Root Zone Database" not in title.text():
        _raise(ValidationErrorCode.MISSING_TITLE, "Root Zone DB file missing expected title")

    if tree.css_first("table#tld-table") is None:
        _raise(ValidationErrorCode.MISSING_TABLE, "Root Zone DB file missing TLD table")

    tld_count = len(tree.css('span.domain.tld a[href^="/domains/root/db/"]'))
    if tld_count == 0:
        _raise(ValidationErrorCode.NO_ENTRIES, "Root Zone DB file contains no TLD entries")

    _check_range(tld_count, EXPECTED_TLD_COUNT, "Root Zone DB TLD count", logger)

    cell_texts = {cell.text(strip=True) for cell in tree.css("td")}
    if "generic" not in cell_texts:
        _raise(ValidationErrorCode.MISSING_CATEGORY, "Root Zone DB file missing generic TLD entries")
    if "country-code" not in cell_texts:
        _raise(
            ValidationErrorCode.MISSING_CATEGORY,
            "Root Zone DB file missing country-code TLD entries",
        )

    logger.info(COMPONENT, f"Validated Root Zone DB: {tld_count} TLDs")
    return text
