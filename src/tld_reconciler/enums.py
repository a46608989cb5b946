"""
Enumeration types for the TLD reconciler.

These enums provide type-safe constants for TLD classification, source names,
error codes, and logging levels throughout the system.
"""

from enum import Enum
from typing import Optional


class TldCategory(Enum):
    """Classification of a TLD as published in the Root Zone Database."""

    COUNTRY_CODE = "country-code"
    GENERIC = "generic"
    SPONSORED = "sponsored"
    INFRASTRUCTURE = "infrastructure"
    TEST = "test"
    GENERIC_RESTRICTED = "generic-restricted"

    @classmethod
    def from_text(cls, raw: str) -> Optional["TldCategory"]:
        """
        Map the raw classification cell text to a category.

        Returns None for any text that is not one of the six known
        categories; callers skip such rows.
        """
        text = " ".join(raw.split()).lower()
        return _CATEGORY_BY_TEXT.get(text)


_CATEGORY_BY_TEXT = {
    "country-code": TldCategory.COUNTRY_CODE,
    "generic": TldCategory.GENERIC,
    "sponsored": TldCategory.SPONSORED,
    "infrastructure": TldCategory.INFRASTRUCTURE,
    "test": TldCategory.TEST,
    "generic-restricted": TldCategory.GENERIC_RESTRICTED,
}


class TldType(Enum):
    """Coarse TLD type used in the unified dataset."""

    GTLD = "gtld"
    CCTLD = "cctld"


class IdnFormat(Enum):
    """Encoding in which an IDN label is written."""

    ASCII = "ascii"  # punycode, xn-- prefixed
    UNICODE = "unicode"  # native, contains non-ASCII code points


class SourceName(Enum):
    """Upstream IANA data sources."""

    RDAP_BOOTSTRAP = "rdap_bootstrap"
    TLD_LIST = "tld_list"
    ROOT_ZONE_DB = "root_zone_db"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class FetchErrorCode(Enum):
    """Error codes for source downloads."""

    NETWORK_ERROR = "network_error"
    TLS_ERROR = "tls_error"
    TIMEOUT = "timeout"
    HTTP_ERROR = "http_error"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"


class ValidationErrorCode(Enum):
    """Error codes for upstream structural validation failures."""

    INVALID_JSON = "invalid_json"
    NOT_AN_OBJECT = "not_an_object"
    MISSING_SERVICES = "missing_services"
    EMPTY_CONTENT = "empty_content"
    INVALID_TLD_FORMAT = "invalid_tld_format"
    NOT_HTML = "not_html"
    MISSING_TITLE = "missing_title"
    MISSING_TABLE = "missing_table"
    NO_ENTRIES = "no_entries"
    MISSING_CATEGORY = "missing_category"


class UpdateStatus(Enum):
    """Outcome of refreshing one source."""

    DOWNLOADED = "downloaded"  # new content validated and saved
    NOT_MODIFIED = "not_modified"  # 304 or max-age still fresh
    CONTENT_UNCHANGED = "content_unchanged"  # only the timestamp header moved
    FAILED = "failed"
