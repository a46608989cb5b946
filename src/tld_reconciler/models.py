"""
Data models for the TLD reconciler.

This module defines the normalized source records, the unified dataset
artifact, analysis results, supplemental data, and download metadata.
Every result type exposes ``to_dict()`` producing the JSON shape consumed by
the CLI and the HTTP API.
"""

from dataclasses import dataclass, field
from typing import Optional

from .enums import TldCategory, TldType


# ============================================================================
# Source records
# ============================================================================

@dataclass
class BootstrapService:
    """One service grouping from the RDAP bootstrap file."""

    labels: list[str]
    servers: list[str]


@dataclass
class RegistryEntry:
    """One row of the Root Zone Database table."""

    label: str  # Unicode form when the table shows Unicode
    category: TldCategory
    delegated: bool
    manager: Optional[str] = None  # only set when delegated


@dataclass
class ManualOverrideEntry:
    """Curated ccTLD RDAP server absent from the bootstrap file."""

    tld: str
    rdap_server: str
    backend_operator: str
    date_updated: str
    source: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "tld": self.tld,
            "rdapServer": self.rdap_server,
            "backendOperator": self.backend_operator,
            "dateUpdated": self.date_updated,
            "source": self.source,
            "notes": self.notes,
        }


@dataclass
class ManagerAliasEntry:
    """A raw TLD manager name contributing to an alias group."""

    name: str
    source: Optional[str] = None


@dataclass
class SupplementalData:
    """Manually curated data folded into the unified dataset."""

    cctld_rdap_servers: list[ManualOverrideEntry] = field(default_factory=list)
    manager_aliases: dict[str, list[ManagerAliasEntry]] = field(default_factory=dict)


# ============================================================================
# Unified dataset
# ============================================================================

@dataclass
class IdnPair:
    """ASCII-compatible and Unicode forms of an IDN label."""

    ascii: str
    unicode: str

    def to_dict(self) -> dict:
        return {"ascii": self.ascii, "unicode": self.unicode}


@dataclass
class UnifiedTldEntry:
    """A delegated TLD in the unified dataset."""

    tld: str
    type: TldType
    idn: Optional[IdnPair] = None
    tags: list[str] = field(default_factory=list)
    manager: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "tld": self.tld,
            "type": self.type.value,
            "idn": self.idn.to_dict() if self.idn else None,
            "tags": list(self.tags),
        }
        if self.manager is not None:
            data["manager"] = self.manager
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "UnifiedTldEntry":
        idn = data.get("idn")
        return cls(
            tld=data["tld"],
            type=TldType(data["type"]),
            idn=IdnPair(ascii=idn["ascii"], unicode=idn["unicode"]) if idn else None,
            tags=list(data.get("tags", [])),
            manager=data.get("manager"),
        )


@dataclass
class ServiceGroup:
    """TLDs sharing one RDAP server set."""

    tlds: list[UnifiedTldEntry]
    rdap_servers: list[str]

    def to_dict(self) -> dict:
        return {
            "tlds": [entry.to_dict() for entry in self.tlds],
            "rdapServers": list(self.rdap_servers),
        }


@dataclass
class UnifiedDataset:
    """The persisted unified TLD artifact."""

    description: str
    generated: str  # ISO-8601 UTC, second precision
    services: list[ServiceGroup]

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "generated": self.generated,
            "services": [service.to_dict() for service in self.services],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UnifiedDataset":
        return cls(
            description=data.get("description", ""),
            generated=data.get("generated", ""),
            services=[
                ServiceGroup(
                    tlds=[UnifiedTldEntry.from_dict(t) for t in service.get("tlds", [])],
                    rdap_servers=list(service.get("rdapServers", [])),
                )
                for service in data.get("services", [])
            ],
        )

    def all_entries(self) -> list[UnifiedTldEntry]:
        """Flatten every TLD entry across service groups."""
        return [entry for service in self.services for entry in service.tlds]


# ============================================================================
# Analysis results
# ============================================================================

@dataclass
class IdnCounts:
    """IDN breakdown for a list of TLDs."""

    total: int
    cc_tlds: int
    g_tlds: int
    ascii: int  # punycode (xn--)
    unicode: int  # native non-ASCII

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "ccTlds": self.cc_tlds,
            "gTlds": self.g_tlds,
            "ascii": self.ascii,
            "unicode": self.unicode,
        }


@dataclass
class TldCounts:
    """TLD count summary for one source."""

    total: int
    cc_tlds: int
    g_tlds: int
    idns: int
    idn_breakdown: IdnCounts

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "ccTlds": self.cc_tlds,
            "gTlds": self.g_tlds,
            "idns": self.idns,
            "idnBreakdown": self.idn_breakdown.to_dict(),
        }


@dataclass
class RegistryAnalysis(TldCounts):
    """Root Zone Database analysis with delegation and category breakdowns."""

    delegated: int
    undelegated: int
    undelegated_cc_tlds: int
    undelegated_g_tlds: int
    delegated_counts: TldCounts
    by_category: dict[str, int]
    delegated_by_category: dict[str, int]

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "delegated": self.delegated,
            "undelegated": self.undelegated,
            "undelegatedCcTlds": self.undelegated_cc_tlds,
            "undelegatedGTlds": self.undelegated_g_tlds,
            "delegatedCounts": self.delegated_counts.to_dict(),
            "byCategory": dict(self.by_category),
            "delegatedByCategory": dict(self.delegated_by_category),
        })
        return data


@dataclass
class DatasetAnalysis(TldCounts):
    """Counts over a built unified dataset."""

    total_services: int
    tlds_with_rdap: int
    tlds_without_rdap: int
    cc_tlds_with_rdap: int
    g_tlds_with_rdap: int

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "totalServices": self.total_services,
            "tldsWithRdap": self.tlds_with_rdap,
            "tldsWithoutRdap": self.tlds_without_rdap,
            "ccTldsWithRdap": self.cc_tlds_with_rdap,
            "gTldsWithRdap": self.g_tlds_with_rdap,
        })
        return data


@dataclass
class SourceComparison:
    """The three per-source analyses side by side."""

    tld_list: TldCounts
    rdap_bootstrap: TldCounts
    root_zone_db: RegistryAnalysis

    def to_dict(self) -> dict:
        return {
            "tldsFile": self.tld_list.to_dict(),
            "rdapBootstrap": self.rdap_bootstrap.to_dict(),
            "rootZoneDb": self.root_zone_db.to_dict(),
        }


@dataclass
class ComparisonResult:
    """Set difference between a source's labels and the registry's labels."""

    source_count: int
    registry_count: int
    in_both: int
    only_in_source: list[str]
    only_in_registry: list[str]
    only_in_registry_by_category: dict[str, list[str]]

    def to_dict(self) -> dict:
        return {
            "sourceCount": self.source_count,
            "registryCount": self.registry_count,
            "inBoth": self.in_both,
            "onlyInSource": list(self.only_in_source),
            "onlyInRegistry": list(self.only_in_registry),
            "onlyInRegistryByCategory": {
                category: list(labels)
                for category, labels in self.only_in_registry_by_category.items()
            },
        }


@dataclass
class MissingTld:
    """A delegated TLD lacking RDAP coverage."""

    tld: str
    category: TldCategory

    def to_dict(self) -> dict:
        return {"tld": self.tld, "type": self.category.value}


@dataclass
class CoverageAnalysis:
    """RDAP coverage of delegated generic TLDs."""

    total_delegated_g_tlds: int
    g_tlds_with_rdap: int
    g_tlds_without_rdap: int
    missing_g_tlds: list[MissingTld]

    def to_dict(self) -> dict:
        return {
            "totalDelegatedGTlds": self.total_delegated_g_tlds,
            "gTldsWithRdap": self.g_tlds_with_rdap,
            "gTldsWithoutRdap": self.g_tlds_without_rdap,
            "missingGTlds": [missing.to_dict() for missing in self.missing_g_tlds],
        }


# ============================================================================
# Supplemental views
# ============================================================================

@dataclass
class ManagerSubsidiary:
    """One raw manager name folded into an alias group."""

    name: str
    source: Optional[str]
    tld_count: int
    cc_tld_count: int
    g_tld_count: int
    tlds: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "source": self.source,
            "tldCount": self.tld_count,
            "ccTldCount": self.cc_tld_count,
            "gTldCount": self.g_tld_count,
            "tlds": list(self.tlds),
        }


@dataclass
class ManagerGroup:
    """TLDs operated by one manager (or one alias group)."""

    manager: str
    tld_count: int
    cc_tld_count: int
    g_tld_count: int
    tlds: list[str] = field(default_factory=list)
    cc_tlds: list[str] = field(default_factory=list)
    g_tlds: list[str] = field(default_factory=list)
    subsidiaries: list[ManagerSubsidiary] = field(default_factory=list)

    @property
    def is_alias(self) -> bool:
        return bool(self.subsidiaries)

    def to_dict(self) -> dict:
        return {
            "manager": self.manager,
            "tldCount": self.tld_count,
            "ccTldCount": self.cc_tld_count,
            "gTldCount": self.g_tld_count,
            "tlds": list(self.tlds),
            "ccTlds": list(self.cc_tlds),
            "gTlds": list(self.g_tlds),
            "isAlias": self.is_alias,
            "subsidiaries": [sub.to_dict() for sub in self.subsidiaries],
        }


@dataclass
class ManagerGrouping:
    """Manager groups plus an ASCII to Unicode map for display."""

    manager_groups: list[ManagerGroup]
    idn_map: dict[str, str]

    @property
    def total_managers(self) -> int:
        return len(self.manager_groups)

    def to_dict(self) -> dict:
        return {
            "totalManagers": self.total_managers,
            "managerGroups": [group.to_dict() for group in self.manager_groups],
            "idnMap": dict(self.idn_map),
        }


@dataclass
class IntegrityReport:
    """Violations between supplemental data and the canonical sources."""

    unknown_override_labels: list[str] = field(default_factory=list)
    unknown_alias_managers: dict[str, list[str]] = field(default_factory=dict)
    bootstrap_duplicates: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (
            self.unknown_override_labels
            or self.unknown_alias_managers
            or self.bootstrap_duplicates
        )

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "unknownOverrideLabels": list(self.unknown_override_labels),
            "unknownAliasManagers": {
                alias: list(names) for alias, names in self.unknown_alias_managers.items()
            },
            "bootstrapDuplicates": list(self.bootstrap_duplicates),
        }


# ============================================================================
# Download metadata
# ============================================================================

@dataclass
class DownloadMetadata:
    """HTTP caching metadata recorded for a downloaded source file."""

    url: str
    downloaded_at: str
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    cache_max_age: Optional[int] = None  # Cache-Control max-age in seconds

    def to_dict(self) -> dict:
        data = {"url": self.url}
        if self.etag:
            data["etag"] = self.etag
        if self.last_modified:
            data["lastModified"] = self.last_modified
        if self.cache_max_age:
            data["cacheMaxAge"] = self.cache_max_age
        data["downloadedAt"] = self.downloaded_at
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "DownloadMetadata":
        return cls(
            url=data.get("url", ""),
            downloaded_at=data.get("downloadedAt", ""),
            etag=data.get("etag"),
            last_modified=data.get("lastModified"),
            cache_max_age=data.get("cacheMaxAge"),
        )


@dataclass
class FullAnalysis:
    """Per-source analyses plus RDAP coverage."""

    sources: SourceComparison
    rdap_coverage: CoverageAnalysis

    def to_dict(self) -> dict:
        data = self.sources.to_dict()
        data["rdapCoverage"] = self.rdap_coverage.to_dict()
        return data
