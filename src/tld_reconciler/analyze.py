"""
Per-source analyzers.

Each analyzer summarizes one source: totals, country-code vs. generic
counts and an IDN breakdown by encoding. Country-code classification always
comes from the Root Zone Database lookup; the plain-text list and the
bootstrap file never classify themselves.

Every result satisfies ``total == cc_tlds + g_tlds`` and
``idn_breakdown.total == idn_breakdown.ascii + idn_breakdown.unicode``.
"""

from typing import Iterable, Optional

from .diagnostics import DiagnosticLogger, get_default_logger
from .enums import IdnFormat, TldCategory, TldType
from .idn import get_idn_format, is_idn, is_punycode, to_ascii
from .models import (
    CoverageAnalysis,
    DatasetAnalysis,
    IdnCounts,
    MissingTld,
    RegistryAnalysis,
    RegistryEntry,
    SourceComparison,
    TldCounts,
    UnifiedDataset,
)
from .reconcile import build_cctld_lookup


COMPONENT = "analyze"


def analyze_idn_breakdown(labels: list[str], cctld_lookup: frozenset[str]) -> IdnCounts:
    """
    Count IDNs in a label list by type and by encoding.

    Args:
        labels: Labels to inspect
        cctld_lookup: Country-code labels in both encodings

    Returns:
        IdnCounts for the IDN subset of ``labels``
    """
    idns = [label for label in labels if is_idn(label)]
    cc_count = sum(1 for label in idns if label in cctld_lookup)
    ascii_count = sum(1 for label in idns if get_idn_format(label) is IdnFormat.ASCII)
    return IdnCounts(
        total=len(idns),
        cc_tlds=cc_count,
        g_tlds=len(idns) - cc_count,
        ascii=ascii_count,
        unicode=len(idns) - ascii_count,
    )


def count_labels(labels: list[str], cctld_lookup: frozenset[str]) -> TldCounts:
    """Summarize a label list against a country-code lookup."""
    cc_count = sum(1 for label in labels if label in cctld_lookup)
    breakdown = analyze_idn_breakdown(labels, cctld_lookup)
    return TldCounts(
        total=len(labels),
        cc_tlds=cc_count,
        g_tlds=len(labels) - cc_count,
        idns=breakdown.total,
        idn_breakdown=breakdown,
    )


def analyze_tld_list(
    labels: list[str],
    registry_entries: list[RegistryEntry],
    cctld_lookup: Optional[frozenset[str]] = None,
    logger: Optional[DiagnosticLogger] = None,
) -> TldCounts:
    """
    Analyze the plain-text TLD list.

    Args:
        labels: Parsed TLD list labels
        registry_entries: Root Zone Database entries used for classification
        cctld_lookup: Prebuilt lookup; built from ``registry_entries`` if omitted
        logger: Optional diagnostic logger

    Returns:
        TldCounts for the list
    """
    if cctld_lookup is None:
        cctld_lookup = build_cctld_lookup(registry_entries, logger)
    return count_labels(labels, cctld_lookup)


def analyze_bootstrap(
    labels: list[str],
    registry_entries: list[RegistryEntry],
    cctld_lookup: Optional[frozenset[str]] = None,
    logger: Optional[DiagnosticLogger] = None,
) -> TldCounts:
    """
    Analyze the labels of the RDAP bootstrap file.

    Args:
        labels: Labels from parse_bootstrap
        registry_entries: Root Zone Database entries used for classification
        cctld_lookup: Prebuilt lookup; built from ``registry_entries`` if omitted
        logger: Optional diagnostic logger

    Returns:
        TldCounts for the bootstrap file
    """
    if cctld_lookup is None:
        cctld_lookup = build_cctld_lookup(registry_entries, logger)
    return count_labels(labels, cctld_lookup)


def _tally_categories(entries: list[RegistryEntry]) -> dict[str, int]:
    tally = {category.value: 0 for category in TldCategory}
    for entry in entries:
        tally[entry.category.value] += 1
    return tally


def analyze_registry(entries: list[RegistryEntry]) -> RegistryAnalysis:
    """
    Analyze the Root Zone Database.

    Besides the common counts this adds delegation totals, undelegated
    counts split by type, a delegated-only TldCounts block and two
    six-way category tallies (all entries and delegated entries).

    Args:
        entries: Parsed Root Zone Database entries

    Returns:
        RegistryAnalysis where ``total == delegated + undelegated``
    """
    cctld_lookup = frozenset(
        entry.label for entry in entries if entry.category is TldCategory.COUNTRY_CODE
    )
    counts = count_labels([entry.label for entry in entries], cctld_lookup)

    delegated_entries = [entry for entry in entries if entry.delegated]
    undelegated_entries = [entry for entry in entries if not entry.delegated]
    undelegated_cc = sum(
        1 for entry in undelegated_entries if entry.category is TldCategory.COUNTRY_CODE
    )

    return RegistryAnalysis(
        total=counts.total,
        cc_tlds=counts.cc_tlds,
        g_tlds=counts.g_tlds,
        idns=counts.idns,
        idn_breakdown=counts.idn_breakdown,
        delegated=len(delegated_entries),
        undelegated=len(undelegated_entries),
        undelegated_cc_tlds=undelegated_cc,
        undelegated_g_tlds=len(undelegated_entries) - undelegated_cc,
        delegated_counts=count_labels([entry.label for entry in delegated_entries], cctld_lookup),
        by_category=_tally_categories(entries),
        delegated_by_category=_tally_categories(delegated_entries),
    )


def compare_sources(
    tld_labels: list[str],
    bootstrap_labels: list[str],
    registry_entries: list[RegistryEntry],
    logger: Optional[DiagnosticLogger] = None,
) -> SourceComparison:
    """
    Run the three analyzers side by side with one shared lookup.

    Args:
        tld_labels: Parsed TLD list labels
        bootstrap_labels: Labels from parse_bootstrap
        registry_entries: Parsed Root Zone Database entries
        logger: Optional diagnostic logger

    Returns:
        SourceComparison with one result per source
    """
    cctld_lookup = build_cctld_lookup(registry_entries, logger)
    return SourceComparison(
        tld_list=analyze_tld_list(tld_labels, registry_entries, cctld_lookup),
        rdap_bootstrap=analyze_bootstrap(bootstrap_labels, registry_entries, cctld_lookup),
        root_zone_db=analyze_registry(registry_entries),
    )


def analyze_rdap_coverage(
    bootstrap_labels: Iterable[str],
    registry_entries: list[RegistryEntry],
    logger: Optional[DiagnosticLogger] = None,
) -> CoverageAnalysis:
    """
    Find delegated generic TLDs that have no RDAP bootstrap entry.

    A registry label counts as covered when the bootstrap file lists it
    as-is or, for non-Punycode labels, in its ASCII-compatible form.

    Args:
        bootstrap_labels: Labels from parse_bootstrap
        registry_entries: Parsed Root Zone Database entries
        logger: Optional diagnostic logger

    Returns:
        CoverageAnalysis with the missing TLDs sorted by label
    """
    logger = logger or get_default_logger()
    covered = set(bootstrap_labels)
    generics = [
        entry for entry in registry_entries
        if entry.delegated and entry.category is not TldCategory.COUNTRY_CODE
    ]

    missing: list[MissingTld] = []
    for entry in generics:
        if entry.label in covered:
            continue
        if not is_punycode(entry.label):
            try:
                if to_ascii(entry.label) in covered:
                    continue
            except UnicodeError as e:
                logger.log_error(
                    COMPONENT,
                    f"Failed to convert '{entry.label}' to punycode",
                    error=e,
                )
        missing.append(MissingTld(tld=entry.label, category=entry.category))

    missing.sort(key=lambda item: item.tld)
    return CoverageAnalysis(
        total_delegated_g_tlds=len(generics),
        g_tlds_with_rdap=len(generics) - len(missing),
        g_tlds_without_rdap=len(missing),
        missing_g_tlds=missing,
    )


def analyze_dataset(dataset: UnifiedDataset) -> DatasetAnalysis:
    """
    Summarize a built unified dataset.

    Args:
        dataset: Unified dataset (freshly built or loaded from disk)

    Returns:
        DatasetAnalysis with type, IDN and RDAP coverage counts
    """
    entries = dataset.all_entries()
    cc_count = sum(1 for entry in entries if entry.type is TldType.CCTLD)

    idns = [entry for entry in entries if entry.idn is not None]
    idn_cc = sum(1 for entry in idns if entry.type is TldType.CCTLD)
    idn_ascii = sum(1 for entry in idns if is_punycode(entry.idn.ascii))

    with_rdap = [
        entry for service in dataset.services if service.rdap_servers
        for entry in service.tlds
    ]
    cc_with_rdap = sum(1 for entry in with_rdap if entry.type is TldType.CCTLD)

    return DatasetAnalysis(
        total=len(entries),
        cc_tlds=cc_count,
        g_tlds=len(entries) - cc_count,
        idns=len(idns),
        idn_breakdown=IdnCounts(
            total=len(idns),
            cc_tlds=idn_cc,
            g_tlds=len(idns) - idn_cc,
            ascii=idn_ascii,
            unicode=len(idns) - idn_ascii,
        ),
        total_services=len(dataset.services),
        tlds_with_rdap=len(with_rdap),
        tlds_without_rdap=len(entries) - len(with_rdap),
        cc_tlds_with_rdap=cc_with_rdap,
        g_tlds_with_rdap=len(with_rdap) - cc_with_rdap,
    )
