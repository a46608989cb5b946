"""
Unified dataset builder.

Merges RDAP bootstrap server data, Root Zone Database classification,
delegation and manager data, and curated ccTLD RDAP overrides into one
de-duplicated dataset of every delegated TLD, grouped by RDAP server set.

Registry delegation is the gate for inclusion: a label present in the
bootstrap file or the overrides but not delegated in the registry is left
out. Nothing here raises on bad per-item data; each item degrades on its own.
"""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Union

from .diagnostics import DiagnosticLogger, get_default_logger
from .enums import TldCategory, TldType
from .idn import canonical_label, has_non_ascii, idn_pair, is_punycode
from .models import (
    BootstrapService,
    ManualOverrideEntry,
    RegistryEntry,
    ServiceGroup,
    UnifiedDataset,
    UnifiedTldEntry,
)
from .parse import parse_bootstrap_services, parse_registry_table
from .reconcile import find_duplicate_bootstrap_labels, index_both_forms
from .supplemental import parse_override_entry


COMPONENT = "builder"

DATASET_DESCRIPTION = "All delegated top-level domains, and their RDAP servers"


def format_generated(moment: Optional[datetime] = None) -> str:
    """Format a build timestamp as ISO-8601 UTC with second precision."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def _coerce_services(
    bootstrap_services: Iterable[Any],
    logger: DiagnosticLogger,
) -> list[BootstrapService]:
    services = list(bootstrap_services)
    if all(isinstance(service, BootstrapService) for service in services):
        return services
    return parse_bootstrap_services(services, logger)


def _coerce_overrides(
    manual_overrides: Optional[Iterable[Union[ManualOverrideEntry, dict]]],
    logger: DiagnosticLogger,
) -> list[ManualOverrideEntry]:
    overrides: list[ManualOverrideEntry] = []
    for index, raw in enumerate(manual_overrides or []):
        if isinstance(raw, ManualOverrideEntry):
            overrides.append(raw)
            continue
        entry = parse_override_entry(raw)
        if entry is None:
            logger.warn(COMPONENT, "Skipping malformed manual override", {"index": index})
            continue
        overrides.append(entry)
    return overrides


def build_unified_dataset(
    bootstrap_services: Iterable[Any],
    registry_html: Union[str, list[RegistryEntry]],
    manual_overrides: Optional[Iterable[Union[ManualOverrideEntry, dict]]] = None,
    *,
    generated_at: Optional[datetime] = None,
    logger: Optional[DiagnosticLogger] = None,
) -> UnifiedDataset:
    """
    Build the unified TLD dataset.

    Args:
        bootstrap_services: Raw bootstrap ``services`` array or parsed
            BootstrapService objects
        registry_html: Root Zone Database HTML, or already parsed entries
        manual_overrides: Curated ccTLD RDAP servers (objects or raw dicts)
        generated_at: Build timestamp (defaults to now)
        logger: Optional diagnostic logger

    Returns:
        UnifiedDataset with service groups sorted by their first TLD
    """
    logger = logger or get_default_logger()

    if isinstance(registry_html, str):
        registry_entries = parse_registry_table(registry_html, logger)
    else:
        registry_entries = list(registry_html)

    # Delegated labels, indexed under both encodings
    delegated = [entry for entry in registry_entries if entry.delegated]
    type_of = index_both_forms(
        delegated,
        lambda e: TldType.CCTLD if e.category is TldCategory.COUNTRY_CODE else TldType.GTLD,
        logger,
    )
    category_of = index_both_forms(delegated, lambda e: e.category, logger)
    manager_of = index_both_forms(delegated, lambda e: e.manager, logger)

    # Bootstrap servers for delegated labels, last service wins
    services = _coerce_services(bootstrap_services, logger)
    for label, count in find_duplicate_bootstrap_labels(services).items():
        logger.warn(
            COMPONENT,
            f"Label '{label}' appears in {count} bootstrap services; keeping the last",
            {"tld": label, "services": count},
        )

    servers_of: dict[str, list[str]] = {}
    for service in services:
        for label in service.labels:
            key = canonical_label(label)
            if key in type_of:
                servers_of[key] = list(service.servers)

    # Manual overrides replace server lists for delegated ccTLDs only
    for override in _coerce_overrides(manual_overrides, logger):
        key = canonical_label(override.tld.lstrip(".").lower())
        if type_of.get(key) is TldType.CCTLD:
            servers_of[key] = [override.rdap_server]
        else:
            logger.debug(
                COMPONENT,
                "Ignoring manual override for label that is not a delegated ccTLD",
                {"tld": override.tld},
            )

    # Group by order-insensitive server signature
    groups: dict[tuple, set[str]] = {}
    for label, servers in servers_of.items():
        groups.setdefault(tuple(sorted(servers)), set()).add(label)

    # Delegated labels without any servers; one member per Unicode/ASCII pair
    for label in type_of:
        if label in servers_of:
            continue
        if is_punycode(label) or not has_non_ascii(label) or canonical_label(label) == label:
            groups.setdefault((), set()).add(label)

    service_groups: list[ServiceGroup] = []
    for servers, labels in groups.items():
        tld_entries = []
        for label in sorted(labels):
            category = category_of[label]
            tld_entries.append(UnifiedTldEntry(
                tld=label,
                type=type_of[label],
                idn=idn_pair(label),
                tags=[] if category is TldCategory.COUNTRY_CODE else [category.value],
                manager=manager_of.get(label),
            ))
        if tld_entries:
            service_groups.append(ServiceGroup(tlds=tld_entries, rdap_servers=list(servers)))

    service_groups.sort(key=lambda group: group.tlds[0].tld)

    logger.info(
        COMPONENT,
        "Built unified dataset",
        {
            "services": len(service_groups),
            "tlds": sum(len(group.tlds) for group in service_groups),
        },
    )

    return UnifiedDataset(
        description=DATASET_DESCRIPTION,
        generated=format_generated(generated_at),
        services=service_groups,
    )
