"""
Supplemental data integrator.

Reads the manually curated ``supplemental.json`` (ccTLD RDAP servers that
IANA does not publish, and friendly names grouping several raw TLD manager
names), checks it against the canonical sources and builds the
manager-grouping view.

Integrity problems are reported, never raised: the file is curated offline
and checked by the test suite and the ``check-supplemental`` command.
"""

from typing import Any, Iterable, Optional

from .diagnostics import DiagnosticLogger, get_default_logger
from .enums import TldType
from .idn import canonical_label
from .models import (
    IntegrityReport,
    ManagerAliasEntry,
    ManagerGroup,
    ManagerGrouping,
    ManagerSubsidiary,
    ManualOverrideEntry,
    SupplementalData,
    UnifiedDataset,
    UnifiedTldEntry,
)


COMPONENT = "supplemental"

REQUIRED_OVERRIDE_FIELDS = ("tld", "rdapServer", "backendOperator", "dateUpdated")


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def parse_override_entry(raw: Any) -> Optional[ManualOverrideEntry]:
    """
    Build a ManualOverrideEntry from its JSON object.

    Returns None when any required field is missing or not a non-empty string.
    """
    if not isinstance(raw, dict):
        return None
    for key in REQUIRED_OVERRIDE_FIELDS:
        value = raw.get(key)
        if not isinstance(value, str) or not value.strip():
            return None
    return ManualOverrideEntry(
        tld=raw["tld"].strip().lstrip(".").lower(),
        rdap_server=raw["rdapServer"].strip(),
        backend_operator=raw["backendOperator"].strip(),
        date_updated=raw["dateUpdated"].strip(),
        source=_optional_str(raw.get("source")),
        notes=_optional_str(raw.get("notes")),
    )


def parse_supplemental(raw: Any, logger: Optional[DiagnosticLogger] = None) -> SupplementalData:
    """
    Parse the supplemental data document.

    Malformed override and alias entries are skipped and logged.

    Args:
        raw: Decoded supplemental.json content
        logger: Optional diagnostic logger

    Returns:
        SupplementalData (empty when ``raw`` is not an object)
    """
    logger = logger or get_default_logger()
    if not isinstance(raw, dict):
        logger.warn(COMPONENT, "Supplemental data is not an object; ignoring it")
        return SupplementalData()

    overrides: list[ManualOverrideEntry] = []
    raw_overrides = raw.get("ccTldRdapServers", [])
    if not isinstance(raw_overrides, list):
        logger.warn(COMPONENT, "ccTldRdapServers is not a list; ignoring it")
        raw_overrides = []
    for index, item in enumerate(raw_overrides):
        entry = parse_override_entry(item)
        if entry is None:
            logger.warn(COMPONENT, "Skipping malformed ccTLD RDAP entry", {"index": index})
            continue
        overrides.append(entry)

    aliases: dict[str, list[ManagerAliasEntry]] = {}
    raw_aliases = raw.get("managerAliases", {})
    if not isinstance(raw_aliases, dict):
        logger.warn(COMPONENT, "managerAliases is not an object; ignoring it")
        raw_aliases = {}
    for friendly_name, members in raw_aliases.items():
        if not isinstance(members, list):
            logger.warn(COMPONENT, "Skipping alias group that is not a list", {"alias": friendly_name})
            continue
        parsed = []
        for member in members:
            if isinstance(member, dict) and isinstance(member.get("name"), str) and member["name"]:
                parsed.append(ManagerAliasEntry(
                    name=member["name"],
                    source=_optional_str(member.get("source")),
                ))
            else:
                logger.warn(COMPONENT, "Skipping malformed alias member", {"alias": friendly_name})
        if parsed:
            aliases[friendly_name] = parsed

    return SupplementalData(cctld_rdap_servers=overrides, manager_aliases=aliases)


def validate_supplemental_structure(raw: Any) -> list[str]:
    """
    List structural problems in a supplemental data document.

    Args:
        raw: Decoded supplemental.json content

    Returns:
        Human-readable problem descriptions; empty when the structure is valid
    """
    if not isinstance(raw, dict):
        return ["supplemental data must be a JSON object"]

    problems: list[str] = []

    overrides = raw.get("ccTldRdapServers")
    if not isinstance(overrides, list):
        problems.append("ccTldRdapServers must be an array")
        overrides = []
    for index, entry in enumerate(overrides):
        if not isinstance(entry, dict):
            problems.append(f"ccTldRdapServers[{index}] must be an object")
            continue
        for key in REQUIRED_OVERRIDE_FIELDS:
            value = entry.get(key)
            if not isinstance(value, str):
                problems.append(f"ccTldRdapServers[{index}].{key} must be a string")
            elif not value:
                problems.append(f"ccTldRdapServers[{index}].{key} must not be empty")

    aliases = raw.get("managerAliases")
    if not isinstance(aliases, dict):
        problems.append("managerAliases must be an object")
        aliases = {}
    for friendly_name, members in aliases.items():
        if not isinstance(members, list):
            problems.append(f'alias "{friendly_name}" must be an array')
            continue
        if not members:
            problems.append(f'alias "{friendly_name}" must have at least one manager name')
        for member in members:
            if not isinstance(member, dict):
                problems.append(f'alias "{friendly_name}" has a member that is not an object')
                continue
            name = member.get("name")
            if not isinstance(name, str) or not name:
                problems.append(f'manager name in "{friendly_name}" must be a non-empty string')
            source = member.get("source")
            if source is not None and not isinstance(source, str):
                problems.append(f'source in "{friendly_name}" must be a string or null')
            elif isinstance(source, str) and not source:
                problems.append(f'source in "{friendly_name}" must not be empty if provided')

    return problems


def check_supplemental_integrity(
    supplemental: SupplementalData,
    dataset: UnifiedDataset,
    bootstrap_labels: Iterable[str],
) -> IntegrityReport:
    """
    Check supplemental data against the dataset and the bootstrap file.

    Verifies that every override label exists in the dataset, that every
    aliased manager name is a manager of some dataset entry, and that no
    override shadows a label the bootstrap file already covers.

    Args:
        supplemental: Parsed supplemental data
        dataset: Unified dataset built from the canonical sources
        bootstrap_labels: Labels from parse_bootstrap

    Returns:
        IntegrityReport; ``ok`` is True when nothing was found
    """
    entries = dataset.all_entries()
    labels = {entry.tld for entry in entries}
    managers = {entry.manager for entry in entries if entry.manager}
    covered = {canonical_label(label) for label in bootstrap_labels}

    report = IntegrityReport()
    for override in supplemental.cctld_rdap_servers:
        key = canonical_label(override.tld)
        if key not in labels:
            report.unknown_override_labels.append(override.tld)
        if key in covered:
            report.bootstrap_duplicates.append(override.tld)

    for friendly_name, members in supplemental.manager_aliases.items():
        unknown = [member.name for member in members if member.name not in managers]
        if unknown:
            report.unknown_alias_managers[friendly_name] = unknown

    report.unknown_override_labels.sort()
    report.bootstrap_duplicates.sort()
    return report


def _split_by_type(entries: list[UnifiedTldEntry]) -> tuple[list[str], list[str], list[str]]:
    tlds = sorted(entry.tld for entry in entries)
    cc = sorted(entry.tld for entry in entries if entry.type is TldType.CCTLD)
    g = sorted(entry.tld for entry in entries if entry.type is TldType.GTLD)
    return tlds, cc, g


def group_tlds_by_manager(
    dataset: UnifiedDataset,
    aliases: Optional[dict[str, list[ManagerAliasEntry]]] = None,
) -> ManagerGrouping:
    """
    Group dataset TLDs by manager, consolidating aliased names.

    Raw manager names listed under an alias are folded into one group named
    after the alias; each raw name is kept as a subsidiary with its own
    counts. Managers not covered by any alias form their own group. Entries
    without a manager are left out.

    Args:
        dataset: Unified dataset
        aliases: Friendly name to raw manager names

    Returns:
        ManagerGrouping sorted by TLD count (descending), then name
    """
    by_manager: dict[str, list[UnifiedTldEntry]] = {}
    idn_map: dict[str, str] = {}
    for entry in dataset.all_entries():
        if entry.idn is not None and entry.idn.unicode != entry.tld:
            idn_map[entry.tld] = entry.idn.unicode
        if entry.manager:
            by_manager.setdefault(entry.manager, []).append(entry)

    groups: list[ManagerGroup] = []
    aliased_names: set[str] = set()

    for friendly_name, members in (aliases or {}).items():
        subsidiaries = []
        group_entries: list[UnifiedTldEntry] = []
        for member in members:
            if member.name in aliased_names:
                continue
            aliased_names.add(member.name)
            member_entries = by_manager.get(member.name, [])
            tlds, cc, g = _split_by_type(member_entries)
            subsidiaries.append(ManagerSubsidiary(
                name=member.name,
                source=member.source,
                tld_count=len(tlds),
                cc_tld_count=len(cc),
                g_tld_count=len(g),
                tlds=tlds,
            ))
            group_entries.extend(member_entries)

        if not group_entries:
            continue
        tlds, cc, g = _split_by_type(group_entries)
        subsidiaries.sort(key=lambda sub: (-sub.tld_count, sub.name))
        groups.append(ManagerGroup(
            manager=friendly_name,
            tld_count=len(tlds),
            cc_tld_count=len(cc),
            g_tld_count=len(g),
            tlds=tlds,
            cc_tlds=cc,
            g_tlds=g,
            subsidiaries=subsidiaries,
        ))

    for manager, manager_entries in by_manager.items():
        if manager in aliased_names:
            continue
        tlds, cc, g = _split_by_type(manager_entries)
        groups.append(ManagerGroup(
            manager=manager,
            tld_count=len(tlds),
            cc_tld_count=len(cc),
            g_tld_count=len(g),
            tlds=tlds,
            cc_tlds=cc,
            g_tlds=g,
        ))

    groups.sort(key=lambda group: (-group.tld_count, group.manager))
    return ManagerGrouping(manager_groups=groups, idn_map=idn_map)
