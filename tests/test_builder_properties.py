"""
Property-based tests for the unified dataset builder.

Covers inclusion by delegation, classification, IDN pairing, grouping by
RDAP server set, manual ccTLD overrides and deterministic output.
"""

import io
import json
from datetime import datetime, timezone
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from tld_reconciler.builder import (
    DATASET_DESCRIPTION,
    build_unified_dataset,
    format_generated,
)
from tld_reconciler.diagnostics import DiagnosticLogger
from tld_reconciler.enums import LogLevel, TldCategory, TldType
from tld_reconciler.idn import canonical_label
from tld_reconciler.models import BootstrapService, ManualOverrideEntry, RegistryEntry, UnifiedDataset


FIXTURES = Path(__file__).parent / "fixtures"

GENERATED_AT = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def capture_logger() -> DiagnosticLogger:
    return DiagnosticLogger(output_stream=io.StringIO(), min_level=LogLevel.DEBUG)


def load_services() -> list:
    return json.loads((FIXTURES / "rdap.json").read_text(encoding="utf-8"))["services"]


def load_html() -> str:
    return (FIXTURES / "root.html").read_text(encoding="utf-8")


def load_manual() -> list:
    return json.loads((FIXTURES / "cctld-rdap-manual.json").read_text(encoding="utf-8"))


def build(overrides=None, logger=None) -> UnifiedDataset:
    return build_unified_dataset(
        load_services(),
        load_html(),
        overrides,
        generated_at=GENERATED_AT,
        logger=logger or capture_logger(),
    )


def entries_by_tld(dataset: UnifiedDataset) -> dict:
    return {entry.tld: entry for entry in dataset.all_entries()}


def group_of(dataset: UnifiedDataset, tld: str):
    for group in dataset.services:
        if any(entry.tld == tld for entry in group.tlds):
            return group
    return None


# Strategies for generating test data

server_pool = st.sampled_from([
    "https://rdap.a.example/",
    "https://rdap.b.example/",
    "https://rdap.c.example/",
])


@st.composite
def scenario_strategy(draw) -> tuple[list[BootstrapService], list[RegistryEntry]]:
    """Generate a registry and a bootstrap file over a shared label pool."""
    pool = ["com", "net", "org", "de", "uk", "io", "aero", "台灣", "xn--flw351e", "рф"]
    labels = draw(st.lists(st.sampled_from(pool), min_size=1, max_size=len(pool), unique=True))
    registry = [
        RegistryEntry(
            label=label,
            category=draw(st.sampled_from(list(TldCategory))),
            delegated=draw(st.booleans()),
        )
        for label in labels
    ]
    ascii_pool = ["com", "net", "org", "de", "uk", "io", "aero", "xn--kpry57d", "xn--flw351e", "xn--p1ai"]
    services = draw(st.lists(
        st.builds(
            BootstrapService,
            labels=st.lists(st.sampled_from(ascii_pool), min_size=1, max_size=4, unique=True),
            servers=st.lists(server_pool, max_size=2, unique=True),
        ),
        max_size=5,
    ))
    return services, registry


class TestDatasetStructureProperty:
    """Tests for the overall dataset shape."""

    def test_top_level_fields(self) -> None:
        dataset = build()
        data = dataset.to_dict()

        assert data["description"] == DATASET_DESCRIPTION
        assert data["generated"] == "2025-01-01T12:00:00Z"
        assert isinstance(data["services"], list)
        for group in data["services"]:
            assert set(group) == {"tlds", "rdapServers"}

    def test_generated_format(self) -> None:
        moment = datetime(2025, 6, 30, 23, 59, 58, 123456, tzinfo=timezone.utc)
        assert format_generated(moment) == "2025-06-30T23:59:58Z"
        assert format_generated().endswith("Z")

    def test_groups_are_sorted_by_first_tld(self) -> None:
        dataset = build()
        firsts = [group.tlds[0].tld for group in dataset.services]
        assert firsts == ["ac", "biz", "com", "google", "org", "xn--kpry57d"]
        for group in dataset.services:
            tlds = [entry.tld for entry in group.tlds]
            assert tlds == sorted(tlds)


class TestDelegationGateProperty:
    """Only delegated registry TLDs are included."""

    def test_fixture_inclusion(self) -> None:
        tlds = set(entries_by_tld(build()))

        assert len(tlds) == 13
        assert "xn--kpry57d" in tlds
        assert "xn--flw351e" in tlds
        assert "xn--mgbaam7a8h" in tlds
        assert "active" not in tlds  # in bootstrap, not delegated
        assert "bootstraponly" not in tlds  # in bootstrap, not in registry
        assert "xn--0zwm56d" not in tlds  # test TLD, not delegated
        assert "测试" not in tlds
        assert "bl" not in tlds

    def test_unicode_forms_are_not_duplicated(self) -> None:
        tlds = [entry.tld for entry in build().all_entries()]
        assert len(tlds) == len(set(tlds))
        assert "台灣" not in tlds
        assert "谷歌" not in tlds

    @given(scenario=scenario_strategy())
    @settings(max_examples=100)
    def test_every_included_tld_is_delegated(self, scenario) -> None:
        """
        *For any* registry and bootstrap file, every dataset TLD SHALL
        correspond to a delegated registry entry and appear exactly once.
        """
        services, registry = scenario
        dataset = build_unified_dataset(
            services, registry, generated_at=GENERATED_AT, logger=capture_logger()
        )
        delegated_forms = set()
        for entry in registry:
            if entry.delegated:
                delegated_forms.add(entry.label)
                delegated_forms.add(canonical_label(entry.label))

        tlds = [entry.tld for entry in dataset.all_entries()]
        assert len(tlds) == len(set(tlds))
        assert set(tlds) <= delegated_forms
        assert len(tlds) == len([entry for entry in registry if entry.delegated])


class TestClassificationProperty:
    """Type, tags, IDN pairs and managers."""

    def test_types(self) -> None:
        entries = entries_by_tld(build())
        assert entries["xn--kpry57d"].type is TldType.CCTLD
        assert entries["ac"].type is TldType.CCTLD
        assert entries["xn--flw351e"].type is TldType.GTLD
        assert entries["arpa"].type is TldType.GTLD

    def test_tags(self) -> None:
        entries = entries_by_tld(build())
        assert entries["com"].tags == ["generic"]
        assert entries["aero"].tags == ["sponsored"]
        assert entries["arpa"].tags == ["infrastructure"]
        assert entries["biz"].tags == ["generic-restricted"]
        assert entries["de"].tags == []

    def test_idn_pairs(self) -> None:
        entries = entries_by_tld(build())
        assert entries["xn--kpry57d"].idn.unicode == "台灣"
        assert entries["xn--mgbaam7a8h"].idn.unicode == "امارات"
        assert entries["com"].idn is None
        assert entries["com"].to_dict()["idn"] is None

    def test_managers(self) -> None:
        entries = entries_by_tld(build())
        assert entries["xn--flw351e"].manager == "Charleston Road Registry Inc."
        assert entries["com"].to_dict()["manager"] == "VeriSign Global Registry Services"


class TestServerGroupingProperty:
    """Grouping by RDAP server set."""

    def test_shared_servers_share_a_group(self) -> None:
        dataset = build()
        com = group_of(dataset, "com")
        assert [entry.tld for entry in com.tlds] == ["com", "net"]
        assert com.rdap_servers == ["https://rdap.verisign.com/com/v1/"]

        google = group_of(dataset, "google")
        assert [entry.tld for entry in google.tlds] == ["google", "xn--flw351e"]

    def test_tlds_without_servers_form_one_group(self) -> None:
        dataset = build()
        empty = [group for group in dataset.services if not group.rdap_servers]
        assert len(empty) == 1
        assert [entry.tld for entry in empty[0].tlds] == [
            "ac", "aero", "arpa", "de", "uk", "xn--mgbaam7a8h",
        ]

    def test_server_order_does_not_split_groups(self) -> None:
        registry = [
            RegistryEntry("aaa", TldCategory.GENERIC, True),
            RegistryEntry("bbb", TldCategory.GENERIC, True),
        ]
        services = [
            BootstrapService(["aaa"], ["https://x/", "https://y/"]),
            BootstrapService(["bbb"], ["https://y/", "https://x/"]),
        ]
        dataset = build_unified_dataset(services, registry, logger=capture_logger())
        assert len(dataset.services) == 1
        assert [entry.tld for entry in dataset.services[0].tlds] == ["aaa", "bbb"]

    def test_duplicate_label_keeps_last_service_and_warns(self) -> None:
        logger = capture_logger()
        registry = [RegistryEntry("com", TldCategory.GENERIC, True)]
        services = [
            BootstrapService(["com"], ["https://first/"]),
            BootstrapService(["com"], ["https://second/"]),
        ]
        dataset = build_unified_dataset(services, registry, logger=logger)

        assert dataset.services[0].rdap_servers == ["https://second/"]
        assert any(
            entry.level is LogLevel.WARN and "com" in entry.message for entry in logger.entries
        )

    @given(scenario=scenario_strategy())
    @settings(max_examples=100)
    def test_groups_have_distinct_server_sets(self, scenario) -> None:
        """
        *For any* inputs, no two groups SHALL carry the same server set and
        groups SHALL be sorted by their first TLD.
        """
        services, registry = scenario
        dataset = build_unified_dataset(services, registry, logger=capture_logger())
        signatures = [tuple(sorted(group.rdap_servers)) for group in dataset.services]
        assert len(signatures) == len(set(signatures))
        firsts = [group.tlds[0].tld for group in dataset.services]
        assert firsts == sorted(firsts)


class TestManualOverridesProperty:
    """Curated ccTLD servers."""

    def test_overrides_apply_to_delegated_cctlds_only(self) -> None:
        dataset = build(load_manual())
        entries = entries_by_tld(dataset)

        assert group_of(dataset, "ac").rdap_servers == ["https://rdap.nic.ac/"]
        assert group_of(dataset, "de").rdap_servers == ["https://rdap.denic.de/"]
        assert group_of(dataset, "com").rdap_servers == ["https://rdap.verisign.com/com/v1/"]
        assert "zz" not in entries

        firsts = [group.tlds[0].tld for group in dataset.services]
        assert firsts == ["ac", "aero", "biz", "com", "de", "google", "org", "xn--kpry57d"]

    def test_override_objects_and_unicode_labels(self) -> None:
        registry = [RegistryEntry("台灣", TldCategory.COUNTRY_CODE, True)]
        overrides = [ManualOverrideEntry(
            tld="台灣",
            rdap_server="https://rdap.twnic.example/",
            backend_operator="TWNIC",
            date_updated="2025-01-01",
        )]
        dataset = build_unified_dataset([], registry, overrides, logger=capture_logger())

        assert len(dataset.services) == 1
        assert dataset.services[0].tlds[0].tld == "xn--kpry57d"
        assert dataset.services[0].rdap_servers == ["https://rdap.twnic.example/"]

    def test_malformed_overrides_are_skipped(self) -> None:
        logger = capture_logger()
        dataset = build([{"tld": "ac"}, "junk"], logger)
        assert group_of(dataset, "ac").rdap_servers == []
        assert len([e for e in logger.entries if "malformed" in e.message]) == 2


class TestDeterminismProperty:
    """Output is a function of the inputs."""

    def test_same_inputs_give_identical_json(self) -> None:
        first = json.dumps(build(load_manual()).to_dict(), ensure_ascii=False)
        second = json.dumps(build(load_manual()).to_dict(), ensure_ascii=False)
        assert first == second

    def test_parsed_entries_and_html_give_same_dataset(self) -> None:
        from tld_reconciler.parse import parse_registry_table

        entries = parse_registry_table(load_html(), capture_logger())
        from_entries = build_unified_dataset(
            load_services(), entries, generated_at=GENERATED_AT, logger=capture_logger()
        )
        assert from_entries.to_dict() == build().to_dict()
