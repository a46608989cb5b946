"""
Property-based tests for the format parsers.

Uses Hypothesis for the label-shape properties and the bundled IANA
fixtures for the concrete parsing behavior.
"""

import io
import json
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from tld_reconciler.diagnostics import DiagnosticLogger
from tld_reconciler.enums import LogLevel, TldCategory
from tld_reconciler.parse import (
    bootstrap_content_changed,
    clean_registry_label,
    is_country_code,
    load_bootstrap_services,
    parse_bootstrap,
    parse_bootstrap_services,
    parse_registry_table,
    parse_tld_list,
    tld_list_content_changed,
)


FIXTURES = Path(__file__).parent / "fixtures"


def capture_logger() -> DiagnosticLogger:
    return DiagnosticLogger(output_stream=io.StringIO(), min_level=LogLevel.DEBUG)


# Strategies for generating test data

ascii_label = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789"),
    min_size=1,
    max_size=20,
).filter(lambda s: not s.startswith("xn--"))


@st.composite
def tld_list_text_strategy(draw) -> tuple[str, list[str]]:
    """Generate TLD list file content and the labels it contains."""
    labels = draw(st.lists(ascii_label, min_size=0, max_size=30))
    header = draw(st.sampled_from([
        "# Version 2025010100, Last Updated Wed Jan  1 07:07:01 2025 UTC",
        "# Version 2024123100",
        "",
    ]))
    lines = [header] + [label.upper() for label in labels]
    return "\n".join(lines) + "\n", labels


class TestCountryCodeShapeProperty:
    """Tests for is_country_code."""

    @given(label=ascii_label)
    @settings(max_examples=100)
    def test_ascii_labels_are_cc_iff_two_characters(self, label: str) -> None:
        """
        *For any* non-Punycode ASCII label, is_country_code SHALL be true
        exactly when the label has two characters.
        """
        assert is_country_code(label) == (len(label) == 2)

    def test_two_code_point_idn_is_cc(self) -> None:
        """Taiwan's IDN decodes to two code points."""
        assert is_country_code("xn--kpry57d") is True
        assert is_country_code("xn--fiqs8s") is True  # 中国

    def test_longer_idn_is_not_cc(self) -> None:
        """
        The two-letter rule counts decoded code points, so IDN country codes
        such as ಭಾರತ (India, four code points) are not country-code shaped.
        Registry-aware callers classify them through the ccTLD lookup.
        """
        assert is_country_code("xn--2scrj9c") is False  # ಭಾರತ, four code points
        assert is_country_code("xn--mgbaam7a8h") is False  # امارات, six code points

    def test_undecodable_punycode_is_not_cc(self) -> None:
        assert is_country_code("xn--ab_c") is False
        assert is_country_code("xn--") is False


class TestTldListParsingProperty:
    """Tests for parse_tld_list."""

    @given(data=tld_list_text_strategy())
    @settings(max_examples=100)
    def test_parse_returns_lowercased_labels_in_order(self, data: tuple[str, list[str]]) -> None:
        """
        *For any* TLD list content, parsing SHALL drop comments and empty
        lines and return the lowercased labels in file order.
        """
        text, labels = data
        assert parse_tld_list(text) == labels

    def test_fixture_parsing(self) -> None:
        labels = parse_tld_list((FIXTURES / "tlds.txt").read_text(encoding="utf-8"))
        assert len(labels) == 14
        assert labels[0] == "ac"
        assert "xn--kpry57d" in labels
        assert all(label == label.lower() for label in labels)

    def test_whitespace_and_blank_lines(self) -> None:
        text = "\n# header\n  COM  \n\n\tNET\n"
        assert parse_tld_list(text) == ["com", "net"]

    def test_empty_content(self) -> None:
        assert parse_tld_list("") == []
        assert parse_tld_list("# only a comment\n") == []


class TestBootstrapParsingProperty:
    """Tests for parse_bootstrap and parse_bootstrap_services."""

    @given(
        services=st.lists(
            st.tuples(
                st.lists(ascii_label, min_size=1, max_size=5),
                st.lists(st.just("https://rdap.example/"), min_size=0, max_size=2),
            ),
            max_size=10,
        ),
    )
    @settings(max_examples=100)
    def test_labels_are_flattened_in_order(self, services: list) -> None:
        """
        *For any* well-formed services array, parse_bootstrap SHALL return
        every label of every service in order.
        """
        raw = [[["." + label.upper() for label in labels], servers] for labels, servers in services]
        expected = [label for labels, _ in services for label in labels]
        assert parse_bootstrap(raw) == expected

    def test_malformed_services_are_skipped(self) -> None:
        raw = [
            "not a service",
            [],
            ["com", ["https://x/"]],
            [["net", 7, "org"], ["https://y/"]],
        ]
        assert parse_bootstrap(raw) == ["net", "org"]

    def test_non_list_input(self) -> None:
        assert parse_bootstrap(None) == []
        assert parse_bootstrap({"services": []}) == []

    def test_services_keep_servers_and_skip_bad_entries(self) -> None:
        logger = capture_logger()
        raw = [
            [["COM", "net"], ["https://rdap.verisign.com/com/v1/"]],
            [["org"]],
            [["biz"], "https://not-a-list/"],
            [["info"], []],
        ]
        services = parse_bootstrap_services(raw, logger)

        assert [service.labels for service in services] == [["com", "net"], ["info"]]
        assert services[0].servers == ["https://rdap.verisign.com/com/v1/"]
        assert services[1].servers == []
        assert len([e for e in logger.entries if e.level is LogLevel.WARN]) == 2

    def test_load_bootstrap_services(self) -> None:
        content = (FIXTURES / "rdap.json").read_text(encoding="utf-8")
        services = load_bootstrap_services(content)
        assert len(services) == 7
        assert load_bootstrap_services('{"version": "1.0"}') == []

    def test_load_bootstrap_services_rejects_invalid_json(self) -> None:
        try:
            load_bootstrap_services("{not json")
            assert False, "Should have raised JSONDecodeError"
        except json.JSONDecodeError:
            pass


class TestRegistryTableParsingProperty:
    """Tests for parse_registry_table against the Root Zone Database fixture."""

    def _entries(self):
        html = (FIXTURES / "root.html").read_text(encoding="utf-8")
        logger = capture_logger()
        return parse_registry_table(html, logger), logger

    def test_rows_are_parsed_and_unknown_category_dropped(self) -> None:
        entries, logger = self._entries()
        labels = [entry.label for entry in entries]

        assert len(entries) == 16
        assert "zzz" not in labels
        assert any("unknown category" in e.message for e in logger.entries)

    def test_unicode_labels_are_cleaned(self) -> None:
        entries, _ = self._entries()
        labels = [entry.label for entry in entries]

        assert "台灣" in labels
        assert "谷歌" in labels
        assert "امارات" in labels  # direction markers removed
        assert all(not label.startswith(".") for label in labels)

    def test_categories_and_delegation(self) -> None:
        entries, _ = self._entries()
        by_label = {entry.label: entry for entry in entries}

        assert by_label["com"].category is TldCategory.GENERIC
        assert by_label["com"].delegated is True
        assert by_label["com"].manager == "VeriSign Global Registry Services"
        assert by_label["台灣"].category is TldCategory.COUNTRY_CODE
        assert by_label["aero"].category is TldCategory.SPONSORED
        assert by_label["arpa"].category is TldCategory.INFRASTRUCTURE
        assert by_label["biz"].category is TldCategory.GENERIC_RESTRICTED
        assert by_label["测试"].category is TldCategory.TEST

        undelegated = sorted(entry.label for entry in entries if not entry.delegated)
        assert undelegated == ["active", "bl", "测试"]
        assert by_label["bl"].manager is None

    def test_missing_table_yields_empty_list(self) -> None:
        logger = capture_logger()
        assert parse_registry_table("<html><body><p>nothing</p></body></html>", logger) == []
        assert logger.entries[-1].level is LogLevel.ERROR

    def test_missing_manager_cell_means_delegated(self) -> None:
        html = (
            '<table id="tld-table"><tr>'
            '<td><span class="domain tld"><a href="/domains/root/db/io.html">.io</a></span></td>'
            "<td>country-code</td>"
            "</tr></table>"
        )
        entries = parse_registry_table(html, capture_logger())
        assert len(entries) == 1
        assert entries[0].label == "io"
        assert entries[0].delegated is True
        assert entries[0].manager is None

    def test_rows_without_anchor_or_cells_are_skipped(self) -> None:
        html = (
            '<table id="tld-table">'
            "<tr><td>.plain</td><td>generic</td><td>Someone</td></tr>"
            '<tr><td><span class="domain tld"><a href="#">.one</a></span></td></tr>'
            '<tr><td><span class="domain tld"><a href="#">.</a></span></td><td>generic</td></tr>'
            "</table>"
        )
        logger = capture_logger()
        assert parse_registry_table(html, logger) == []
        assert len(logger.entries) == 3

    @given(label=ascii_label)
    @settings(max_examples=100)
    def test_clean_label_strips_dot_and_markers(self, label: str) -> None:
        """
        *For any* label, cleaning its anchor text SHALL remove the leading
        dot and any direction markers and lowercase the result.
        """
        raw = "\u200f." + label.upper() + "\u200e"
        assert clean_registry_label(raw) == label


class TestContentChangeDetectionProperty:
    """Tests for the change checks used before replacing stored sources."""

    def test_tld_list_timestamp_only_change_is_ignored(self) -> None:
        v1 = (FIXTURES / "tlds-v1.txt").read_text(encoding="utf-8")
        v2 = (FIXTURES / "tlds-v2-timestamp-only.txt").read_text(encoding="utf-8")
        v3 = (FIXTURES / "tlds-v3-new-tld.txt").read_text(encoding="utf-8")

        assert tld_list_content_changed(v1, v2) is False
        assert tld_list_content_changed(v1, v3) is True
        assert tld_list_content_changed(None, v1) is True

    def test_bootstrap_publication_only_change_is_ignored(self) -> None:
        old = json.dumps({"publication": "2025-01-01", "services": [[["com"], ["https://a/"]]]})
        same = json.dumps({"publication": "2025-02-01", "services": [[["com"], ["https://a/"]]]})
        new = json.dumps({"publication": "2025-02-01", "services": [[["com"], ["https://b/"]]]})

        assert bootstrap_content_changed(old, same) is False
        assert bootstrap_content_changed(old, new) is True
        assert bootstrap_content_changed(old, "{broken") is True
        assert bootstrap_content_changed(None, old) is True
