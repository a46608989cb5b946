"""
Tests for the command-line interface.

Commands run through main() against a temporary data directory seeded from
the fixtures; the user-level config file is redirected to a missing path.
"""

import json
import shutil
import tempfile
from pathlib import Path

import httpx
import pytest

from tld_reconciler import cli
from tld_reconciler.config import create_default_config
from tld_reconciler.enums import SourceName
from tld_reconciler.pipeline import TldPipeline
from tld_reconciler.retry_manager import RetryManager
from tld_reconciler.store import DataStore


FIXTURES = Path(__file__).parent / "fixtures"

FIXTURE_FILES = {
    SourceName.RDAP_BOOTSTRAP: "rdap.json",
    SourceName.TLD_LIST: "tlds.txt",
    SourceName.ROOT_ZONE_DB: "root.html",
}


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "DEFAULT_CONFIG_PATH", tmp_path / "no-such-config.json")
    for name in (
        "TLD_RECONCILER_DATA_DIR",
        "TLD_RECONCILER_LOG_LEVEL",
        "TLD_RECONCILER_LOG_FORMAT",
        "TLD_RECONCILER_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def seed(data_dir: Path, supplemental: bool = True) -> None:
    store = DataStore(data_dir)
    for source, name in FIXTURE_FILES.items():
        store.write_source(source, (FIXTURES / name).read_bytes())
    if supplemental:
        shutil.copy(FIXTURES / "supplemental.json", store.supplemental_path)


class TestReportCommands:
    """Tests for build, analyze, compare, coverage and managers."""

    def test_no_command_prints_help(self, capsys) -> None:
        assert cli.main([]) == 0
        assert "usage: tld-reconciler" in capsys.readouterr().out

    def test_build(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            seed(Path(tmpdir))
            exit_code = cli.main(["--data-dir", tmpdir, "build"])
            out = capsys.readouterr().out

            assert exit_code == 0
            assert "Building tlds.json..." in out
            assert "✓ Built tlds.json (8 service groups)" in out
            assert (Path(tmpdir) / "generated" / "tlds.json").exists()

    def test_analyze_json(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            seed(Path(tmpdir))
            assert cli.main(["-d", tmpdir, "analyze", "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["tldsFile"]["total"] == 14
        assert data["rdapCoverage"]["totalDelegatedGTlds"] == 8

    def test_analyze_text(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            seed(Path(tmpdir))
            assert cli.main(["-d", tmpdir, "analyze"]) == 0

        out = capsys.readouterr().out
        assert "Root Zone Database" in out
        assert "With RDAP:    6/8" in out

    def test_compare(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            seed(Path(tmpdir))
            assert cli.main(["-d", tmpdir, "compare", "tlds", "--json"]) == 0
            data = json.loads(capsys.readouterr().out)
            assert "listonly" in data["onlyInSource"]

            assert cli.main(["-d", tmpdir, "compare", "bootstrap"]) == 0
            out = capsys.readouterr().out
            assert "In both: 6" in out
            assert "- bootstraponly" in out

    def test_coverage(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            seed(Path(tmpdir))
            assert cli.main(["-d", tmpdir, "coverage"]) == 0

        out = capsys.readouterr().out
        assert "- aero (sponsored)" in out
        assert "- arpa (infrastructure)" in out

    def test_managers_limit(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            seed(Path(tmpdir))
            assert cli.main(["-d", tmpdir, "managers", "-n", "1"]) == 0

        lines = [line for line in capsys.readouterr().out.splitlines() if line.startswith("  ")]
        top_level = [line for line in lines if not line.startswith("    ")]
        assert len(top_level) == 1

    def test_missing_sources_fail_cleanly(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            exit_code = cli.main(["-d", tmpdir, "coverage"])

        assert exit_code == 1
        err = capsys.readouterr().err
        assert "Error: " in err
        assert "Run 'tld-reconciler download' first." in err


class TestCheckSupplementalCommand:
    """Tests for check-supplemental."""

    def test_consistent_fixture(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            seed(Path(tmpdir))
            assert cli.main(["-d", tmpdir, "check-supplemental"]) == 0
        assert "✓ Supplemental data is consistent" in capsys.readouterr().out

    def test_problems_are_listed(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            seed(Path(tmpdir), supplemental=False)
            (Path(tmpdir) / "supplemental.json").write_text(json.dumps({
                "ccTldRdapServers": [{
                    "tld": "zz", "rdapServer": "https://rdap.nic.zz/",
                    "backendOperator": "Nobody", "dateUpdated": "2025-01-01",
                }],
                "managerAliases": {"Ghost": [{"name": "Ghost Registry LLC"}]},
            }), encoding="utf-8")

            assert cli.main(["-d", tmpdir, "check-supplemental"]) == 1

        out = capsys.readouterr().out
        assert "✗ Manual ccTLD 'zz' is not in the Root Zone Database" in out
        assert "✗ Manager 'Ghost Registry LLC' in alias 'Ghost' does not manage any TLD" in out

    def test_no_supplemental_file(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            seed(Path(tmpdir), supplemental=False)
            assert cli.main(["-d", tmpdir, "check-supplemental"]) == 0
        assert "No supplemental data at:" in capsys.readouterr().out


class TestDownloadCommand:
    """Tests for download, with the HTTP client replaced by a mock transport."""

    def test_partial_failure_exit_code(self, capsys, monkeypatch) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            if url.endswith("tlds-alpha-by-domain.txt"):
                return httpx.Response(503)
            if url.endswith("dns.json"):
                return httpx.Response(200, content=(FIXTURES / "rdap.json").read_bytes())
            return httpx.Response(200, content=(FIXTURES / "root.html").read_bytes())

        async def no_sleep(seconds: float) -> None:
            return None

        def create_pipeline(args) -> TldPipeline:
            config = create_default_config(Path(args.data_dir))
            return TldPipeline(
                config,
                http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
                retry_manager=RetryManager(config.retry, sleep=no_sleep),
            )

        monkeypatch.setattr(cli, "create_pipeline", create_pipeline)

        with tempfile.TemporaryDirectory() as tmpdir:
            exit_code = cli.main(["-d", tmpdir, "download"])
            captured = capsys.readouterr()

            assert exit_code == 1
            assert "✓ Downloaded iana-rdap.json" in captured.out
            assert "✓ Downloaded iana-root.html" in captured.out
            assert "✗ Failed to download iana-all.txt" in captured.err
            assert DataStore(Path(tmpdir)).has_source(SourceName.TLD_LIST) is False


class TestConfigCommand:
    """Tests for config init/show/validate and --config."""

    def test_init_show_validate(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = str(Path(tmpdir) / "config.json")

            assert cli.main(["-d", "/srv/tlds", "config", "init", "--path", path]) == 0
            assert cli.main(["config", "init", "--path", path]) == 1
            assert cli.main(["config", "init", "--path", path, "--force"]) == 0
            assert cli.main(["config", "show", "--path", path]) == 0
            assert cli.main(["config", "validate", "--path", path]) == 0

        out = capsys.readouterr().out
        assert "Configuration already exists" in out
        assert "RDAP bootstrap: https://data.iana.org/rdap/dns.json" in out
        assert "is valid." in out

    def test_show_missing_config(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            assert cli.main(["config", "show", "--path", str(Path(tmpdir) / "none.json")]) == 1
        assert "No configuration found" in capsys.readouterr().out

    def test_explicit_config_must_exist(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            exit_code = cli.main(["--config", str(Path(tmpdir) / "none.json"), "build"])
        assert exit_code == 1
        assert "Error: Could not load config" in capsys.readouterr().err

    def test_config_file_sets_data_dir(self, capsys) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            data_dir = Path(tmpdir) / "data"
            seed(data_dir)
            path = str(Path(tmpdir) / "config.json")
            assert cli.main(["-d", str(data_dir), "config", "init", "--path", path]) == 0

            assert cli.main(["--config", path, "build"]) == 0
            assert (data_dir / "generated" / "tlds.json").exists()
