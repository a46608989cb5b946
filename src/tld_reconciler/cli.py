"""
Command-line interface for the TLD reconciler.

This module provides the main CLI entry point with commands for:
- download: Refresh the canonical IANA sources
- build: Build and save the unified TLD dataset
- analyze / compare / coverage / managers: Report on the stored sources
- check-supplemental: Verify the curated supplemental data
- serve: Run the JSON HTTP API
- config: Configuration management
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

from . import __version__
from .config import (
    DEFAULT_CONFIG_PATH,
    SystemConfig,
    apply_env_overrides,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
    validate_config,
)
from .diagnostics import DiagnosticLogger, create_logger
from .enums import SourceName, UpdateStatus
from .exceptions import ConfigError, TldReconcilerError
from .models import ComparisonResult, TldCounts
from .pipeline import TldPipeline
from .store import DATASET_FILE, SOURCE_FILES
from .supplemental import validate_supplemental_structure


def load_cli_config(args: argparse.Namespace) -> SystemConfig:
    """
    Resolve the configuration for a command.

    An explicit --config file must exist; otherwise the default location is
    used when present. Environment variables and --data-dir/--verbose are
    applied on top.

    Raises:
        ConfigError: If the configuration cannot be loaded or is invalid
    """
    config = None
    if args.config:
        config = load_config_from_file(Path(args.config))
        if config is None:
            raise ConfigError(
                code="not_found",
                message=f"Could not load config from {args.config}",
            )
    elif DEFAULT_CONFIG_PATH.exists():
        config = load_config_from_file(DEFAULT_CONFIG_PATH)

    if config is None:
        config = create_default_config()

    apply_env_overrides(config)

    if args.data_dir:
        config.paths.data_dir = Path(args.data_dir)
    if args.verbose:
        config.logging.level = "debug"
    return config


def create_cli_logger(config: SystemConfig) -> DiagnosticLogger:
    return create_logger(config.logging.level, config.logging.output_format)


def create_pipeline(args: argparse.Namespace) -> TldPipeline:
    """Build a pipeline from command-line arguments."""
    config = load_cli_config(args)
    return TldPipeline(config, logger=create_cli_logger(config))


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _print_counts(title: str, counts: TldCounts) -> None:
    print(f"{title}")
    print(f"  Total:  {counts.total}")
    print(f"  ccTLDs: {counts.cc_tlds}")
    print(f"  gTLDs:  {counts.g_tlds}")
    print(f"  IDNs:   {counts.idns} "
          f"({counts.idn_breakdown.ascii} ASCII, {counts.idn_breakdown.unicode} Unicode)")


def _print_comparison(title: str, result: ComparisonResult, source_name: str) -> None:
    print(title)
    print(f"  {source_name}: {result.source_count}")
    print(f"  Root Zone DB: {result.registry_count}")
    print(f"  In both: {result.in_both}")
    print(f"  Only in {source_name}: {len(result.only_in_source)}")
    for label in result.only_in_source:
        print(f"    - {label}")
    print(f"  Only in Root Zone DB: {len(result.only_in_registry)}")
    for category, labels in sorted(result.only_in_registry_by_category.items()):
        print(f"    {category}: {', '.join(labels)}")


def cmd_download(args: argparse.Namespace) -> int:
    """Handle the 'download' command."""
    pipeline = create_pipeline(args)
    sources = [SourceName(name) for name in args.source] if args.source else None
    results = asyncio.run(pipeline.update_all(sources))

    for result in results:
        filename = SOURCE_FILES[result.source]
        if result.status is UpdateStatus.DOWNLOADED:
            print(f"✓ Downloaded {filename}")
        elif result.status is UpdateStatus.FAILED:
            print(f"✗ Failed to download {filename}: {result.error}", file=sys.stderr)
        else:
            print(f"⊘ Skipping {filename} - file unchanged")

    return 1 if any(result.failed for result in results) else 0


def cmd_build(args: argparse.Namespace) -> int:
    """Handle the 'build' command."""
    pipeline = create_pipeline(args)
    print(f"Building {DATASET_FILE}...")
    dataset = pipeline.build_and_save_dataset()
    print(f"✓ Built {DATASET_FILE} ({len(dataset.services)} service groups)")
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    """Handle the 'analyze' command."""
    pipeline = create_pipeline(args)
    analysis = pipeline.full_analysis()
    if args.json:
        print_json(analysis.to_dict())
        return 0

    _print_counts("TLD list (tlds.txt)", analysis.sources.tld_list)
    _print_counts("RDAP bootstrap", analysis.sources.rdap_bootstrap)

    registry = analysis.sources.root_zone_db
    _print_counts("Root Zone Database", registry)
    print(f"  Delegated:   {registry.delegated}")
    print(f"  Undelegated: {registry.undelegated} "
          f"({registry.undelegated_cc_tlds} ccTLDs, {registry.undelegated_g_tlds} gTLDs)")
    for category, count in sorted(registry.by_category.items()):
        print(f"    {category}: {count}")

    coverage = analysis.rdap_coverage
    print("RDAP coverage of delegated gTLDs")
    print(f"  With RDAP:    {coverage.g_tlds_with_rdap}/{coverage.total_delegated_g_tlds}")
    print(f"  Without RDAP: {coverage.g_tlds_without_rdap}")
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    """Handle the 'compare' command."""
    pipeline = create_pipeline(args)
    if args.target == "bootstrap":
        result = pipeline.bootstrap_comparison()
        title, source_name = "RDAP bootstrap vs Root Zone DB", "RDAP bootstrap"
    else:
        result = pipeline.tld_list_comparison()
        title, source_name = "TLD list vs Root Zone DB", "TLD list"

    if args.json:
        print_json(result.to_dict())
    else:
        _print_comparison(title, result, source_name)
    return 0


def cmd_coverage(args: argparse.Namespace) -> int:
    """Handle the 'coverage' command."""
    pipeline = create_pipeline(args)
    coverage = pipeline.rdap_coverage()
    if args.json:
        print_json(coverage.to_dict())
        return 0

    print(f"Delegated gTLDs: {coverage.total_delegated_g_tlds}")
    print(f"  With RDAP:    {coverage.g_tlds_with_rdap}")
    print(f"  Without RDAP: {coverage.g_tlds_without_rdap}")
    for missing in coverage.missing_g_tlds:
        print(f"    - {missing.tld} ({missing.category.value})")
    return 0


def cmd_managers(args: argparse.Namespace) -> int:
    """Handle the 'managers' command."""
    pipeline = create_pipeline(args)
    grouping = pipeline.manager_grouping()
    if args.json:
        print_json(grouping.to_dict())
        return 0

    groups = grouping.manager_groups
    if args.limit:
        groups = groups[:args.limit]

    print(f"Managers: {grouping.total_managers}")
    for group in groups:
        print(f"  {group.manager}: {group.tld_count} "
              f"({group.cc_tld_count} ccTLDs, {group.g_tld_count} gTLDs)")
        for subsidiary in group.subsidiaries:
            print(f"    - {subsidiary.name}: {subsidiary.tld_count}")
    return 0


def cmd_check_supplemental(args: argparse.Namespace) -> int:
    """Handle the 'check-supplemental' command."""
    pipeline = create_pipeline(args)
    raw = pipeline.store.load_supplemental_raw()
    if raw is None:
        print(f"No supplemental data at: {pipeline.store.supplemental_path}")
        return 0

    problems = validate_supplemental_structure(raw)
    for problem in problems:
        print(f"✗ {problem}")

    report = pipeline.integrity_report()
    for label in report.unknown_override_labels:
        print(f"✗ Manual ccTLD '{label}' is not in the Root Zone Database")
    for label in report.bootstrap_duplicates:
        print(f"✗ Manual ccTLD '{label}' is already in the RDAP bootstrap file")
    for alias, names in sorted(report.unknown_alias_managers.items()):
        for name in names:
            print(f"✗ Manager '{name}' in alias '{alias}' does not manage any TLD")

    if problems or not report.ok:
        return 1
    print("✓ Supplemental data is consistent")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Handle the 'serve' command."""
    import uvicorn

    from .api import create_app

    config = load_cli_config(args)
    logger = create_cli_logger(config)
    pipeline = TldPipeline(config, logger=logger)
    host = args.host or config.api.host
    port = args.port or config.api.port

    uvicorn.run(create_app(pipeline, logger), host=host, port=port)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path) if args.path else DEFAULT_CONFIG_PATH

    if args.action == "show":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"No configuration found at: {config_path}")
            print("Use 'config init' to create a default configuration.")
            return 1

        print(f"Configuration from: {config_path}")
        print(f"  Data directory: {config.paths.data_dir}")
        print(f"  RDAP bootstrap: {config.sources.rdap_bootstrap_url}")
        print(f"  TLD list: {config.sources.tld_list_url}")
        print(f"  Root Zone DB: {config.sources.root_zone_db_url}")
        print(f"  HTTP timeout: {config.fetch.timeout_seconds}s")
        print(f"  Max retries: {config.retry.max_retries}")
        print(f"  Log level: {config.logging.level}")
        print(f"  API: {config.api.host}:{config.api.port}")
        return 0

    elif args.action == "init":
        if config_path.exists() and not args.force:
            print(f"Configuration already exists at: {config_path}")
            print("Use --force to overwrite.")
            return 1

        config = create_default_config(Path(args.data_dir) if args.data_dir else None)
        save_config_to_file(config, config_path)
        print(f"Configuration created at: {config_path}")
        return 0

    elif args.action == "validate":
        config = load_config_from_file(config_path)
        if config is None:
            print(f"Error: Could not load config from {config_path}", file=sys.stderr)
            return 1
        validate_config(config)
        print(f"Configuration at {config_path} is valid.")
        return 0

    return 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="tld-reconciler",
        description="Reconcile the IANA TLD sources into one dataset",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config", "-c",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--data-dir", "-d",
        help="Data directory (overrides configuration)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'download' command
    download_parser = subparsers.add_parser(
        "download",
        help="Download the IANA sources",
    )
    download_parser.add_argument(
        "--source", "-s",
        action="append",
        choices=[source.value for source in SourceName],
        help="Source to download (repeatable; default: all)",
    )
    download_parser.set_defaults(func=cmd_download)

    # 'build' command
    build_parser = subparsers.add_parser(
        "build",
        help=f"Build {DATASET_FILE} from the downloaded sources",
    )
    build_parser.set_defaults(func=cmd_build)

    # 'analyze' command
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze the three sources and RDAP coverage",
    )
    analyze_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the analysis as JSON",
    )
    analyze_parser.set_defaults(func=cmd_analyze)

    # 'compare' command
    compare_parser = subparsers.add_parser(
        "compare",
        help="Compare a source against the Root Zone Database",
    )
    compare_parser.add_argument(
        "target",
        choices=["bootstrap", "tlds"],
        help="Source to compare",
    )
    compare_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the comparison as JSON",
    )
    compare_parser.set_defaults(func=cmd_compare)

    # 'coverage' command
    coverage_parser = subparsers.add_parser(
        "coverage",
        help="List delegated gTLDs without an RDAP server",
    )
    coverage_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the coverage analysis as JSON",
    )
    coverage_parser.set_defaults(func=cmd_coverage)

    # 'managers' command
    managers_parser = subparsers.add_parser(
        "managers",
        help="Group TLDs by manager",
    )
    managers_parser.add_argument(
        "--limit", "-n",
        type=int,
        default=0,
        help="Show only the largest N managers",
    )
    managers_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the grouping as JSON",
    )
    managers_parser.set_defaults(func=cmd_managers)

    # 'check-supplemental' command
    check_parser = subparsers.add_parser(
        "check-supplemental",
        help="Verify supplemental data against the sources",
    )
    check_parser.set_defaults(func=cmd_check_supplemental)

    # 'serve' command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the JSON HTTP API",
    )
    serve_parser.add_argument(
        "--host",
        help="Bind address (default from configuration)",
    )
    serve_parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port (default from configuration)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["show", "init", "validate"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "--path", "-p",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except TldReconcilerError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
