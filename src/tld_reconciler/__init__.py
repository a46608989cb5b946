"""
TLD Reconciler - unified top-level domain data from the IANA sources.

This package reconciles the IANA RDAP bootstrap file, the plain-text TLD
list and the Root Zone Database into one dataset mapping every delegated
TLD to its type, IDN forms, manager and RDAP servers.
"""

__version__ = "0.1.0"
__author__ = "TLD Reconciler Team"

from tld_reconciler.exceptions import (
    TldReconcilerError,
    ValidationError,
    NetworkError,
    ParseError,
    PersistenceError,
    ConfigError,
)
from tld_reconciler.enums import (
    TldCategory,
    TldType,
    IdnFormat,
    SourceName,
    LogLevel,
    FetchErrorCode,
    ValidationErrorCode,
    UpdateStatus,
)
from tld_reconciler.config import (
    SourceConfig,
    PathsConfig,
    FetchConfig,
    RetryConfig,
    LoggingConfig,
    ApiConfig,
    SystemConfig,
    create_default_config,
    load_config_from_file,
    save_config_to_file,
    apply_env_overrides,
)
from tld_reconciler.models import (
    BootstrapService,
    RegistryEntry,
    ManualOverrideEntry,
    ManagerAliasEntry,
    SupplementalData,
    IdnPair,
    UnifiedTldEntry,
    ServiceGroup,
    UnifiedDataset,
    IdnCounts,
    TldCounts,
    RegistryAnalysis,
    DatasetAnalysis,
    SourceComparison,
    ComparisonResult,
    MissingTld,
    CoverageAnalysis,
    ManagerSubsidiary,
    ManagerGroup,
    ManagerGrouping,
    IntegrityReport,
    DownloadMetadata,
    FullAnalysis,
)
from tld_reconciler.diagnostics import (
    DiagnosticLogger,
    LogEntry,
    create_logger,
)
from tld_reconciler.idn import (
    canonical_label,
    is_punycode,
    is_idn,
    get_idn_format,
    to_ascii,
    to_unicode,
    idn_pair,
)
from tld_reconciler.parse import (
    is_country_code,
    parse_tld_list,
    parse_bootstrap,
    parse_bootstrap_services,
    parse_registry_table,
)
from tld_reconciler.reconcile import (
    build_cctld_lookup,
    find_duplicate_bootstrap_labels,
)
from tld_reconciler.analyze import (
    analyze_tld_list,
    analyze_bootstrap,
    analyze_registry,
    analyze_rdap_coverage,
    analyze_dataset,
    compare_sources,
)
from tld_reconciler.compare import (
    compare,
    compare_bootstrap_vs_registry,
    compare_tld_list_vs_registry,
)
from tld_reconciler.builder import (
    build_unified_dataset,
)
from tld_reconciler.supplemental import (
    parse_supplemental,
    validate_supplemental_structure,
    check_supplemental_integrity,
    group_tlds_by_manager,
)
from tld_reconciler.validators import (
    validate_bootstrap,
    validate_tld_list,
    validate_registry_html,
)
from tld_reconciler.retry_manager import (
    RetryManager,
    RetryResult,
)
from tld_reconciler.fetcher import (
    SourceFetcher,
    FetchResult,
)
from tld_reconciler.store import (
    DataStore,
)
from tld_reconciler.pipeline import (
    TldPipeline,
    SourceUpdate,
)
from tld_reconciler.api import (
    create_app,
)
from tld_reconciler.cli import (
    main as cli_main,
    create_parser,
)

__all__ = [
    # Exceptions
    "TldReconcilerError",
    "ValidationError",
    "NetworkError",
    "ParseError",
    "PersistenceError",
    "ConfigError",
    # Enums
    "TldCategory",
    "TldType",
    "IdnFormat",
    "SourceName",
    "LogLevel",
    "FetchErrorCode",
    "ValidationErrorCode",
    "UpdateStatus",
    # Configuration
    "SourceConfig",
    "PathsConfig",
    "FetchConfig",
    "RetryConfig",
    "LoggingConfig",
    "ApiConfig",
    "SystemConfig",
    "create_default_config",
    "load_config_from_file",
    "save_config_to_file",
    "apply_env_overrides",
    # Models
    "BootstrapService",
    "RegistryEntry",
    "ManualOverrideEntry",
    "ManagerAliasEntry",
    "SupplementalData",
    "IdnPair",
    "UnifiedTldEntry",
    "ServiceGroup",
    "UnifiedDataset",
    "IdnCounts",
    "TldCounts",
    "RegistryAnalysis",
    "DatasetAnalysis",
    "SourceComparison",
    "ComparisonResult",
    "MissingTld",
    "CoverageAnalysis",
    "ManagerSubsidiary",
    "ManagerGroup",
    "ManagerGrouping",
    "IntegrityReport",
    "DownloadMetadata",
    "FullAnalysis",
    # Diagnostics
    "DiagnosticLogger",
    "LogEntry",
    "create_logger",
    # IDN
    "is_punycode",
    "is_idn",
    "get_idn_format",
    "canonical_label",
    "to_ascii",
    "to_unicode",
    "idn_pair",
    # Parsers
    "is_country_code",
    "parse_tld_list",
    "parse_bootstrap",
    "parse_bootstrap_services",
    "parse_registry_table",
    # Reconciler
    "build_cctld_lookup",
    "find_duplicate_bootstrap_labels",
    # Analyzers
    "analyze_tld_list",
    "analyze_bootstrap",
    "analyze_registry",
    "analyze_rdap_coverage",
    "analyze_dataset",
    "compare_sources",
    # Comparators
    "compare",
    "compare_bootstrap_vs_registry",
    "compare_tld_list_vs_registry",
    # Builder
    "build_unified_dataset",
    # Supplemental
    "parse_supplemental",
    "validate_supplemental_structure",
    "check_supplemental_integrity",
    "group_tlds_by_manager",
    # Validators
    "validate_bootstrap",
    "validate_tld_list",
    "validate_registry_html",
    # Retry Manager
    "RetryManager",
    "RetryResult",
    # Fetcher
    "SourceFetcher",
    "FetchResult",
    # Store
    "DataStore",
    # Pipeline
    "TldPipeline",
    "SourceUpdate",
    # API
    "create_app",
    # CLI
    "cli_main",
    "create_parser",
]
