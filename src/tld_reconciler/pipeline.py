"""
TLD pipeline for the reconciler.

This module coordinates the components into the two workflows the CLI and
the HTTP API expose:
- Refreshing the canonical sources (download, validate, change check,
  save, record metadata)
- Reading the stored sources and running the parsers, analyzers,
  comparators, dataset builder and supplemental integrator over them
"""

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import httpx

from .analyze import analyze_dataset, analyze_rdap_coverage, compare_sources
from .builder import build_unified_dataset
from .compare import compare_bootstrap_vs_registry, compare_tld_list_vs_registry
from .config import SystemConfig
from .diagnostics import DiagnosticLogger
from .enums import SourceName, UpdateStatus
from .exceptions import ParseError, PersistenceError, TldReconcilerError
from .fetcher import SourceFetcher
from .models import (
    BootstrapService,
    ComparisonResult,
    CoverageAnalysis,
    DatasetAnalysis,
    FullAnalysis,
    IntegrityReport,
    ManagerGrouping,
    RegistryEntry,
    UnifiedDataset,
)
from .parse import (
    bootstrap_content_changed,
    load_bootstrap_services,
    parse_bootstrap,
    parse_bootstrap_services,
    parse_registry_table,
    parse_tld_list,
    tld_list_content_changed,
)
from .retry_manager import RetryManager
from .store import SOURCE_FILES, DataStore
from .supplemental import check_supplemental_integrity, group_tlds_by_manager
from .validators import validate_bootstrap, validate_registry_html, validate_tld_list


COMPONENT = "pipeline"

# Order in which update_all refreshes the sources
UPDATE_ORDER = (SourceName.RDAP_BOOTSTRAP, SourceName.TLD_LIST, SourceName.ROOT_ZONE_DB)


@dataclass
class SourceUpdate:
    """Result of refreshing one canonical source."""

    source: SourceName
    status: UpdateStatus
    path: Optional[Path] = None
    attempts: int = 0
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is UpdateStatus.FAILED


def _registry_changed(old: Optional[str], new: str) -> bool:
    return old != new


class TldPipeline:
    """
    Orchestrates source refreshes and the analysis views.

    The download side is async (httpx); everything reading the stored
    sources is synchronous.
    """

    async def __aenter__(self) -> "TldPipeline":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        pass

    def __init__(
        self,
        config: SystemConfig,
        store: Optional[DataStore] = None,
        logger: Optional[DiagnosticLogger] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        retry_manager: Optional[RetryManager] = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            config: System configuration
            store: Data store (defaults to one rooted at config.paths.data_dir)
            logger: Optional diagnostic logger
            http_client: Optional preconfigured client for downloads
            retry_manager: Optional retry manager (defaults to config.retry)
        """
        self._config = config
        self._logger = logger
        self._store = store or DataStore(config.paths.data_dir, logger)
        self._http_client = http_client
        self._retry_manager = retry_manager or RetryManager(config.retry)

        self._urls = {
            SourceName.RDAP_BOOTSTRAP: config.sources.rdap_bootstrap_url,
            SourceName.TLD_LIST: config.sources.tld_list_url,
            SourceName.ROOT_ZONE_DB: config.sources.root_zone_db_url,
        }
        self._validators: dict[SourceName, Callable] = {
            SourceName.RDAP_BOOTSTRAP: validate_bootstrap,
            SourceName.TLD_LIST: validate_tld_list,
            SourceName.ROOT_ZONE_DB: validate_registry_html,
        }
        self._change_checks: dict[SourceName, Callable[[Optional[str], str], bool]] = {
            SourceName.RDAP_BOOTSTRAP: bootstrap_content_changed,
            SourceName.TLD_LIST: tld_list_content_changed,
            SourceName.ROOT_ZONE_DB: _registry_changed,
        }

    @property
    def store(self) -> DataStore:
        return self._store

    def _fetcher(self) -> SourceFetcher:
        return SourceFetcher(
            timeout=self._config.fetch.timeout_seconds,
            user_agent=self._config.fetch.user_agent,
            client=self._http_client,
        )

    # ------------------------------------------------------------------
    # Source refresh
    # ------------------------------------------------------------------

    async def update_source(
        self,
        source: SourceName,
        fetcher: Optional[SourceFetcher] = None,
    ) -> SourceUpdate:
        """
        Refresh one canonical source.

        The download is skipped when the server answers 304 or the recorded
        max-age is still fresh. Downloaded content is validated before it
        replaces the stored copy; when only volatile parts changed (the TLD
        list header timestamp, bootstrap metadata) nothing is written.

        Args:
            source: Which source to refresh
            fetcher: Optional open fetcher to reuse

        Returns:
            SourceUpdate describing what happened

        Raises:
            NetworkError: If the download fails after retries
            ValidationError: If the downloaded content is malformed
            PersistenceError: If the file or metadata cannot be written
        """
        if fetcher is None:
            async with self._fetcher() as own_fetcher:
                return await self.update_source(source, own_fetcher)

        url = self._urls[source]
        filename = SOURCE_FILES[source]
        metadata = self._store.get_metadata(source)

        if self._logger:
            self._logger.debug(COMPONENT, f"Downloading {filename}", {"url": url})

        retry_result = await self._retry_manager.execute_with_retry(
            lambda: fetcher.fetch(url, metadata),
            is_retryable=self._retry_manager.is_retryable_exception,
        )
        if not retry_result.success:
            raise retry_result.last_error

        fetched = retry_result.result
        if fetched.unchanged:
            if self._logger:
                self._logger.info(COMPONENT, f"Skipping {filename} - file unchanged")
            return SourceUpdate(
                source=source,
                status=UpdateStatus.NOT_MODIFIED,
                attempts=retry_result.attempts,
            )

        self._validators[source](fetched.content, self._logger)

        new_text = fetched.content.decode("utf-8", errors="replace")
        old_text = self._store.read_source(source) if self._store.has_source(source) else None
        if old_text is not None and not self._change_checks[source](old_text, new_text):
            if self._logger:
                self._logger.info(COMPONENT, f"Skipping {filename} - only volatile fields changed")
            return SourceUpdate(
                source=source,
                status=UpdateStatus.CONTENT_UNCHANGED,
                attempts=retry_result.attempts,
            )

        path = self._store.write_source(source, fetched.content)
        self._store.update_metadata(source, fetched.metadata)

        if self._logger:
            self._logger.info(
                COMPONENT,
                f"Downloaded {filename}",
                {"bytes": len(fetched.content), "attempts": retry_result.attempts},
            )
        return SourceUpdate(
            source=source,
            status=UpdateStatus.DOWNLOADED,
            path=path,
            attempts=retry_result.attempts,
        )

    async def update_all(
        self,
        sources: Optional[list[SourceName]] = None,
    ) -> list[SourceUpdate]:
        """
        Refresh several sources over one HTTP client.

        A failing source does not stop the others; its SourceUpdate carries
        status FAILED and the error message.

        Args:
            sources: Sources to refresh (defaults to all three)

        Returns:
            One SourceUpdate per requested source, in request order
        """
        results: list[SourceUpdate] = []
        async with self._fetcher() as fetcher:
            for source in sources or UPDATE_ORDER:
                try:
                    results.append(await self.update_source(source, fetcher))
                except TldReconcilerError as e:
                    if self._logger:
                        self._logger.log_error(
                            COMPONENT,
                            f"Failed to update {SOURCE_FILES[source]}",
                            error=e,
                            request_url=self._urls[source],
                        )
                    results.append(SourceUpdate(
                        source=source,
                        status=UpdateStatus.FAILED,
                        error=e.message,
                    ))
        return results

    # ------------------------------------------------------------------
    # Stored source views
    # ------------------------------------------------------------------

    def registry_entries(self) -> list[RegistryEntry]:
        """Parse the stored Root Zone Database page."""
        html = self._store.read_source(SourceName.ROOT_ZONE_DB)
        return parse_registry_table(html, self._logger)

    def tld_labels(self) -> list[str]:
        """Parse the stored TLD list."""
        return parse_tld_list(self._store.read_source(SourceName.TLD_LIST))

    def bootstrap_raw_services(self) -> list:
        """
        Read the ``services`` array of the stored bootstrap file.

        Raises:
            ParseError: If the stored file is not valid JSON
        """
        content = self._store.read_source(SourceName.RDAP_BOOTSTRAP)
        try:
            return load_bootstrap_services(content)
        except json.JSONDecodeError as e:
            raise ParseError(
                code="invalid_json",
                message=f"Stored RDAP bootstrap file is not valid JSON: {e}",
                details={"file_path": str(self._store.source_path(SourceName.RDAP_BOOTSTRAP))},
            ) from e

    def bootstrap_services(self) -> list[BootstrapService]:
        return parse_bootstrap_services(self.bootstrap_raw_services(), self._logger)

    def bootstrap_labels(self) -> list[str]:
        return parse_bootstrap(self.bootstrap_raw_services())

    # ------------------------------------------------------------------
    # Unified dataset
    # ------------------------------------------------------------------

    def build_dataset(self, generated_at: Optional[datetime] = None) -> UnifiedDataset:
        """
        Build the unified dataset from the stored sources.

        Manual ccTLD RDAP servers come from the supplemental file; a
        missing file only produces a warning.
        """
        if not self._store.supplemental_path.exists() and self._logger:
            self._logger.warn(
                COMPONENT,
                "Could not load manual ccTLD data; building without overrides",
                {"file_path": str(self._store.supplemental_path)},
            )
        supplemental = self._store.load_supplemental()

        return build_unified_dataset(
            self.bootstrap_raw_services(),
            self.registry_entries(),
            supplemental.cctld_rdap_servers,
            generated_at=generated_at,
            logger=self._logger,
        )

    def build_and_save_dataset(self, generated_at: Optional[datetime] = None) -> UnifiedDataset:
        """Build the unified dataset and persist it as tlds.json."""
        dataset = self.build_dataset(generated_at)
        path = self._store.save_dataset(dataset)
        if self._logger:
            self._logger.info(
                COMPONENT,
                f"Built {path.name} ({len(dataset.services)} service groups)",
            )
        return dataset

    def dataset(self) -> UnifiedDataset:
        """
        Return the persisted dataset, building it in memory if absent.
        """
        try:
            return self._store.load_dataset()
        except PersistenceError as e:
            if e.code != "not_found":
                raise
        return self.build_dataset()

    # ------------------------------------------------------------------
    # Analysis views
    # ------------------------------------------------------------------

    def full_analysis(self) -> FullAnalysis:
        """Per-source analyses and RDAP coverage of the stored sources."""
        registry_entries = self.registry_entries()
        bootstrap_labels = self.bootstrap_labels()
        return FullAnalysis(
            sources=compare_sources(
                self.tld_labels(),
                bootstrap_labels,
                registry_entries,
                self._logger,
            ),
            rdap_coverage=analyze_rdap_coverage(bootstrap_labels, registry_entries, self._logger),
        )

    def bootstrap_comparison(self) -> ComparisonResult:
        return compare_bootstrap_vs_registry(self.bootstrap_labels(), self.registry_entries())

    def tld_list_comparison(self) -> ComparisonResult:
        return compare_tld_list_vs_registry(self.tld_labels(), self.registry_entries())

    def rdap_coverage(self) -> CoverageAnalysis:
        return analyze_rdap_coverage(self.bootstrap_labels(), self.registry_entries(), self._logger)

    def manager_grouping(self) -> ManagerGrouping:
        """Group dataset TLDs by manager using the curated aliases."""
        supplemental = self._store.load_supplemental()
        return group_tlds_by_manager(self.dataset(), supplemental.manager_aliases)

    def dataset_analysis(self) -> DatasetAnalysis:
        return analyze_dataset(self.dataset())

    def integrity_report(self) -> IntegrityReport:
        """Check the supplemental data against the current sources."""
        supplemental = self._store.load_supplemental()
        return check_supplemental_integrity(
            supplemental,
            self.build_dataset(),
            self.bootstrap_labels(),
        )
