"""
Data store for canonical sources and generated artifacts.

Layout under the data directory::

    canonical/iana-rdap.json     RDAP bootstrap file
    canonical/iana-all.txt       plain-text TLD list
    canonical/iana-root.html     Root Zone Database page
    generated/tlds.json          unified dataset
    generated/metadata.json      download metadata, keyed by file name
    supplemental.json            curated supplemental data
"""

import json
from pathlib import Path
from typing import Any, Optional

from .diagnostics import DiagnosticLogger
from .enums import SourceName
from .exceptions import PersistenceError
from .models import DownloadMetadata, SupplementalData, UnifiedDataset
from .supplemental import parse_supplemental


SOURCE_FILES = {
    SourceName.RDAP_BOOTSTRAP: "iana-rdap.json",
    SourceName.TLD_LIST: "iana-all.txt",
    SourceName.ROOT_ZONE_DB: "iana-root.html",
}

DATASET_FILE = "tlds.json"
METADATA_FILE = "metadata.json"
SUPPLEMENTAL_FILE = "supplemental.json"


class DataStore:
    """
    File-backed storage for source snapshots and generated files.

    All I/O and JSON decoding failures surface as PersistenceError.
    """

    def __init__(self, data_dir: Path, logger: Optional[DiagnosticLogger] = None) -> None:
        """
        Initialize the data store.

        Args:
            data_dir: Root data directory
            logger: Optional diagnostic logger passed to supplemental parsing
        """
        self._data_dir = Path(data_dir)
        self._logger = logger

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    @property
    def canonical_dir(self) -> Path:
        return self._data_dir / "canonical"

    @property
    def generated_dir(self) -> Path:
        return self._data_dir / "generated"

    @property
    def dataset_path(self) -> Path:
        return self.generated_dir / DATASET_FILE

    @property
    def metadata_path(self) -> Path:
        return self.generated_dir / METADATA_FILE

    @property
    def supplemental_path(self) -> Path:
        return self._data_dir / SUPPLEMENTAL_FILE

    def source_path(self, source: SourceName) -> Path:
        return self.canonical_dir / SOURCE_FILES[source]

    def has_source(self, source: SourceName) -> bool:
        return self.source_path(source).exists()

    def read_source(self, source: SourceName) -> str:
        """
        Read a stored source snapshot as text.

        Raises:
            PersistenceError: If the file is missing or unreadable
        """
        path = self.source_path(source)
        if not path.exists():
            raise PersistenceError(
                code="not_found",
                message=(
                    f"{SOURCE_FILES[source]} not found in {self.canonical_dir}. "
                    "Run 'tld-reconciler download' first."
                ),
                details={"file_path": str(path)},
            )
        return self._read_text(path)

    def write_source(self, source: SourceName, data: bytes) -> Path:
        """
        Replace a stored source snapshot.

        Raises:
            PersistenceError: If the file cannot be written
        """
        path = self.source_path(source)
        self._write_bytes(path, data)
        return path

    def load_metadata(self) -> dict[str, DownloadMetadata]:
        """
        Load download metadata keyed by file name.

        A missing metadata file yields an empty mapping.

        Raises:
            PersistenceError: If the file exists but is unreadable or corrupt
        """
        if not self.metadata_path.exists():
            return {}
        raw = self._read_json(self.metadata_path)
        if not isinstance(raw, dict):
            raise PersistenceError(
                code="parse_error",
                message="Metadata file must contain a JSON object",
                details={"file_path": str(self.metadata_path)},
            )
        return {
            name: DownloadMetadata.from_dict(item)
            for name, item in raw.items()
            if isinstance(item, dict)
        }

    def save_metadata(self, metadata: dict[str, DownloadMetadata]) -> None:
        """Write the full download metadata map."""
        data = {name: item.to_dict() for name, item in metadata.items()}
        self._write_json(self.metadata_path, data)

    def get_metadata(self, source: SourceName) -> Optional[DownloadMetadata]:
        return self.load_metadata().get(SOURCE_FILES[source])

    def update_metadata(self, source: SourceName, item: DownloadMetadata) -> None:
        """Record metadata for one source, keeping the other entries."""
        metadata = self.load_metadata()
        metadata[SOURCE_FILES[source]] = item
        self.save_metadata(metadata)

    def save_dataset(self, dataset: UnifiedDataset) -> Path:
        """Persist the unified dataset, replacing any previous build."""
        self._write_json(self.dataset_path, dataset.to_dict())
        return self.dataset_path

    def load_dataset(self) -> UnifiedDataset:
        """
        Load the persisted unified dataset.

        Raises:
            PersistenceError: If the dataset has not been built or is corrupt
        """
        if not self.dataset_path.exists():
            raise PersistenceError(
                code="not_found",
                message=f"{DATASET_FILE} not found. Run 'tld-reconciler build' first.",
                details={"file_path": str(self.dataset_path)},
            )
        raw = self._read_json(self.dataset_path)
        try:
            return UnifiedDataset.from_dict(raw)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Invalid dataset file: {e}",
                details={"file_path": str(self.dataset_path)},
            ) from e

    def load_supplemental_raw(self) -> Optional[Any]:
        """Load the decoded supplemental document, or None if absent."""
        if not self.supplemental_path.exists():
            return None
        return self._read_json(self.supplemental_path)

    def load_supplemental(self) -> SupplementalData:
        """
        Load curated supplemental data.

        A missing file yields empty SupplementalData.
        """
        raw = self.load_supplemental_raw()
        if raw is None:
            return SupplementalData()
        return parse_supplemental(raw, self._logger)

    def _read_text(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to read {path.name}: {e}",
                details={"file_path": str(path)},
            ) from e

    def _read_json(self, path: Path) -> Any:
        text = self._read_text(path)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                code="parse_error",
                message=f"Failed to parse {path.name}: {e}",
                details={"file_path": str(path)},
            ) from e

    def _write_bytes(self, path: Path, data: bytes) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise PersistenceError(
                code="io_error",
                message=f"Failed to write {path.name}: {e}",
                details={"file_path": str(path)},
            ) from e

    def _write_json(self, path: Path, data: Any) -> None:
        text = json.dumps(data, indent=2, ensure_ascii=False)
        self._write_bytes(path, text.encode("utf-8"))
