"""Scan data store: the single source of truth for audit state.

Loads a scan result document once at startup and writes the whole mapping
back to the same location after every accepted decision. There is no
incremental patching and no separate audit-log file.

Provides:
- ScanDataStore: Parsed scan result with first-valid-match lookups and
  atomic full-overwrite persistence
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Iterator

import structlog
from pydantic import ValidationError

from .errors import LoadError, PersistenceError
from .models import SCAN_RESULT_ADAPTER, Match, ScanResult, first_valid_match

logger = structlog.get_logger()


class ScanDataStore:
    """Parsed scan result bound to the file it was loaded from.

    The store is the only component that resolves a Match by path for
    mutation. Views, filters and export read through ``first_valid_match``
    so that all of them agree on the authoritative match of a path.
    """

    def __init__(self, files: ScanResult, source: str | Path | None = None):
        """Initialize store from an already-parsed mapping.

        Args:
            files: Mapping of file path to ordered match list
            source: Location the data was loaded from and is saved back to
        """
        self.files = files
        self.source = Path(source) if source is not None else None

    @classmethod
    def load(cls, source: str | Path) -> "ScanDataStore":
        """Load and structurally validate a scan result file.

        Args:
            source: Path to the scan result JSON document

        Returns:
            Populated ScanDataStore bound to ``source``

        Raises:
            LoadError: File unreadable, not JSON, or not an object mapping
                paths to arrays of match objects

        Example:
            >>> store = ScanDataStore.load("results.json")
            >>> len(store)
            42
        """
        log = logger.bind(source=str(source))

        try:
            raw = Path(source).read_text(encoding="utf-8")
        except OSError as e:
            log.error("scan_data_unreadable", error=str(e))
            raise LoadError(str(source), str(e)) from e

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            log.error("scan_data_invalid_json", error=str(e))
            raise LoadError(str(source), f"invalid JSON: {e}") from e

        if not isinstance(document, dict):
            raise LoadError(
                str(source),
                f"top-level value must be an object, got {type(document).__name__}",
            )

        try:
            files = SCAN_RESULT_ADAPTER.validate_python(document)
        except ValidationError as e:
            log.error("scan_data_invalid_shape", errors=e.error_count())
            raise LoadError(str(source), f"invalid scan result structure: {e}") from e

        log.info("scan_data_loaded", files=len(files))
        return cls(files, source)

    def __len__(self) -> int:
        return len(self.files)

    def __contains__(self, path: object) -> bool:
        return path in self.files

    def __iter__(self) -> Iterator[str]:
        return iter(self.files)

    def paths(self) -> list[str]:
        """All scanned paths in lexicographic order."""
        return sorted(self.files)

    def matches(self, path: str) -> list[Match]:
        """Ordered match list of a path (empty if unknown)."""
        return self.files.get(path, [])

    def first_valid_match(self, path: str) -> Match | None:
        """Authoritative match of a path under the first-valid-match rule."""
        return first_valid_match(self.files.get(path))

    def to_document(self) -> dict:
        """Serialize to the on-disk shape (same as the input document)."""
        return {
            path: [
                match.model_dump(mode="json", by_alias=True, exclude_unset=True)
                for match in matches
            ]
            for path, matches in self.files.items()
        }

    def save(self, destination: str | Path | None = None) -> Path:
        """Write the entire scan result back to disk as a full overwrite.

        The document is written to a temporary file in the destination
        directory and moved into place, so a failed write never replaces the
        previous file with a partial one.

        Args:
            destination: Override path (defaults to the load location)

        Returns:
            Path that was written

        Raises:
            PersistenceError: Serialization or any filesystem failure
        """
        target = Path(destination) if destination is not None else self.source
        if target is None:
            raise PersistenceError("<unbound>", ValueError("store has no source path"))

        tmp_name = None
        try:
            payload = json.dumps(self.to_document(), indent=2, ensure_ascii=False)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent or ".")
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, target)
            tmp_name = None
        except (OSError, TypeError, ValueError) as e:
            logger.error("scan_data_save_failed", destination=str(target), error=str(e))
            raise PersistenceError(str(target), e) from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.debug("scan_data_saved", destination=str(target), files=len(self.files))
        return target
