"""
Pricing document persistence.

The live pricing document is a JSON file read fresh on every request, so
an admin edit is visible to the very next price calculation. Every
successful update snapshots the previous document into a timestamped
backup before the new one is swapped in.
"""

import json
import logging
import os
import shutil
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from cakecraft.core.validation import validate_pricing_document
from .models import PricingBackup

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "pricing-structure-"
BACKUP_SUFFIX = ".json"
_BACKUP_TIME_FORMAT = "%Y-%m-%dT%H-%M-%S-%f"


class PricingDocumentError(RuntimeError):
    """Raised when the pricing document cannot be read or written."""


class PricingDocumentStore:
    """File-backed store for the live pricing document and its backups."""

    def __init__(
        self,
        document_path: str,
        backup_dir: str,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the store.

        Args:
            document_path: Path of the live pricing JSON file
            backup_dir: Directory receiving timestamped backups
            clock: Time source used to name backups
        """
        self.document_path = Path(document_path)
        self.backup_dir = Path(backup_dir)
        self._clock = clock
        self._lock = threading.Lock()

    def load(self) -> Dict[str, Any]:
        """Read the current pricing document from disk.

        Returns:
            Parsed pricing document

        Raises:
            PricingDocumentError: If the file is missing, not UTF-8 or not valid JSON
        """
        try:
            with open(self.document_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError as e:
            raise PricingDocumentError(f"Pricing document not found: {self.document_path}") from e
        except (OSError, ValueError) as e:
            raise PricingDocumentError(f"Could not load pricing structure: {e}") from e

    def ensure_document(self, default: Dict[str, Any]) -> bool:
        """Write ``default`` as the live document if none exists yet.

        Returns:
            True if a document was created
        """
        if self.document_path.exists():
            return False
        validate_pricing_document(default)
        self._write_atomic(default)
        logger.info("Seeded pricing document at %s", self.document_path)
        return True

    def replace(self, document: Dict[str, Any]) -> PricingBackup:
        """Replace the live pricing document.

        The previous document is copied to a new backup first, then the
        new one is written to a temporary file and renamed over the live
        file. Calls are serialised within the process.

        Args:
            document: Complete replacement pricing document

        Returns:
            The backup holding the previous document

        Raises:
            PricingValidationError: If the document is invalid (nothing is written)
            PricingDocumentError: If the backup or the write fails
        """
        validate_pricing_document(document)

        with self._lock:
            if not self.document_path.exists():
                raise PricingDocumentError(f"Pricing document not found: {self.document_path}")

            backup = self._create_backup()
            logger.info("Backed up pricing document to %s", backup.path)

            try:
                self._write_atomic(document)
            except OSError as e:
                logger.error("Failed to write pricing document: %s", e)
                self._restore(backup)
                raise PricingDocumentError(f"Failed to update pricing: {e}") from e

        logger.info("Pricing document updated")
        return backup

    def list_backups(self) -> List[PricingBackup]:
        """List every backup, newest first."""
        if not self.backup_dir.exists():
            return []

        backups = []
        for path in self.backup_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"):
            stat = path.stat()
            backups.append(PricingBackup(
                filename=path.name,
                path=str(path),
                timestamp=_parse_backup_time(path.name) or datetime.fromtimestamp(stat.st_mtime),
                size=stat.st_size,
            ))
        backups.sort(key=lambda b: (b.timestamp, _collision_index(b.filename)), reverse=True)
        return backups

    def _create_backup(self) -> PricingBackup:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        timestamp = self._clock()
        stem = f"{BACKUP_PREFIX}{timestamp.strftime(_BACKUP_TIME_FORMAT)}"

        path = self.backup_dir / f"{stem}{BACKUP_SUFFIX}"
        counter = 1
        while path.exists():
            path = self.backup_dir / f"{stem}-{counter}{BACKUP_SUFFIX}"
            counter += 1

        try:
            shutil.copyfile(self.document_path, path)
        except OSError as e:
            raise PricingDocumentError(f"Failed to back up pricing document: {e}") from e

        return PricingBackup(
            filename=path.name,
            path=str(path),
            timestamp=timestamp,
            size=path.stat().st_size,
        )

    def _write_atomic(self, document: Dict[str, Any]) -> None:
        self.document_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=".pricing-", suffix=".tmp", dir=str(self.document_path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.document_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def _restore(self, backup: PricingBackup) -> None:
        """Best-effort restore of the live document from ``backup``."""
        try:
            shutil.copyfile(backup.path, self.document_path)
            logger.warning("Restored pricing document from %s", backup.path)
        except OSError as e:
            logger.error("Failed to restore pricing document from %s: %s", backup.path, e)


def _parse_backup_time(filename: str) -> Optional[datetime]:
    stem = filename[len(BACKUP_PREFIX):-len(BACKUP_SUFFIX)]
    # Collision suffix "-N" follows the 6 digit microseconds field
    parts = stem.split("-")
    if len(parts) > 6:
        stem = "-".join(parts[:6])
    try:
        return datetime.strptime(stem, _BACKUP_TIME_FORMAT)
    except ValueError:
        return None


def _collision_index(filename: str) -> int:
    """Return N for a "-N" collision copy, 0 for the first backup of a timestamp."""
    parts = filename[len(BACKUP_PREFIX):-len(BACKUP_SUFFIX)].split("-")
    if len(parts) > 6 and parts[6].isdigit():
        return int(parts[6])
    return 0
