"""
Archive job - one entry's complete backup lifecycle.

Workflow:
1. Pick the generation timestamp (seconds since epoch)
2. Archive the entry's path into a staging file
3. Rename the staging file to <name>.tar.gz.<timestamp>
4. Prune the entry's generation set down to keep_generations
5. Report a BackupOutcome (error is None on success)
"""

import logging
import os
import time
from typing import Optional

from genbackup.models import BackupEntry, BackupOutcome
from .compression import ArchiveCreationFailed, bundle_filename, staging_path
from .retention import RetentionManager, PruneFailed

logger = logging.getLogger(__name__)


class ArchiveJob:
    """
    Runs archive creation followed by retention pruning for one entry.

    run() never raises: every failure is returned inside the outcome.
    """

    def __init__(self, archiver, retention: Optional[RetentionManager] = None):
        """
        Initialize archive job.

        Args:
            archiver: Object with archive(source_path, bundle_path)
            retention: RetentionManager to prune with (a new one if omitted)
        """
        self.archiver = archiver
        self.retention = retention or RetentionManager()

    def run(self, entry: BackupEntry, destination: str, keep_generations: int) -> BackupOutcome:
        """
        Back up one entry.

        Args:
            entry: Entry to archive
            destination: Directory receiving the bundle
            keep_generations: Retention limit for the entry

        Returns:
            BackupOutcome for the entry
        """
        self._log(entry, f"Starting backup of {entry.path}")

        try:
            bundle_path = self._create_bundle(entry, destination)
        except ArchiveCreationFailed as e:
            self._log(entry, f"Archive creation failed: {e}", level=logging.ERROR)
            return BackupOutcome(name=entry.name, error=e)
        except Exception as e:
            logger.exception("Unexpected error archiving entry %s", entry.name)
            return BackupOutcome(name=entry.name, error=e)

        self._log(entry, f"Archive created: {os.path.basename(bundle_path)}")

        try:
            removed = self.retention.prune(destination, entry.name, keep_generations)
        except PruneFailed as e:
            self._log(entry, f"Pruning failed: {e}", level=logging.ERROR)
            return BackupOutcome(name=entry.name, error=e, bundle_path=bundle_path)
        except Exception as e:
            logger.exception("Unexpected error pruning entry %s", entry.name)
            return BackupOutcome(name=entry.name, error=e, bundle_path=bundle_path)

        self._log(entry, f"Backup completed successfully ({len(removed)} old generations removed)")
        return BackupOutcome(
            name=entry.name,
            bundle_path=bundle_path,
            removed=tuple(removed)
        )

    def _create_bundle(self, entry: BackupEntry, destination: str) -> str:
        """
        Archive entry.path into a new bundle.

        The archiver writes to a staging path; only a completed bundle is
        renamed into the destination, so a failed run adds no generation.

        Returns:
            Path of the new bundle

        Raises:
            ArchiveCreationFailed: If archiving or the final rename fails; any
                other archiver error is wrapped as its cause
        """
        timestamp = int(time.time())
        filename = bundle_filename(entry.name, timestamp)
        bundle_path = os.path.join(destination, filename)

        try:
            staged = staging_path(destination, filename)
        except OSError as e:
            raise ArchiveCreationFailed(f"Failed to create staging directory: {e}") from e

        try:
            self.archiver.archive(entry.path, staged)
            os.replace(staged, bundle_path)
        except OSError as e:
            self._discard(entry, staged)
            raise ArchiveCreationFailed(f"Failed to store bundle {filename}: {e}") from e
        except ArchiveCreationFailed:
            self._discard(entry, staged)
            raise
        except Exception as e:
            self._discard(entry, staged)
            raise ArchiveCreationFailed(f"Archiver failed for {entry.path}: {e}") from e

        return bundle_path

    def _discard(self, entry: BackupEntry, staged: str):
        """Remove a partial staging file."""
        if os.path.exists(staged):
            try:
                os.remove(staged)
            except OSError as e:
                self._log(entry, f"Warning: Failed to remove partial bundle {staged}: {e}",
                          level=logging.WARNING)

    def _log(self, entry: BackupEntry, message: str, level: int = logging.INFO):
        """Log a message tagged with the entry name."""
        logger.log(level, "[%s] %s", entry.name, message)


def execute_archive_job(entry: BackupEntry, destination: str, keep_generations: int,
                        archiver) -> BackupOutcome:
    """
    Run a single entry's backup with a fresh ArchiveJob.

    Args:
        entry: Entry to archive
        destination: Directory receiving the bundle
        keep_generations: Retention limit for the entry
        archiver: Object with archive(source_path, bundle_path)

    Returns:
        BackupOutcome for the entry
    """
    job = ArchiveJob(archiver)
    return job.run(entry, destination, keep_generations)
