"""
Generation based retention for backup bundles.

Every entry owns the bundles in the destination directory named
``<name>.tar.gz.<unix seconds>``. Those bundles form the entry's generation
set, ordered by the integer timestamp suffix. Pruning deletes the oldest
generations until at most keep_generations remain.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List

from genbackup.models import BackupConfig
from .compression import BUNDLE_SEPARATOR

logger = logging.getLogger(__name__)


class PruneFailed(Exception):
    """Base class for retention failures of a single entry."""
    pass


class GenerationListingFailed(PruneFailed):
    """Raised when the destination directory cannot be listed."""
    pass


class MalformedGenerationName(PruneFailed):
    """Raised when a bundle's timestamp suffix is not an integer."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Malformed generation name: {filename}")


class DeletionFailed(PruneFailed):
    """Raised when an old bundle cannot be removed."""
    pass


@dataclass(frozen=True)
class Generation:
    """One bundle of an entry's generation set."""

    name: str
    timestamp: int
    path: str

    @property
    def filename(self) -> str:
        return os.path.basename(self.path)


def generation_key(generation: Generation) -> int:
    """Sort key for generations: the parsed integer timestamp."""
    return generation.timestamp


def parse_generation(filename: str, name: str) -> int:
    """
    Extract the generation timestamp from a bundle file name.

    Args:
        filename: Bundle file name, e.g. ``db.tar.gz.1700000000``
        name: Entry name the bundle belongs to

    Returns:
        Timestamp as an integer

    Raises:
        MalformedGenerationName: If filename lacks the entry prefix or the
            suffix is not a base-10 integer
    """
    prefix = f"{name}{BUNDLE_SEPARATOR}"
    if not filename.startswith(prefix):
        raise MalformedGenerationName(filename)

    suffix = filename[len(prefix):]
    # int() alone would accept '+5', ' 5' and '5_0'
    if not suffix.isascii() or not suffix.isdigit():
        raise MalformedGenerationName(filename)

    return int(suffix)


class RetentionManager:
    """
    Enforces the keep_generations limit for backup entries.
    """

    def list_generations(self, destination: str, name: str) -> List[Generation]:
        """
        List an entry's bundles, oldest first.

        Args:
            destination: Directory holding the bundles
            name: Entry name

        Returns:
            Generations sorted by numeric timestamp

        Raises:
            GenerationListingFailed: If destination cannot be read
            MalformedGenerationName: If a bundle has a non-integer suffix
        """
        prefix = f"{name}{BUNDLE_SEPARATOR}"

        try:
            filenames = [f for f in os.listdir(destination) if f.startswith(prefix)]
        except OSError as e:
            raise GenerationListingFailed(f"Failed to list {destination}: {e}") from e

        generations = [
            Generation(
                name=name,
                timestamp=parse_generation(filename, name),
                path=os.path.join(destination, filename)
            )
            for filename in filenames
        ]
        generations.sort(key=generation_key)
        return generations

    def prune(self, destination: str, name: str, keep_generations: int) -> List[str]:
        """
        Delete the oldest bundles of an entry beyond the retention limit.

        Stops at the first deletion failure; bundles not yet removed stay.

        Args:
            destination: Directory holding the bundles
            name: Entry name
            keep_generations: Number of newest bundles to keep

        Returns:
            Paths of the removed bundles, oldest first

        Raises:
            GenerationListingFailed: If destination cannot be read
            MalformedGenerationName: If a bundle has a non-integer suffix
            DeletionFailed: If a bundle cannot be removed
        """
        generations = self.list_generations(destination, name)
        removed = []

        while len(generations) > keep_generations:
            oldest = generations[0]
            try:
                os.remove(oldest.path)
            except OSError as e:
                self._log(f"Failed to delete {oldest.filename}: {e}", level=logging.ERROR)
                raise DeletionFailed(f"Failed to delete {oldest.path}: {e}") from e

            self._log(f"Deleted old generation: {oldest.filename}")
            removed.append(oldest.path)
            generations = generations[1:]

        return removed

    def enforce_all(self, config: BackupConfig) -> Dict[str, Any]:
        """
        Prune every entry of a configuration without creating new bundles.

        Args:
            config: Validated BackupConfig

        Returns:
            Dict with summary of cleanup operations:
            {
                'entries_processed': int,
                'deleted': int,
                'errors': List[str]
            }
        """
        self._log(f"Starting retention enforcement for {len(config.entries)} entries")

        summary = {
            'entries_processed': 0,
            'deleted': 0,
            'errors': []
        }

        for entry in config.entries:
            try:
                removed = self.prune(config.destination, entry.name, config.keep_generations)
                summary['entries_processed'] += 1
                summary['deleted'] += len(removed)
            except PruneFailed as e:
                error_msg = f"Failed to enforce retention for entry {entry.name}: {e}"
                self._log(error_msg, level=logging.ERROR)
                summary['errors'].append(error_msg)

        self._log(
            f"Retention enforcement complete. "
            f"Entries: {summary['entries_processed']}, "
            f"Deleted: {summary['deleted']}, "
            f"Errors: {len(summary['errors'])}"
        )

        return summary

    def _log(self, message: str, level: int = logging.INFO):
        logger.log(level, message)
