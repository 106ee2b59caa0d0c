"""
Concurrent backup orchestration.

run_backup() fans out one ArchiveJob per entry on a thread pool and yields
outcomes as jobs finish. ResultCollector consumes them and reports failures.
perform_backup() ties validation, orchestration and collection together.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, Iterator, List, Optional

from genbackup.models import BackupConfig, BackupOutcome
from .compression import TarCommandArchiver
from .executor import execute_archive_job
from .validation import validate_config

logger = logging.getLogger(__name__)


def run_backup(config: BackupConfig, archiver, max_workers: Optional[int] = None) -> Iterator[BackupOutcome]:
    """
    Back up every entry concurrently.

    One worker per entry is started unless max_workers caps the pool.
    Outcomes are yielded in completion order; the pool is joined before the
    generator finishes, so exhausting it means every job has returned.

    Args:
        config: Validated BackupConfig
        archiver: Object with archive(source_path, bundle_path)
        max_workers: Upper bound on concurrent jobs (None for one per entry)

    Yields:
        Exactly one BackupOutcome per entry
    """
    if not config.entries:
        return

    width = len(config.entries)
    if max_workers is not None:
        width = max(1, min(width, max_workers))

    logger.info(f"Starting backup of {len(config.entries)} entries ({width} workers)")

    with ThreadPoolExecutor(max_workers=width, thread_name_prefix='genbackup') as pool:
        futures = {
            pool.submit(
                execute_archive_job,
                entry,
                config.destination,
                config.keep_generations,
                archiver
            ): entry
            for entry in config.entries
        }

        for future in as_completed(futures):
            entry = futures[future]
            try:
                outcome = future.result()
            except Exception as e:
                # Jobs report their own failures; this keeps one outcome per entry regardless
                logger.exception("Backup worker for entry %s crashed", entry.name)
                outcome = BackupOutcome(name=entry.name, error=e)
            yield outcome


class ResultCollector:
    """
    Consumes backup outcomes and reports failures.

    Every failure is reported as one line naming the entry and the error.
    """

    def __init__(self, report: Optional[Callable[[str], None]] = None):
        """
        Initialize result collector.

        Args:
            report: Callable receiving one line per failed entry
                    (defaults to logging at ERROR level)
        """
        self.report = report or logger.error
        self.outcomes: List[BackupOutcome] = []

    def collect(self, outcome: BackupOutcome):
        self.outcomes.append(outcome)

        if outcome.ok:
            logger.info(f"Backup succeeded: entry={outcome.name}")
        else:
            self.report(f"Backup failed: entry={outcome.name} err={outcome.error}")

    def consume(self, outcomes: Iterable[BackupOutcome]) -> 'ResultCollector':
        """Collect every outcome of the stream."""
        for outcome in outcomes:
            self.collect(outcome)
        return self

    @property
    def succeeded(self) -> List[str]:
        return [o.name for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[str]:
        return [o.name for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def summary(self) -> dict:
        """
        Summarize collected outcomes.

        Returns:
            {
                'total': int,
                'succeeded': List[str],
                'failed': List[str],
                'errors': Dict[str, str]
            }
        """
        return {
            'total': len(self.outcomes),
            'succeeded': self.succeeded,
            'failed': self.failed,
            'errors': {o.name: str(o.error) for o in self.outcomes if not o.ok}
        }


def perform_backup(config: BackupConfig, archiver=None, collector: Optional[ResultCollector] = None,
                   max_workers: Optional[int] = None) -> ResultCollector:
    """
    Validate a configuration and back up all of its entries.

    Args:
        config: BackupConfig to run
        archiver: Archiver backend (TarCommandArchiver if omitted)
        collector: ResultCollector receiving outcomes (a new one if omitted)
        max_workers: Upper bound on concurrent jobs

    Returns:
        The collector, after every outcome was consumed

    Raises:
        ConfigError: If the configuration is invalid; nothing is archived
    """
    validate_config(config)

    archiver = archiver or TarCommandArchiver()
    collector = collector or ResultCollector()

    collector.consume(run_backup(config, archiver, max_workers=max_workers))

    logger.info(
        f"Backup run complete. "
        f"Succeeded: {len(collector.succeeded)}, "
        f"Failed: {len(collector.failed)}"
    )
    return collector
