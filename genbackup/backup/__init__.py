"""
Backup module for genbackup.

This module handles the core backup functionality including:
- Configuration validation
- Archive creation (external tar or in-process tarfile)
- Generation based retention
- Concurrent orchestration and result collection
"""

from .compression import (
    ArchiveCreationFailed,
    ArchiveTimeout,
    TarCommandArchiver,
    TarfileArchiver,
    create_archiver,
)
from .executor import ArchiveJob
from .orchestrator import ResultCollector, perform_backup, run_backup
from .retention import (
    DeletionFailed,
    GenerationListingFailed,
    MalformedGenerationName,
    PruneFailed,
    RetentionManager,
)
from .validation import (
    ConfigError,
    DestinationInvalid,
    DestinationNotWritable,
    DuplicateEntryName,
    InvalidEntryName,
    validate_config,
)

__all__ = [
    'ArchiveCreationFailed',
    'ArchiveJob',
    'ArchiveTimeout',
    'ConfigError',
    'DeletionFailed',
    'DestinationInvalid',
    'DestinationNotWritable',
    'DuplicateEntryName',
    'GenerationListingFailed',
    'InvalidEntryName',
    'MalformedGenerationName',
    'PruneFailed',
    'ResultCollector',
    'RetentionManager',
    'TarCommandArchiver',
    'TarfileArchiver',
    'create_archiver',
    'perform_backup',
    'run_backup',
    'validate_config',
]
