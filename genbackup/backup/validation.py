"""
Configuration checks run before any backup work starts.

Checks run in a fixed order and stop at the first failure:
1. destination exists and is a directory
2. destination is writable by this process
3. entry names are unique
4. entry names can be used as bundle prefixes
"""

import os

from genbackup.models import BackupConfig
from .compression import BUNDLE_SEPARATOR


class ConfigError(Exception):
    """Base class for fatal configuration errors."""
    pass


class DestinationInvalid(ConfigError):
    """Raised when the destination is missing or not a directory."""
    pass


class DestinationNotWritable(ConfigError):
    """Raised when the destination directory denies writes."""
    pass


class DuplicateEntryName(ConfigError):
    """Raised when two entries share a name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicated name found in entries: {name}")


class InvalidEntryName(ConfigError):
    """Raised when an entry name cannot be used as a bundle prefix."""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Invalid entry name {name!r}: {reason}")


def validate_config(config: BackupConfig) -> None:
    """
    Check that a configuration is usable.

    Args:
        config: BackupConfig to check

    Raises:
        DestinationInvalid: If destination is missing or not a directory
        DestinationNotWritable: If destination is not writable
        DuplicateEntryName: On the first repeated entry name
        InvalidEntryName: If a name contains a path or bundle separator,
            or its bundles would overlap another entry's generation set
    """
    _check_destination(config.destination)
    _check_unique_names(config)
    _check_name_shape(config)


def _check_destination(destination: str):
    if not os.path.exists(destination):
        raise DestinationInvalid(f"Destination does not exist: {destination}")
    if not os.path.isdir(destination):
        raise DestinationInvalid(f"Destination is not a directory: {destination}")

    # Permission bits may deny writes to an existing directory
    if not os.access(destination, os.W_OK):
        raise DestinationNotWritable(f"Destination is not writable: {destination}")


def _check_unique_names(config: BackupConfig):
    seen = set()
    for name in config.names:
        if name in seen:
            raise DuplicateEntryName(name)
        seen.add(name)


def _check_name_shape(config: BackupConfig):
    for entry in config.entries:
        if not entry.name:
            raise InvalidEntryName(entry.name, "name is empty")
        if '/' in entry.name or os.sep in entry.name or (os.altsep and os.altsep in entry.name):
            raise InvalidEntryName(entry.name, "name contains a path separator")
        if BUNDLE_SEPARATOR in entry.name:
            raise InvalidEntryName(entry.name, f"name contains {BUNDLE_SEPARATOR!r}")

    _check_disjoint_prefixes(config.names)


def _check_disjoint_prefixes(names):
    # Bundles of 'a.tar.gz' are named 'a.tar.gz.tar.gz.<ts>' and would be
    # listed as generations of 'a'
    for name in names:
        prefix = f"{name}{BUNDLE_SEPARATOR}"
        for other in names:
            if other != name and f"{other}{BUNDLE_SEPARATOR}".startswith(prefix):
                raise InvalidEntryName(
                    other, f"its bundles would be listed as generations of {name!r}"
                )
