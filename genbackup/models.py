"""
Data model for genbackup.

BackupConfig and BackupEntry describe what to back up; BackupOutcome is the
per-entry result of one run. Configuration files are JSON and are loaded
through load_config().
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple


class ConfigLoadError(Exception):
    """Raised when a configuration file cannot be read or decoded."""
    pass


@dataclass(frozen=True)
class BackupEntry:
    """One named filesystem path to archive."""

    name: str
    path: str


@dataclass(frozen=True)
class BackupConfig:
    """Destination, retention limit and entries for one backup run."""

    destination: str
    keep_generations: int
    entries: Tuple[BackupEntry, ...] = ()

    def __post_init__(self):
        # Owns its entries: freeze whatever sequence was passed in
        object.__setattr__(self, 'entries', tuple(self.entries))

    @property
    def names(self) -> List[str]:
        return [entry.name for entry in self.entries]


@dataclass(frozen=True)
class BackupOutcome:
    """
    Result of one entry's backup run.

    error is None on success. bundle_path is the bundle created by this run
    (None when archiving failed) and removed lists the bundles pruned.
    """

    name: str
    error: Optional[Exception] = None
    bundle_path: Optional[str] = None
    removed: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.error is None


# Accepted spellings per field, compared case-insensitively
_DESTINATION_KEYS = ('destination', 'dst')
_KEEP_KEYS = ('keep_generations', 'keepgenerations', 'keepgen', 'keep_gen')
_ENTRIES_KEYS = ('entries',)


def _lookup(data: Mapping[str, Any], keys: Iterable[str], what: str) -> Any:
    """Find a field by any of its accepted names, ignoring case."""
    lowered = {str(k).lower(): v for k, v in data.items()}
    for key in keys:
        if key in lowered:
            return lowered[key]
    raise ConfigLoadError(f"Missing required field: {what}")


def _entry_from_dict(data: Any, index: int) -> BackupEntry:
    if not isinstance(data, Mapping):
        raise ConfigLoadError(f"Entry #{index} must be an object, got {type(data).__name__}")

    name = _lookup(data, ('name',), f"entries[{index}].name")
    path = _lookup(data, ('path',), f"entries[{index}].path")

    if not isinstance(name, str) or not name:
        raise ConfigLoadError(f"Entry #{index} has an empty or non-string name")
    if not isinstance(path, str) or not path:
        raise ConfigLoadError(f"Entry '{name}' has an empty or non-string path")

    return BackupEntry(name=name, path=path)


def config_from_dict(data: Any) -> BackupConfig:
    """
    Build a BackupConfig from decoded JSON.

    Args:
        data: Mapping with destination, keep_generations and entries

    Returns:
        BackupConfig instance

    Raises:
        ConfigLoadError: If a field is missing or has the wrong type
    """
    if not isinstance(data, Mapping):
        raise ConfigLoadError("Configuration must be a JSON object")

    destination = _lookup(data, _DESTINATION_KEYS, 'destination')
    keep_generations = _lookup(data, _KEEP_KEYS, 'keep_generations')
    entries = _lookup(data, _ENTRIES_KEYS, 'entries')

    if not isinstance(destination, str) or not destination:
        raise ConfigLoadError("destination must be a non-empty string")

    # bool is an int subclass; reject it explicitly
    if isinstance(keep_generations, bool) or not isinstance(keep_generations, int):
        raise ConfigLoadError(
            f"keep_generations must be an integer, got {keep_generations!r}"
        )
    if keep_generations < 0:
        raise ConfigLoadError(
            f"keep_generations must be non-negative, got {keep_generations}"
        )

    if not isinstance(entries, list):
        raise ConfigLoadError("entries must be a list")

    return BackupConfig(
        destination=destination,
        keep_generations=keep_generations,
        entries=tuple(_entry_from_dict(item, i) for i, item in enumerate(entries))
    )


def load_config(config_path: str) -> BackupConfig:
    """
    Read and decode a JSON configuration file.

    Args:
        config_path: Path to the JSON file

    Returns:
        BackupConfig instance

    Raises:
        ConfigLoadError: If the file cannot be read, parsed or converted
    """
    if not config_path:
        raise ConfigLoadError("No configuration file given")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data: Dict[str, Any] = json.load(f)
    except FileNotFoundError:
        raise ConfigLoadError(f"Configuration file not found: {config_path}")
    except json.JSONDecodeError as e:
        raise ConfigLoadError(f"Invalid JSON in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigLoadError(f"Failed to read {config_path}: {e}") from e

    return config_from_dict(data)
