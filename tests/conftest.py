"""
Shared pytest fixtures for genbackup tests.

This module provides fixtures for:
- Flask app and CLI runner
- Destination and source directories
- Fake archiver backend that records calls
- Configuration objects and JSON configuration files
"""

import json
import threading

import pytest

from genbackup import create_app
from genbackup.backup.compression import ArchiveCreationFailed
from genbackup.models import BackupConfig, BackupEntry


class FakeArchiver:
    """
    Archiver test double.

    Writes a small file at the bundle path and records every call.
    Sources listed in fail_for raise the given error instead.
    """

    def __init__(self, fail_for=None, error=None):
        self.fail_for = set(fail_for or [])
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def archive(self, source_path, bundle_path):
        with self._lock:
            self.calls.append((source_path, bundle_path))

        if source_path in self.fail_for:
            raise self.error or ArchiveCreationFailed(f"tar failed for {source_path}")

        with open(bundle_path, 'wb') as f:
            f.write(b'fake bundle for ' + source_path.encode())


@pytest.fixture(scope='function')
def app():
    """Create Flask app with test configuration."""
    app = create_app('testing')
    yield app


@pytest.fixture(scope='function')
def runner(app):
    """Flask CLI test runner."""
    return app.test_cli_runner()


@pytest.fixture
def destination(tmp_path):
    """Empty destination directory for bundles."""
    dest = tmp_path / 'bk'
    dest.mkdir()
    return dest


@pytest.fixture
def source_dir(tmp_path):
    """
    Create a source directory with a few files.

    Creates:
    - data/file1.txt
    - data/nested/file2.txt
    """
    data = tmp_path / 'data'
    data.mkdir()
    (data / 'file1.txt').write_text('Content 1')
    nested = data / 'nested'
    nested.mkdir()
    (nested / 'file2.txt').write_text('Content 2')
    return data


@pytest.fixture
def fake_archiver():
    """Archiver that succeeds for every source."""
    return FakeArchiver()


@pytest.fixture
def failing_archiver_factory():
    """Build archivers that fail for the given source paths."""
    def factory(fail_for, error=None):
        return FakeArchiver(fail_for=fail_for, error=error)
    return factory


@pytest.fixture
def make_config(destination):
    """Build a BackupConfig in the destination fixture."""
    def factory(entries, keep_generations=2, dest=None):
        return BackupConfig(
            destination=str(dest if dest is not None else destination),
            keep_generations=keep_generations,
            entries=tuple(BackupEntry(name=name, path=path) for name, path in entries)
        )
    return factory


@pytest.fixture
def write_config(tmp_path):
    """Write a JSON configuration file and return its path."""
    def factory(data, filename='backup.json'):
        config_path = tmp_path / filename
        config_path.write_text(json.dumps(data))
        return str(config_path)
    return factory


def touch_generations(directory, name, timestamps):
    """Create empty bundles <name>.tar.gz.<ts> in directory."""
    paths = []
    for ts in timestamps:
        path = directory / f"{name}.tar.gz.{ts}"
        path.write_bytes(b'')
        paths.append(path)
    return paths


@pytest.fixture
def generations():
    """Helper creating pre-existing bundles."""
    return touch_generations
