"""
Archiver backends for backup bundles.

An archiver turns one source path into one gzip compressed tar bundle:

- tar: runs the external ``tar zcf <bundle> <source>`` program
- tarfile: builds the bundle in-process with the tarfile module

Both expose archive(source_path, bundle_path) and raise ArchiveCreationFailed.
"""

import os
import subprocess
import tarfile
from pathlib import Path
from typing import Optional

# Bundle file names are <entry name><BUNDLE_SEPARATOR><unix seconds>
BUNDLE_SEPARATOR = '.tar.gz.'

STAGING_DIRNAME = '.genbackup-staging'


class ArchiveCreationFailed(Exception):
    """Raised when a bundle cannot be created."""
    pass


class ArchiveTimeout(ArchiveCreationFailed):
    """Raised when the archiver does not finish within its timeout."""
    pass


class TarCommandArchiver:
    """
    Create bundles by shelling out to tar.
    """

    def __init__(self, tar_command: str = 'tar', timeout: Optional[float] = None):
        """
        Initialize tar command archiver.

        Args:
            tar_command: tar executable name or path
            timeout: Seconds to wait for tar before giving up (None waits forever)
        """
        self.tar_command = tar_command
        self.timeout = timeout

    def archive(self, source_path: str, bundle_path: str):
        """
        Compress source_path into bundle_path.

        Args:
            source_path: File or directory to archive
            bundle_path: Path of the bundle to write

        Raises:
            ArchiveTimeout: If tar runs longer than the timeout
            ArchiveCreationFailed: If tar cannot be started or exits non-zero
        """
        cmd = [self.tar_command, 'zcf', bundle_path, source_path]

        try:
            subprocess.run(
                cmd,
                check=True,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise ArchiveTimeout(
                f"tar timed out after {self.timeout}s archiving {source_path}"
            ) from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or '').strip() or f"exit status {e.returncode}"
            raise ArchiveCreationFailed(f"tar failed for {source_path}: {detail}") from e
        except OSError as e:
            raise ArchiveCreationFailed(f"Failed to run {self.tar_command}: {e}") from e

    def __repr__(self):
        return f'<TarCommandArchiver {self.tar_command} timeout={self.timeout}>'


class TarfileArchiver:
    """
    Create bundles in-process with the tarfile module.

    No external program is needed; timeouts are not supported.
    """

    def archive(self, source_path: str, bundle_path: str):
        source = Path(source_path)

        if not source.exists():
            raise ArchiveCreationFailed(f"Path does not exist: {source_path}")

        try:
            with tarfile.open(bundle_path, 'w:gz') as tar:
                # Basename as arcname keeps absolute paths out of the bundle
                tar.add(source, arcname=source.name or str(source), recursive=True)
        except (OSError, tarfile.TarError) as e:
            raise ArchiveCreationFailed(f"Failed to create archive: {e}") from e

    def __repr__(self):
        return '<TarfileArchiver>'


def create_archiver(kind: str = 'tar', tar_command: str = 'tar', timeout: Optional[float] = None):
    """
    Build an archiver by name.

    Args:
        kind: 'tar' (external program) or 'tarfile' (in-process)
        tar_command: tar executable for the 'tar' backend
        timeout: tar timeout in seconds for the 'tar' backend

    Returns:
        Archiver instance

    Raises:
        ValueError: If kind is unknown
    """
    if kind == 'tar':
        return TarCommandArchiver(tar_command=tar_command, timeout=timeout)
    if kind == 'tarfile':
        return TarfileArchiver()

    raise ValueError(
        f"Invalid archiver: {kind}. "
        f"Valid options: ['tar', 'tarfile']"
    )


def bundle_filename(name: str, timestamp: int) -> str:
    """Bundle file name for an entry generation, e.g. ``db.tar.gz.1700000000``."""
    return f"{name}{BUNDLE_SEPARATOR}{timestamp}"


def staging_path(destination: str, bundle_name: str) -> str:
    """
    Path a bundle is written to before it is renamed into place.

    Staging files live in a hidden subdirectory of the destination so a
    half-written bundle never joins a generation set, while the final
    rename stays on the same filesystem.
    """
    staging_dir = os.path.join(destination, STAGING_DIRNAME)
    os.makedirs(staging_dir, exist_ok=True)
    return os.path.join(staging_dir, bundle_name)
