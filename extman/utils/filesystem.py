"""Filesystem utilities for extman."""

import shutil
import tarfile
from pathlib import Path
from urllib.parse import unquote, urlparse

PACKAGE_SUFFIXES = (".tar.gz", ".tgz")


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def copy_directory(src: Path, dest: Path) -> Path:
    """Copy a directory recursively, replacing anything at the destination.

    Args:
        src: Source directory path
        dest: Destination directory path

    Returns:
        Path to the copied directory
    """
    if dest.exists():
        shutil.rmtree(dest)
    shutil.copytree(src, dest)
    return dest


def remove_directory(path: Path) -> bool:
    """Remove a directory and its contents.

    Args:
        path: Directory path to remove

    Returns:
        True if the directory was removed, False if it didn't exist
    """
    if not path.exists():
        return False
    shutil.rmtree(path)
    return True


def is_package_file(path: Path) -> bool:
    """Check whether a path names a packaged extension archive."""
    return path.name.endswith(PACKAGE_SUFFIXES)


def extract_tarball(tarball_path: Path, dest_dir: Path) -> Path:
    """Extract a tarball to a destination directory.

    Args:
        tarball_path: Path to the .tar.gz file
        dest_dir: Destination directory

    Returns:
        Path to the extracted content directory
    """
    dest_dir.mkdir(parents=True, exist_ok=True)

    with tarfile.open(tarball_path, "r:gz") as tar:
        # Security: prevent path traversal
        for member in tar.getmembers():
            member_path = Path(member.name)
            if member_path.is_absolute() or ".." in member_path.parts:
                raise ValueError(f"Unsafe path in tarball: {member.name}")
        tar.extractall(dest_dir)

    # A single top-level directory is the package root
    contents = [p for p in dest_dir.iterdir() if not p.name.startswith(".")]
    if len(contents) == 1 and contents[0].is_dir():
        return contents[0]
    return dest_dir


def create_tarball(source_dir: Path, tarball_path: Path) -> Path:
    """Create a tarball from a directory.

    Args:
        source_dir: Directory to archive
        tarball_path: Path for the output .tar.gz file

    Returns:
        Path to the created tarball
    """
    tarball_path.parent.mkdir(parents=True, exist_ok=True)

    with tarfile.open(tarball_path, "w:gz") as tar:
        tar.add(source_dir, arcname=source_dir.name)

    return tarball_path


def to_file_uri(path: Path) -> str:
    """Convert a local path to a file:// URI."""
    return path.resolve().as_uri()


def file_uri_to_path(uri: str) -> Path | None:
    """Convert a file:// URI (or a bare ``file:`` reference) to a local path.

    Args:
        uri: Location string

    Returns:
        The local path, or None if the location is not on the local filesystem
    """
    if uri.startswith("file://"):
        return Path(unquote(urlparse(uri).path))
    if uri.startswith("file:"):
        # Relative form (file:../path or file:./path)
        return Path(uri[5:]).resolve()
    return None
