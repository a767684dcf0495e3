from __future__ import annotations

"""QDPX container reading and writing.

A container is a zip archive with exactly one manifest entry,
``project.qde``, at its root and payload files under ``sources/``.
"""

import io
import logging
import os
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Union

from qdpx_toolkit.core.exceptions import ExportError, InvalidContainerError

__all__ = [
    "MANIFEST_NAME",
    "SOURCES_DIR",
    "ContainerContents",
    "read_container",
    "extract_source_files",
    "write_container",
]

logger = logging.getLogger(__name__)

MANIFEST_NAME = "project.qde"
SOURCES_DIR = "sources/"

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class ContainerContents:
    """Manifest text plus every ``sources/`` entry, keyed by entry name."""

    manifest: str
    source_files: Dict[str, bytes] = field(default_factory=dict)


def _is_unsafe(name: str) -> bool:
    return os.path.isabs(name) or name.startswith(("/", "\\")) or ".." in Path(name).parts


def read_container(container: Union[PathLike, bytes]) -> ContainerContents:
    """Read the manifest and payload entries of a container.

    Args:
        container: Path to a ``.qdpx`` file, or its raw bytes.

    Raises:
        InvalidContainerError: If the data is not a zip archive, the manifest
            entry is absent or cannot be decoded as UTF-8.
    """
    label = "<bytes>" if isinstance(container, (bytes, bytearray)) else os.fspath(container)
    handle = io.BytesIO(container) if isinstance(container, (bytes, bytearray)) else container
    try:
        with zipfile.ZipFile(handle, "r") as archive:
            names = archive.namelist()
            if MANIFEST_NAME not in names:
                raise InvalidContainerError(
                    f"Container has no {MANIFEST_NAME}: {label}", details=names[:20]
                )
            raw_manifest = archive.read(MANIFEST_NAME)
            source_files = {
                name: archive.read(name)
                for name in names
                if name.startswith(SOURCES_DIR) and not name.endswith("/")
            }
    except zipfile.BadZipFile as exc:
        raise InvalidContainerError(f"Invalid QDPX container: {exc}", cause=exc) from exc
    except OSError as exc:
        raise InvalidContainerError(f"Failed to read container {label}: {exc}", cause=exc) from exc

    try:
        manifest = raw_manifest.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise InvalidContainerError(
            f"{MANIFEST_NAME} is not valid UTF-8", details=[str(exc)], cause=exc
        ) from exc

    logger.debug("Read container %s: %d source entries", label, len(source_files))
    return ContainerContents(manifest=manifest, source_files=source_files)


def extract_source_files(source_files: Mapping[str, bytes], output_dir: PathLike) -> List[Path]:
    """Write payload entries into *output_dir* by base name.

    Raises:
        InvalidContainerError: If an entry name is absolute or climbs out
            with ``..``.
    """
    # Security check: validate every path before anything is written
    for name in source_files:
        if _is_unsafe(name):
            raise InvalidContainerError(f"Unsafe path in container: {name}")

    target = Path(output_dir)
    target.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name, data in source_files.items():
        base_name = Path(name).name
        if not base_name:
            continue
        destination = target / base_name
        if destination in written:
            logger.warning("Duplicate source name %s; later entry wins", base_name)
        destination.write_bytes(data)
        written.append(destination)
    logger.debug("Extracted %d source file(s) to %s", len(written), target)
    return written


def write_container(path: PathLike, manifest: str, files: Mapping[str, bytes]) -> Path:
    """Write a container atomically.

    The archive is assembled in a temporary file next to *path* and moved
    into place only once complete, so a failure never leaves a partial
    container behind.

    Args:
        path: Destination ``.qdpx`` file; parent directories are created.
        manifest: Manifest text, stored as UTF-8.
        files: Entry name (``sources/<name>``) to bytes.

    Raises:
        ExportError: If an entry name is unsafe or the file cannot be written.
    """
    destination = Path(path)
    for name in files:
        if _is_unsafe(name) or name == MANIFEST_NAME:
            raise ExportError(f"Unsafe container entry name: {name}")

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{destination.name}.", suffix=".tmp", dir=str(destination.parent)
        )
    except OSError as exc:
        raise ExportError(f"Cannot prepare output {destination}: {exc}", cause=exc) from exc

    try:
        with os.fdopen(fd, "wb") as handle:
            with zipfile.ZipFile(handle, "w", compression=zipfile.ZIP_DEFLATED,
                                 compresslevel=9) as archive:
                archive.writestr(MANIFEST_NAME, manifest.encode("utf-8"))
                for name in sorted(files):
                    archive.writestr(name, files[name])
        os.replace(tmp_name, destination)
    except (OSError, ValueError) as exc:
        try:
            os.unlink(tmp_name)
        except OSError:
            logger.debug("Temporary file already gone: %s", tmp_name)
        raise ExportError(f"Failed to write container {destination}: {exc}", cause=exc) from exc

    logger.debug("Wrote container %s with %d source file(s)", destination, len(files))
    return destination
