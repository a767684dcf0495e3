from __future__ import annotations

"""Source addresses and their three schemes.

A source address names the file backing a source:

``internal://<name>``
    An entry ``sources/<name>`` inside the container.
``relative://<path>``
    A path relative to the project base path. A leading slash in the
    payload is ignored.
``absolute://<path>``
    An absolute filesystem path written with forward slashes.

A string without any of these prefixes is read as a relative address. This
keeps older manifests working that stored bare relative paths.
"""

import logging
import os
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Union

from qdpx_toolkit.core.exceptions import PathResolutionError
from qdpx_toolkit.core.models import Project, SourceKind

__all__ = [
    "AddressScheme",
    "SourceAddress",
    "classify",
    "payload",
    "resolve",
    "construct",
    "to_native_path",
    "does_file_exist",
    "iter_source_addresses",
    "resolve_external_sources",
]

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

_DRIVE_PAYLOAD = re.compile(r"^/[A-Za-z]:")


class AddressScheme(Enum):
    INTERNAL = "internal"
    RELATIVE = "relative"
    ABSOLUTE = "absolute"

    @property
    def prefix(self) -> str:
        return f"{self.value}://"


@dataclass(frozen=True)
class SourceAddress:
    """Address of one source, as found in a project."""

    kind: SourceKind
    guid: str
    address: str
    scheme: AddressScheme


def classify(address: str) -> AddressScheme:
    """Return the scheme of *address*; unprefixed strings are relative."""
    for scheme in AddressScheme:
        if address.startswith(scheme.prefix):
            return scheme
    return AddressScheme.RELATIVE


def payload(address: str) -> str:
    """Return *address* without its scheme prefix."""
    for scheme in AddressScheme:
        if address.startswith(scheme.prefix):
            return address[len(scheme.prefix):]
    return address


def resolve(address: str, base_path: Optional[PathLike] = None) -> Path:
    """Translate *address* into a filesystem path.

    Args:
        address: Source address in any scheme.
        base_path: Directory that internal and relative payloads are joined
            to. For internal addresses this is the directory holding the
            extracted container sources.

    Raises:
        PathResolutionError: If the payload is empty, or a relative or
            internal address is resolved without a base path.
    """
    scheme = classify(address)
    value = payload(address)
    if not value.strip("/"):
        raise PathResolutionError(f"Empty {scheme.value} address", address)

    if scheme is AddressScheme.ABSOLUTE:
        if os.name == "nt" and _DRIVE_PAYLOAD.match(value):
            value = value[1:]
        return Path(value.replace("/", os.sep))

    if base_path is None or str(base_path) == "":
        raise PathResolutionError(
            f"Cannot resolve {scheme.value} address without a base path: {address}", address
        )
    relative = value.lstrip("/").replace("/", os.sep)
    return Path(os.path.abspath(os.path.join(os.fspath(base_path), relative)))


def construct(scheme: AddressScheme, value: PathLike) -> str:
    """Build the canonical address for *value* under *scheme*.

    Separators are normalised to forward slashes. Relative and absolute
    payloads always start with a slash (``relative:///a/b.txt``,
    ``absolute:///C:/data/a.pdf``).
    """
    text = os.fspath(value).replace("\\", "/")
    if scheme is AddressScheme.INTERNAL:
        return scheme.prefix + text.lstrip("/")
    if scheme is AddressScheme.RELATIVE:
        return scheme.prefix + "/" + text.lstrip("/")
    if not text.startswith("/"):
        text = "/" + text
    return scheme.prefix + text


def to_native_path(value: PathLike, base_path: Optional[PathLike] = None) -> Path:
    """Turn an address or a plain filesystem path into a :class:`Path`.

    ``currentPath`` values are written as ``absolute://`` addresses but
    older manifests hold plain paths; both are accepted here.
    """
    text = os.fspath(value)
    if any(text.startswith(scheme.prefix) for scheme in AddressScheme):
        return resolve(text, base_path)
    return Path(text)


def does_file_exist(address: str, base_path: Optional[PathLike] = None) -> bool:
    """Return True when *address* resolves to an existing file.

    Raises:
        PathResolutionError: Propagated from :func:`resolve`.
    """
    return resolve(address, base_path).exists()


def iter_source_addresses(project: Project) -> Iterator[SourceAddress]:
    """Yield the address of every source that has one, in source order."""
    for kind, _, source in project.sources.iter_sources():
        address = source.address
        if address:
            yield SourceAddress(kind, source.guid, address, classify(address))


def resolve_external_sources(project: Project, base_path: PathLike) -> List[str]:
    """Return resolved paths of relative and absolute sources that do not exist.

    The result is advisory. An address that cannot be resolved at all is
    reported as-is.
    """
    missing: List[str] = []
    for entry in iter_source_addresses(project):
        if entry.scheme is AddressScheme.INTERNAL:
            continue
        try:
            full_path = resolve(entry.address, base_path)
        except PathResolutionError as exc:
            logger.warning("Unresolvable address for source %s: %s", entry.guid, exc.message)
            missing.append(entry.address)
            continue
        if not full_path.exists():
            logger.debug("External source not found: %s", full_path)
            missing.append(str(full_path))
    return missing
