from __future__ import annotations

"""Decide, per source, what an exported container embeds.

:func:`package_sources` works on a private deep copy of the project. Every
source with an address goes through the same four steps in source order
(Text, Picture, PDF, Audio, Video):

1. Internal sources stay internal. Their bytes are looked up through
   ``currentPath`` and then in the directory the importer extracted the
   container to. When neither has the file a warning is recorded and the
   container entry is left out.
2. Relative and absolute addresses are resolved against the export base
   path. An address that cannot be resolved is left unchanged with a
   warning.
3. A missing file is reported to ``on_missing_source``. A falsy answer
   aborts the export; otherwise the original address is kept and a
   warning is recorded.
4. An existing file no larger than ``max_internal_file_size`` is embedded
   under a fresh name when external sources are included. Any other file
   stays external with its address rewritten to canonical form.
"""

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from qdpx_toolkit.core.addressing import (
    AddressScheme,
    classify,
    construct,
    payload,
    resolve,
    to_native_path,
)
from qdpx_toolkit.core.exceptions import ExportAbortedError, PathResolutionError
from qdpx_toolkit.core.models import Project, SourceBase, SourceKind, new_guid

__all__ = [
    "DEFAULT_MAX_INTERNAL_FILE_SIZE",
    "SOURCES_PREFIX",
    "MissingSourceCallback",
    "PackagingPolicy",
    "AddressRewrite",
    "PackagingResult",
    "package_sources",
]

logger = logging.getLogger(__name__)

DEFAULT_MAX_INTERNAL_FILE_SIZE = 2_147_483_647
SOURCES_PREFIX = "sources/"

MissingSourceCallback = Callable[[str, str, str], bool]
PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class PackagingPolicy:
    """Knobs for :func:`package_sources`.

    Attributes:
        include_external_sources: Embed external files that fit the size limit.
        export_base_path: Directory relative addresses are resolved against;
            also the project base path when the project has none.
        max_internal_file_size: Largest file, in bytes, that may be embedded.
        on_missing_source: Called with ``(path, source_kind, guid)`` for a
            missing external file; a falsy result aborts the export.
        id_generator: Produces the stem of newly embedded file names.
        internal_sources_path: Directory holding previously extracted
            container sources.
    """

    include_external_sources: bool = False
    export_base_path: Optional[PathLike] = None
    max_internal_file_size: int = DEFAULT_MAX_INTERNAL_FILE_SIZE
    on_missing_source: Optional[MissingSourceCallback] = None
    id_generator: Callable[[], str] = new_guid
    internal_sources_path: Optional[PathLike] = None


@dataclass(frozen=True)
class AddressRewrite:
    guid: str
    kind: SourceKind
    old_address: str
    new_address: str
    current_path: Optional[str] = None


@dataclass
class PackagingResult:
    """Outcome of a packaging pass.

    ``files`` maps container entry names (``sources/<name>``) to bytes.
    """

    project: Project
    files: Dict[str, bytes] = field(default_factory=dict)
    address_rewrites: List[AddressRewrite] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    unresolved_external: List[str] = field(default_factory=list)


class _SourcePackager:
    """Runs the per-source procedure and accumulates into one result."""

    def __init__(self, project: Project, policy: PackagingPolicy) -> None:
        self.policy = policy
        self.result = PackagingResult(project=project)

    # Bookkeeping ---------------------------------------------------------
    def _warn(self, message: str) -> None:
        logger.warning("%s", message)
        self.result.warnings.append(message)

    def _rewrite(self, kind: SourceKind, source: SourceBase, new_address: str,
                 current_path: Optional[str]) -> None:
        old_address = source.address or ""
        source.address = new_address
        if source.has_current_path and current_path is not None:
            source.current_path = current_path  # type: ignore[attr-defined]
        self.result.address_rewrites.append(
            AddressRewrite(source.guid, kind, old_address, new_address,
                           current_path if source.has_current_path else None)
        )

    # Step 1 --------------------------------------------------------------
    def _internal_candidates(self, source: SourceBase, filename: str) -> List[Path]:
        candidates: List[Path] = []
        current = getattr(source, "current_path", None)
        if current:
            try:
                candidates.append(to_native_path(current))
            except PathResolutionError as exc:
                logger.debug("Ignoring currentPath of %s: %s", source.guid, exc.message)
        if self.policy.internal_sources_path:
            candidates.append(Path(self.policy.internal_sources_path) / filename)
        return candidates

    def _package_internal(self, source: SourceBase, address: str) -> None:
        filename = payload(address).lstrip("/")
        if not filename:
            self._warn(f"Invalid source path: {address}")
            return
        for candidate in self._internal_candidates(source, filename):
            if not candidate.is_file():
                continue
            try:
                self.result.files[SOURCES_PREFIX + filename] = candidate.read_bytes()
            except OSError as exc:
                logger.debug("Cannot read %s: %s", candidate, exc)
                continue
            logger.debug("Kept internal source %s from %s", filename, candidate)
            return
        label = getattr(source, "current_path", None) or filename
        self._warn(f"Could not include internal source: {label}")

    # Steps 2 to 4 --------------------------------------------------------
    def _relative_base(self) -> Path:
        # Only reached for addresses resolved against export_base_path.
        project = self.result.project
        if not project.base_path:
            # A rewritten relative address needs an anchor in the manifest.
            project.base_path = os.fspath(self.policy.export_base_path)
        base_path = Path(project.base_path)
        if not base_path.is_absolute():
            base_path = Path(self.policy.export_base_path) / base_path
        return Path(os.path.abspath(base_path))

    def _keep_external(self, kind: SourceKind, source: SourceBase, address: str,
                       resolved: Path) -> None:
        absolute = construct(AddressScheme.ABSOLUTE, resolved)
        if classify(address) is AddressScheme.ABSOLUTE:
            self._rewrite(kind, source, absolute, None)
        else:
            base = self._relative_base()
            try:
                relative = os.path.relpath(resolved, base)
            except ValueError as exc:
                self._warn(f"No relative path to {resolved} ({exc}); keeping it absolute")
                self._rewrite(kind, source, absolute, None)
            else:
                self._rewrite(kind, source, construct(AddressScheme.RELATIVE, relative), absolute)
        self.result.unresolved_external.append(str(resolved))

    def _package_external(self, kind: SourceKind, source: SourceBase, address: str) -> None:
        try:
            resolved = resolve(address, self.policy.export_base_path)
        except PathResolutionError as exc:
            self._warn(f"Invalid source path: {address} ({exc.message})")
            return

        if not resolved.is_file():
            proceed = True
            if self.policy.on_missing_source is not None:
                proceed = self.policy.on_missing_source(str(resolved), kind.value, source.guid)
            if not proceed:
                logger.error("Export aborted: missing %s %s at %s", kind.value, source.guid, resolved)
                raise ExportAbortedError(str(resolved), kind.value, source.guid)
            self._warn(f"Could not process source: {resolved}")
            return

        size = resolved.stat().st_size
        if self.policy.include_external_sources and size <= self.policy.max_internal_file_size:
            try:
                data = resolved.read_bytes()
            except OSError as exc:
                self._warn(f"Could not read source {resolved}: {exc}")
                self._keep_external(kind, source, address, resolved)
                return
            new_name = f"{self.policy.id_generator()}{resolved.suffix}"
            self.result.files[SOURCES_PREFIX + new_name] = data
            self._rewrite(kind, source, construct(AddressScheme.INTERNAL, new_name),
                          construct(AddressScheme.ABSOLUTE, resolved))
            logger.debug("Embedded %s (%d bytes) as %s", resolved, size, new_name)
            return

        self._keep_external(kind, source, address, resolved)

    def run(self) -> PackagingResult:
        for kind, _, source in self.result.project.sources.iter_sources():
            address = source.address
            if not address:
                continue
            if classify(address) is AddressScheme.INTERNAL:
                self._package_internal(source, address)
            else:
                self._package_external(kind, source, address)
        return self.result


def package_sources(project: Project, policy: Optional[PackagingPolicy] = None) -> PackagingResult:
    """Prepare the sources of *project* for export.

    The caller's project is never modified; the rewritten copy is returned
    in :attr:`PackagingResult.project`.

    Raises:
        ExportAbortedError: If ``on_missing_source`` declines to continue.
    """
    policy = policy or PackagingPolicy()
    working = copy.deepcopy(project)
    result = _SourcePackager(working, policy).run()
    logger.info(
        "Packaged sources: %d embedded file(s), %d external, %d warning(s)",
        len(result.files), len(result.unresolved_external), len(result.warnings),
    )
    return result
