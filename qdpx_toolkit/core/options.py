from __future__ import annotations

"""Import and export options.

Both option sets can be built from the YAML defaults served by
:class:`~qdpx_toolkit.config.ConfigManager` with :meth:`from_config`;
explicit keyword overrides win over configuration.
"""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Optional, Union

from qdpx_toolkit.config import ConfigManager
from qdpx_toolkit.core.models import new_guid
from qdpx_toolkit.core.packaging import DEFAULT_MAX_INTERNAL_FILE_SIZE, MissingSourceCallback

__all__ = ["ImportOptions", "ExportOptions"]

logger = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]


def _known(cls, section: str, values: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - names)
    if unknown:
        logger.warning("Ignoring unknown %s option(s) in config: %s", section, ", ".join(unknown))
    return {k: v for k, v in values.items() if k in names}


@dataclass
class ImportOptions:
    """Options for :func:`qdpx_toolkit.core.importers.import_qdpx`.

    Attributes:
        validate_schema: Run the grammar validator on the manifest.
        schema_path: ``Project.xsd`` used by the grammar validator.
        extract_internal_sources: Write ``sources/`` entries to disk.
        sources_output_path: Target directory for extracted sources;
            defaults to ``sources`` next to the container.
        resolve_external_sources: Report external sources that do not exist.
        external_base_path: Base for relative addresses when resolving.
    """

    validate_schema: bool = True
    schema_path: Optional[PathLike] = None
    extract_internal_sources: bool = True
    sources_output_path: Optional[PathLike] = None
    resolve_external_sources: bool = False
    external_base_path: Optional[PathLike] = None

    @classmethod
    def from_config(cls, **overrides: Any) -> "ImportOptions":
        values = _known(cls, "import", ConfigManager().get_import_defaults())
        values.update(overrides)
        return cls(**values)


@dataclass
class ExportOptions:
    """Options for :func:`qdpx_toolkit.core.exporters.export_qdpx`.

    Attributes:
        include_external_sources: Embed external files that fit the size limit.
        export_base_path: Base for relative addresses; defaults to the
            output file's directory.
        max_internal_file_size: Largest embeddable file, in bytes.
        validate_before_export: Check the project, and the produced
            manifest, before anything is written.
        schema_path: ``Project.xsd`` for the manifest check.
        overwrite: Replace an existing output file.
        on_missing_source: ``(path, source_kind, guid) -> bool``; a falsy
            result aborts the export.
        internal_sources_path: Directory holding sources extracted at
            import time, searched for internal sources.
        id_generator: Produces names for newly embedded files.
    """

    include_external_sources: bool = False
    export_base_path: Optional[PathLike] = None
    max_internal_file_size: int = DEFAULT_MAX_INTERNAL_FILE_SIZE
    validate_before_export: bool = True
    schema_path: Optional[PathLike] = None
    overwrite: bool = False
    on_missing_source: Optional[MissingSourceCallback] = None
    internal_sources_path: Optional[PathLike] = None
    id_generator: Callable[[], str] = new_guid

    def __post_init__(self) -> None:
        size = self.max_internal_file_size
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValueError(f"max_internal_file_size must be a non-negative integer, got {size!r}")

    @classmethod
    def from_config(cls, **overrides: Any) -> "ExportOptions":
        values = _known(cls, "export", ConfigManager().get_export_defaults())
        values.update(overrides)
        return cls(**values)
