from __future__ import annotations

"""Optional grammar check of a manifest.

With an XSD path the manifest is validated by ``lxml.etree.XMLSchema``;
without one only well-formedness and the ``<Project>`` root are checked.
Either way the result is an empty list or a single message.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from lxml import etree as ET  # type: ignore

from qdpx_toolkit.core.converter.xml_parser import load_manifest_tree
from qdpx_toolkit.core.exceptions import MalformedDocumentError, SchemaValidationError

__all__ = ["SchemaValidator"]

logger = logging.getLogger(__name__)


class SchemaValidator:
    """Validate manifest text against the REFI-QDA grammar.

    Args:
        xsd_path: Path to ``Project.xsd``. When None only structural
            checks are made.
    """

    def __init__(self, xsd_path: Optional[Union[str, Path]] = None) -> None:
        self.xsd_path = Path(xsd_path) if xsd_path else None
        self._schema: Optional[ET.XMLSchema] = None

    def _load_schema(self, xsd_path: Path) -> ET.XMLSchema:
        if self._schema is None:
            try:
                self._schema = ET.XMLSchema(ET.parse(str(xsd_path)))
            except (OSError, ET.XMLSyntaxError, ET.XMLSchemaParseError) as exc:
                raise SchemaValidationError(
                    f"Cannot load grammar from {xsd_path}: {exc}", issues=[str(exc)]
                ) from exc
            logger.debug("Loaded grammar: %s", xsd_path)
        return self._schema

    def validate(self, document: Union[str, bytes]) -> List[str]:
        """Return ``[]`` when *document* is acceptable, else one message.

        Raises:
            SchemaValidationError: Only when the configured XSD itself cannot
                be loaded.
        """
        try:
            root = load_manifest_tree(document)
        except MalformedDocumentError as exc:
            return [exc.message]

        if self.xsd_path is None:
            return []

        schema = self._load_schema(self.xsd_path)
        if schema.validate(root):
            return []
        error = schema.error_log.last_error
        message = f"line {error.line}: {error.message}" if error else "Document does not match the grammar"
        logger.debug("Grammar validation failed: %s", message)
        return [message]
