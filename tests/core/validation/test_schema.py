"""Tests for the optional grammar check."""

import pytest

pytest.importorskip("lxml")

from qdpx_toolkit.core.converter import serialize_project
from qdpx_toolkit.core.exceptions import SchemaValidationError
from qdpx_toolkit.core.models import Project
from qdpx_toolkit.core.validation import SchemaValidator

MINIMAL_XSD = """<?xml version="1.0" encoding="UTF-8"?>
<xs:schema xmlns:xs="http://www.w3.org/2001/XMLSchema"
           targetNamespace="urn:QDA-XML:project:1.0"
           xmlns="urn:QDA-XML:project:1.0"
           elementFormDefault="qualified">
  <xs:element name="Project">
    <xs:complexType>
      <xs:sequence>
        <xs:any processContents="lax" minOccurs="0" maxOccurs="unbounded"/>
      </xs:sequence>
      <xs:attribute name="name" type="xs:string" use="required"/>
      <xs:anyAttribute processContents="lax"/>
    </xs:complexType>
  </xs:element>
</xs:schema>
"""


@pytest.fixture
def xsd_path(tmp_path):
    path = tmp_path / "Project.xsd"
    path.write_text(MINIMAL_XSD, encoding="utf-8")
    return path


class TestStructuralCheck:
    """Without an XSD only well-formedness and the root are checked."""

    def test_valid_manifest(self, p1_manifest):
        assert SchemaValidator().validate(p1_manifest) == []

    def test_not_well_formed(self):
        issues = SchemaValidator().validate("<Project name='x'>")
        assert len(issues) == 1

    def test_wrong_root(self):
        issues = SchemaValidator().validate("<Other/>")
        assert len(issues) == 1
        assert "Project" in issues[0]


class TestGrammarCheck:
    """With an XSD the manifest is validated against it."""

    def test_serialized_project_passes(self, xsd_path):
        manifest = serialize_project(Project(name="P"))
        assert SchemaValidator(xsd_path).validate(manifest) == []

    def test_violation_yields_single_message(self, xsd_path):
        issues = SchemaValidator(xsd_path).validate('<Project xmlns="urn:QDA-XML:project:1.0"/>')
        assert len(issues) == 1
        assert "name" in issues[0]

    def test_missing_xsd_raises(self, tmp_path):
        validator = SchemaValidator(tmp_path / "absent.xsd")
        with pytest.raises(SchemaValidationError):
            validator.validate(serialize_project(Project(name="P")))

    def test_grammar_is_loaded_once(self, xsd_path):
        """A loaded grammar is reused after the file disappears."""
        validator = SchemaValidator(xsd_path)
        manifest = serialize_project(Project(name="P"))
        assert validator.validate(manifest) == []
        xsd_path.unlink()
        assert validator.validate(manifest) == []
        assert validator.validate('<Project xmlns="urn:QDA-XML:project:1.0"/>') != []
