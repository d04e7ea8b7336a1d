"""Unit tests for DocumentLoader."""
import pytest

from docqa.errors import InvalidConfiguration
from docqa.services.document_loader import DocumentLoader


def test_load_reads_text_and_uses_file_name_as_source(tmp_path):
    path = tmp_path / "zeta_finance.txt"
    path.write_text("Professor Kerry Walsh.\n\nZeta Finance.", encoding="utf-8")

    document = DocumentLoader().load(str(path))

    assert document.source == "zeta_finance.txt"
    assert document.text == "Professor Kerry Walsh.\n\nZeta Finance."


def test_missing_file_raises(tmp_path):
    with pytest.raises(InvalidConfiguration, match="Document not found"):
        DocumentLoader().load(str(tmp_path / "missing.txt"))


def test_undecodable_file_raises(tmp_path):
    path = tmp_path / "binary.txt"
    path.write_bytes(b"\xff\xfe\xfa")

    with pytest.raises(InvalidConfiguration, match="Cannot read document"):
        DocumentLoader().load(str(path))
