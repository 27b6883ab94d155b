"""Unit tests for file discovery and content loading."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from models.document import ExtractionResult, SourceFile
from services.document_loader import (
    DocumentLoader,
    is_document_file,
    is_excluded,
    is_text_file,
    should_index,
)
from services.text_extractor import ExtractionError, TextExtractor


@pytest.fixture
def documents_dir(tmp_path):
    """Small tree with indexable, excluded and unsupported files."""
    root = tmp_path / "docs"
    (root / "sub").mkdir(parents=True)
    (root / "node_modules" / "pkg").mkdir(parents=True)
    (root / ".git").mkdir()
    (root / "build").mkdir()

    (root / "b_notes.md").write_text("# Notes\nSome notes.")
    (root / "a_readme.txt").write_text("Read me first.")
    (root / "debug.log").write_text("log line")
    (root / "photo.png").write_bytes(b"\x89PNG")
    (root / "sub" / "script.py").write_text("print('hello')")
    (root / "node_modules" / "pkg" / "index.js").write_text("module.exports = 1")
    (root / ".git" / "notes.txt").write_text("git internals")
    (root / "build" / "output.txt").write_text("generated")
    return root


class TestPathFilters:
    """Test suite for exclusion and extension filters."""

    def test_excluded_directories(self):
        assert is_excluded("project/node_modules/lib/index.js")
        assert is_excluded(".git/config.txt")
        assert is_excluded("site/dist/app.js")
        assert not is_excluded("project/src/index.js")

    def test_excluded_file_patterns(self):
        assert is_excluded("server.log")
        assert is_excluded("scratch.TMP")
        assert is_excluded("notes/draft.temp")
        assert not is_excluded("logbook.txt")

    def test_should_index_extensions(self):
        assert should_index("notes.md")
        assert should_index("report.PDF")
        assert should_index("budget.xlsx")
        assert should_index("deck.pptx")
        assert not should_index("photo.png")
        assert not should_index("archive.zip")
        assert not should_index("macros.xlsm")

    def test_should_index_respects_exclusions(self):
        assert not should_index("app/node_modules/readme.md")
        assert not should_index("trace.log")

    def test_text_detection(self):
        assert is_text_file(SourceFile.from_bytes("main.rs", b"fn main() {}"))
        assert is_text_file(SourceFile.from_bytes("README", b"hi", mime_type="text/plain"))
        assert not is_text_file(SourceFile.from_bytes("report.pdf", b"%PDF"))

    def test_document_detection(self):
        assert is_document_file(SourceFile.from_bytes("report.pdf", b"%PDF"))
        assert is_document_file(SourceFile.from_bytes("letter.docx", b"PK"))
        assert is_document_file(SourceFile.from_bytes("scan", b"%PDF", mime_type="application/pdf"))
        assert not is_document_file(SourceFile.from_bytes("notes.txt", b"hi"))


class TestDiscoverFiles:
    """Test suite for DocumentLoader.discover_files."""

    def test_finds_indexable_files_in_stable_order(self, documents_dir):
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        files = loader.discover_files(documents_dir)

        assert [f.name for f in files] == ["a_readme.txt", "b_notes.md", "script.py"]

    def test_source_path_is_resolved_path(self, documents_dir):
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        files = loader.discover_files(documents_dir)

        assert files[0].source_path == (documents_dir / "a_readme.txt").resolve().as_posix()
        assert files[0].size == len("Read me first.")
        assert files[0].path == documents_dir / "a_readme.txt"

    def test_excluded_directories_pruned(self, documents_dir):
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        names = {f.name for f in loader.discover_files(documents_dir)}

        assert "index.js" not in names
        assert "notes.txt" not in names
        assert "output.txt" not in names
        assert "debug.log" not in names

    def test_empty_directory(self, tmp_path):
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        assert loader.discover_files(tmp_path) == []

    def test_missing_directory(self, tmp_path):
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        with pytest.raises(NotADirectoryError, match="not found"):
            loader.discover_files(tmp_path / "missing")


class TestLoadContent:
    """Test suite for DocumentLoader.load_content."""

    def test_text_file_decoded(self):
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        content = loader.load_content(SourceFile.from_bytes("notes.md", "Café notes".encode("utf-8")))

        assert content.text == "Café notes"
        assert content.placeholder is False

    def test_text_file_invalid_utf8_replaced(self):
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        content = loader.load_content(SourceFile.from_bytes("notes.txt", b"ok \xff\xfe bytes"))

        assert content.text.startswith("ok ")
        assert "�" in content.text

    def test_text_file_read_from_disk(self, tmp_path):
        path = tmp_path / "disk.txt"
        path.write_text("on disk")
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        assert loader.load_content(SourceFile.from_path(path)).text == "on disk"

    def test_document_uses_extractor(self):
        extractor = Mock(spec=TextExtractor)
        extractor.extract.return_value = ExtractionResult(text="Extracted body", metadata={"page_count": 1})
        loader = DocumentLoader(extractor=extractor)

        content = loader.load_content(SourceFile.from_bytes("report.pdf", b"%PDF-1.7"))

        assert content.text == "Extracted body"
        assert content.placeholder is False
        extractor.extract.assert_called_once_with(b"%PDF-1.7", "report.pdf", "application/pdf")

    def test_pdf_extraction_failure_placeholder(self):
        extractor = Mock(spec=TextExtractor)
        extractor.extract.side_effect = ExtractionError("broken xref table")
        loader = DocumentLoader(extractor=extractor)

        content = loader.load_content(SourceFile.from_bytes("report.pdf", b"%PDF-broken"))

        assert content.text == "[PDF: report.pdf] Unable to extract text content."
        assert content.placeholder is True
        assert content.extraction_error == "broken xref table"

    def test_office_extraction_failure_placeholder(self):
        extractor = Mock(spec=TextExtractor)
        extractor.extract.side_effect = ExtractionError("not a zip file")
        loader = DocumentLoader(extractor=extractor)

        content = loader.load_content(SourceFile.from_bytes("letter.docx", b"garbage"))

        assert content.text == "[Office Document: letter.docx] Unable to extract text content."
        assert content.placeholder is True

    def test_other_binary_metadata_placeholder(self):
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        content = loader.load_content(
            SourceFile.from_bytes("blob.bin", b"\x00" * 42, mime_type="application/octet-stream")
        )

        assert content.text == "File: blob.bin\nType: application/octet-stream\nSize: 42 bytes"
        assert content.placeholder is True

    def test_missing_file_raises(self, tmp_path):
        path = tmp_path / "gone.txt"
        path.write_text("soon gone")
        source = SourceFile.from_path(path)
        path.unlink()
        loader = DocumentLoader(extractor=Mock(spec=TextExtractor))

        with pytest.raises(OSError):
            loader.load_content(source)
