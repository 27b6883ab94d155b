"""Tests for the ingestion command line."""
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, patch
from ingest_documents import build_parser, main, prompt_for_directory
from services.vector_store import VectorStore


def fake_vector(text):
    return [float(len(text)), float(text.count(" ") + 1), 1.0]


@pytest.fixture(autouse=True)
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers = handlers
    root_logger.setLevel(level)


@pytest.fixture
def mock_embedding_model():
    with patch("ingest_documents.EmbeddingModel") as model_class:
        model = Mock()
        model.embed_text.side_effect = fake_vector
        model.warmup.return_value = True
        model_class.return_value = model
        yield model


@pytest.fixture
def notes_dir(tmp_path):
    root = tmp_path / "notes"
    root.mkdir()
    (root / "animals.txt").write_text("The cat sat. The dog ran. The bird flew.")
    (root / "greek.md").write_text("Alpha beta gamma. Delta epsilon zeta.")
    return root


class TestIngestCommand:
    """Test suite for the ingestion entry point."""

    def test_parser_defaults(self):
        args = build_parser().parse_args([])

        assert args.directory is None
        assert args.files == []
        assert args.clear is False

    def test_index_directory(self, tmp_path, notes_dir, mock_embedding_model):
        db_path = tmp_path / "vectors.db"

        exit_code = main([str(notes_dir), "--db-path", str(db_path), "--max-chunk-size", "20"])

        assert exit_code == 0
        mock_embedding_model.warmup.assert_called_once()
        with VectorStore(db_path) as store:
            assert store.stats().chunk_count == 5

    def test_index_files_and_query(self, tmp_path, notes_dir, mock_embedding_model, capsys):
        db_path = tmp_path / "vectors.db"

        exit_code = main([
            "--files", str(notes_dir / "animals.txt"),
            "--db-path", str(db_path),
            "--max-chunk-size", "20",
            "--query", "The bird flew.",
            "--top-k", "1",
        ])

        assert exit_code == 0
        output = capsys.readouterr().out
        assert "## Reference 1: animals.txt" in output
        assert "The bird flew." in output

    def test_stats_only(self, tmp_path, mock_embedding_model):
        exit_code = main(["--stats", "--db-path", str(tmp_path / "vectors.db")])

        assert exit_code == 0
        mock_embedding_model.embed_text.assert_not_called()

    def test_clear(self, tmp_path, notes_dir, mock_embedding_model):
        db_path = tmp_path / "vectors.db"
        main([str(notes_dir), "--db-path", str(db_path)])

        exit_code = main(["--clear", "--db-path", str(db_path)])

        assert exit_code == 0
        with VectorStore(db_path) as store:
            assert store.stats().chunk_count == 0

    def test_cancelled_prompt_indexes_nothing(self, tmp_path, mock_embedding_model):
        with patch("ingest_documents.prompt_for_directory", return_value=None):
            exit_code = main(["--db-path", str(tmp_path / "vectors.db")])

        assert exit_code == 0
        mock_embedding_model.warmup.assert_not_called()

    def test_missing_directory_fails(self, tmp_path, mock_embedding_model):
        exit_code = main([str(tmp_path / "missing"), "--db-path", str(tmp_path / "vectors.db")])

        assert exit_code == 1

    def test_query_backend_error_fails(self, tmp_path, notes_dir, mock_embedding_model):
        from services.embedding_model import EmbeddingBackendError
        db_path = tmp_path / "vectors.db"
        main([str(notes_dir), "--db-path", str(db_path)])
        mock_embedding_model.embed_text.side_effect = EmbeddingBackendError("backend down")

        exit_code = main(["--query", "cats", "--db-path", str(db_path)])

        assert exit_code == 1


class TestPromptForDirectory:
    """Test suite for the interactive directory prompt."""

    def test_answer(self):
        with patch("builtins.input", return_value="  /home/user/notes  "):
            assert prompt_for_directory() == "/home/user/notes"

    def test_empty_answer_cancels(self):
        with patch("builtins.input", return_value=""):
            assert prompt_for_directory() is None

    def test_eof_cancels(self):
        with patch("builtins.input", side_effect=EOFError):
            assert prompt_for_directory() is None
