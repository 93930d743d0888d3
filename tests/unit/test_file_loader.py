from pathlib import Path

import pytest

from datavault.processor.exceptions import FileReadError
from datavault.processor.file_loader import FileLoader


class TestLoadText:
    def test_reads_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "note.txt"
        path.write_text("Herr Müller", encoding="utf-8")
        assert FileLoader().load_text(path) == "Herr Müller"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileReadError, match="File not found"):
            FileLoader().load_text(tmp_path / "missing.txt")

    def test_directory_is_not_a_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileReadError, match="File not found"):
            FileLoader().load_text(tmp_path)

    def test_size_limit(self, tmp_path: Path) -> None:
        path = tmp_path / "big.txt"
        path.write_text("x" * 11, encoding="utf-8")
        with pytest.raises(FileReadError, match="exceeds 10 bytes"):
            FileLoader(max_bytes=10).load_text(path)

    def test_invalid_utf8_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "latin1.txt"
        path.write_bytes("Müller".encode("latin-1"))
        with pytest.raises(FileReadError, match="not valid UTF-8"):
            FileLoader().load_text(path)


class TestWriteText:
    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "out" / "nested" / "result.json"
        FileLoader().write_text(path, "{}\n")
        assert path.read_text(encoding="utf-8") == "{}\n"

    def test_unwritable_target_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(FileReadError, match="Cannot write"):
            FileLoader().write_text(blocker / "result.json", "{}")
