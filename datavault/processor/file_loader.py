from pathlib import Path

from datavault.processor.exceptions import FileReadError


class FileLoader:
    """Reads UTF-8 payload and policy files from disk."""

    ENCODING = "utf-8"

    def __init__(self, max_bytes: int | None = None) -> None:
        self._max_bytes = max_bytes

    def load_text(self, path: Path) -> str:
        """Read *path* as UTF-8 text.

        Raises:
            FileReadError: if the file is missing, unreadable, too large or not UTF-8.
        """
        if not path.is_file():
            raise FileReadError(f"File not found: {path}")
        if self._max_bytes is not None and path.stat().st_size > self._max_bytes:
            raise FileReadError(f"File {path} exceeds {self._max_bytes} bytes")
        try:
            return path.read_text(encoding=self.ENCODING)
        except UnicodeDecodeError as exc:
            raise FileReadError(f"File {path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise FileReadError(f"Cannot read {path}: {exc}") from exc

    def write_text(self, path: Path, text: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding=self.ENCODING)
        except OSError as exc:
            raise FileReadError(f"Cannot write {path}: {exc}") from exc
