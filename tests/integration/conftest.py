from collections.abc import Callable
from pathlib import Path

import pytest

from datavault.config.settings import Settings


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(_env_file=None, log_level="ERROR")


@pytest.fixture()
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(name: str, text: str) -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write
