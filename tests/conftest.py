from pathlib import Path

import pytest

import config
from db import database
from utils.session import registry


def _write_test_config(config_path: Path) -> None:
    config_path.write_text(
        "\n".join(
            [
                "[scheduler]",
                "ease_factor_min = 1.3",
                "ease_factor_max = 2.5",
                "max_interval_days = 0",
                "",
                "[session]",
                "due_limit = 20",
                "",
                "[mastery]",
                "min_repetitions = 5",
                "min_ease_factor = 2.5",
            ]
        ),
        encoding="utf-8",
    )


@pytest.fixture
def flashdeck_env(tmp_path, monkeypatch):
    """Point config and database at a throwaway directory and create the schema."""
    config_dir = tmp_path / ".flashdeck"
    config_dir.mkdir()
    config_path = config_dir / "config.toml"
    _write_test_config(config_path)

    for var in ("EASE_FACTOR_MIN", "EASE_FACTOR_MAX", "MAX_INTERVAL_DAYS", "SESSION_DUE_LIMIT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(config, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config, "CONFIG_PATH", config_path)
    monkeypatch.setattr(database, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(database, "DB_PATH", config_dir / "flashdeck.db")

    database.init_db()
    registry.clear()
    yield config_dir
    registry.clear()
