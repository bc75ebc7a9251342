import tomllib
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".flashdeck"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

DEFAULT_EASE_FACTOR_MIN = 1.3
DEFAULT_EASE_FACTOR_MAX = 2.5
# Upper bound allowed by the flashcards table CHECK constraint
STORED_EASE_FACTOR_MAX = 2.6


@dataclass(frozen=True)
class SchedulerSettings:
    ease_factor_min: float = DEFAULT_EASE_FACTOR_MIN
    ease_factor_max: float = DEFAULT_EASE_FACTOR_MAX
    max_interval_days: int = 0
    due_limit: int = 20


def load_config() -> Dict[str, Any]:
    """Load config from ~/.flashdeck/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., EASE_FACTOR_MAX env var)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    scheduler_cfg = config.get("scheduler", {})
    config["scheduler"] = {
        "ease_factor_min": float(os.getenv(
            "EASE_FACTOR_MIN", scheduler_cfg.get("ease_factor_min", DEFAULT_EASE_FACTOR_MIN)
        )),
        "ease_factor_max": float(os.getenv(
            "EASE_FACTOR_MAX", scheduler_cfg.get("ease_factor_max", DEFAULT_EASE_FACTOR_MAX)
        )),
        "max_interval_days": int(os.getenv(
            "MAX_INTERVAL_DAYS", scheduler_cfg.get("max_interval_days", 0)
        )),
    }
    session_cfg = config.get("session", {})
    config["session"] = {
        "due_limit": int(os.getenv("SESSION_DUE_LIMIT", session_cfg.get("due_limit", 20))),
    }
    mastery_cfg = config.get("mastery", {})
    config["mastery"] = {
        "min_repetitions": int(mastery_cfg.get("min_repetitions", 5)),
        "min_ease_factor": float(mastery_cfg.get("min_ease_factor", 2.5)),
    }
    server_cfg = config.get("server", {})
    config["server"] = {
        "host": os.getenv("FLASHDECK_HOST", server_cfg.get("host", "127.0.0.1")),
        "port": int(os.getenv("FLASHDECK_PORT", server_cfg.get("port", 8000))),
    }
    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
    }
    return config


def get_scheduler_settings(config: Optional[Dict[str, Any]] = None) -> SchedulerSettings:
    """Build the settings the review controller runs with."""
    if not config:
        config = load_config()
    scheduler_cfg = config["scheduler"]
    ease_min = scheduler_cfg["ease_factor_min"]
    ease_max = scheduler_cfg["ease_factor_max"]
    if ease_min < DEFAULT_EASE_FACTOR_MIN or ease_max < ease_min or ease_max > STORED_EASE_FACTOR_MAX:
        raise ValueError(
            f"Invalid ease factor bounds in {CONFIG_PATH}: min={ease_min}, max={ease_max}"
        )
    return SchedulerSettings(
        ease_factor_min=ease_min,
        ease_factor_max=ease_max,
        max_interval_days=max(0, scheduler_cfg["max_interval_days"]),
        due_limit=config["session"]["due_limit"],
    )
