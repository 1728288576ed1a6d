"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
EXPORTS_DIR = DATA_DIR / "exports"
DEFAULT_DB_PATH = DATA_DIR / "chat_session.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]

ASSISTANT_MODES = ("http", "simulated", "anthropic")


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def resolve_export_dir(env_value: PathLike | None = None) -> Path:
    """Resolve EXPORT_DIR to an absolute path."""
    if not env_value:
        return EXPORTS_DIR

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@dataclass
class Settings:
    """Runtime settings for the chat session service."""

    assistant_mode: str = "simulated"
    assistant_api_url: str = "http://localhost:8080"
    request_timeout_s: float = 30.0
    max_attachment_bytes: int = 10 * 1024 * 1024
    max_concurrent_transfers: int = 3
    simulated_delay_s: tuple[float, float] = (0.8, 2.3)
    export_dir: Path = EXPORTS_DIR
    db_path: PathLike = DEFAULT_DB_PATH
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-3-5-sonnet-20241022"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        mode = os.getenv("ASSISTANT_MODE", "simulated").lower()
        if mode not in ASSISTANT_MODES:
            raise ValueError(
                f"ASSISTANT_MODE must be one of {', '.join(ASSISTANT_MODES)}, got {mode!r}"
            )

        return cls(
            assistant_mode=mode,
            assistant_api_url=os.getenv("ASSISTANT_API_URL", "http://localhost:8080"),
            request_timeout_s=float(os.getenv("ASSISTANT_TIMEOUT_S", "30")),
            max_attachment_bytes=int(float(os.getenv("MAX_ATTACHMENT_MB", "10")) * 1024 * 1024),
            max_concurrent_transfers=int(os.getenv("MAX_CONCURRENT_TRANSFERS", "3")),
            export_dir=resolve_export_dir(os.getenv("EXPORT_DIR")),
            db_path=resolve_db_path(os.getenv("DATABASE_URL")),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20241022"),
        )
