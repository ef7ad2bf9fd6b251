from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_TIMEOUT_SECONDS = 20.0


def load_env(*, override: bool = False) -> Path | None:
    repo_root = Path(__file__).resolve().parents[2]
    candidates = [
        repo_root / ".env",
        Path.cwd() / ".env",
    ]
    for path in candidates:
        if path.is_file():
            load_dotenv(dotenv_path=path, override=override)
            return path
    return None


def _env_str(name: str) -> str | None:
    value = (os.getenv(name) or "").strip()
    return value or None


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class ExternalListSettings:
    """
    Credentials and transport settings for external list adapters.

    Missing credentials are allowed here; the adapter that needs one raises when
    it is asked to fetch.
    """

    mdblist_api_key: str | None = None
    tmdb_api_key: str | None = None
    trakt_client_id: str | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, *, load_dotenv_file: bool = True) -> "ExternalListSettings":
        if load_dotenv_file:
            load_env()
        return cls(
            mdblist_api_key=_env_str("MDBLIST_API_KEY"),
            tmdb_api_key=_env_str("TMDB_API_KEY"),
            trakt_client_id=_env_str("TRAKT_CLIENT_ID"),
            timeout_seconds=_env_float("EXTERNAL_LIST_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS),
        )
