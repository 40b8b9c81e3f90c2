# nowcapital/models/__init__.py
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables (.env.local wins over .env)
if Path(".env.local").exists():
    load_dotenv(dotenv_path=".env.local")
else:
    load_dotenv()

DEFAULT_BASE_URL = "https://api.nowcapital.ca"


def _env_int(name, default):
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_flag(name, default=False):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Credentials:
    api_key: str
    base_url: str = DEFAULT_BASE_URL

    def __repr__(self):
        # never echo the key into logs or tracebacks
        return f"Credentials(api_key='***', base_url='{self.base_url}')"

    @classmethod
    def from_env(cls) -> "Credentials":
        api_key = os.getenv("NOWCAPITAL_API_KEY", "").strip()
        if not api_key:
            raise ValueError("Missing NOWCAPITAL_API_KEY in .env or .env.local")
        base_url = os.getenv("NOWCAPITAL_BASE_URL", "").strip() or DEFAULT_BASE_URL
        return cls(api_key=api_key, base_url=base_url.rstrip("/"))


@dataclass(frozen=True)
class Settings:
    """Boundary-level knobs; none of them change payload contents."""

    timeout: int = 30
    max_retries: int = 0
    max_handover_depth: int = 1
    continue_on_fail: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            timeout=_env_int("NOWCAPITAL_TIMEOUT", 30),
            max_retries=_env_int("NOWCAPITAL_MAX_RETRIES", 0),
            max_handover_depth=_env_int("NOWCAPITAL_MAX_HANDOVER_DEPTH", 1),
            continue_on_fail=_env_flag("NOWCAPITAL_CONTINUE_ON_FAIL", False),
        )
