"""settings.py — Runtime configuration from the environment and .env."""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_STORE = Path("~/.listenbook/session.json")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name, "").strip().lower()
    if not value:
        return default
    return value not in ("0", "false", "no", "off")


@dataclass
class Settings:
    elevenlabs_api_key: str = ""
    openai_api_key: str = ""
    voice_id: str | None = None
    tts_model: str = "eleven_turbo_v2_5"
    structuring_model: str = "gpt-4o-mini"
    store_path: Path = DEFAULT_STORE
    auto_bookmark: bool = True
    request_timeout: float = 120.0


def load_settings() -> Settings:
    """Read settings; values already in the environment win over .env."""
    load_dotenv()
    return Settings(
        elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY", "").strip(),
        openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
        voice_id=os.getenv("VOICE_ID", "").strip() or None,
        tts_model=os.getenv("LISTENBOOK_TTS_MODEL", "").strip() or Settings.tts_model,
        structuring_model=os.getenv("LISTENBOOK_STRUCTURING_MODEL", "").strip() or Settings.structuring_model,
        store_path=Path(os.getenv("LISTENBOOK_STORE", "").strip() or DEFAULT_STORE).expanduser(),
        auto_bookmark=_env_flag("LISTENBOOK_AUTO_BOOKMARK", True),
        request_timeout=float(os.getenv("LISTENBOOK_REQUEST_TIMEOUT", "").strip() or Settings.request_timeout),
    )
