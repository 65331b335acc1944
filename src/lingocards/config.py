"""Configuration helpers for LingoCards."""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from .translate import DEFAULT_LANGPAIR, TranslationServiceFactory, split_langpair

DEFAULT_DB_PATH = "lingocards.duckdb"
DEFAULT_TRANSLATOR = "mymemory"
DEFAULT_POLL_SECONDS = 2.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def configure_logging(log_level: str = "INFO") -> None:
    """Set up project-wide logging configuration."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=log_level.upper(),
    )


def _parse_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise RuntimeError(f"{name} must be a boolean (true/false).")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables.

    Call ``dotenv.load_dotenv()`` first to pick up a ``.env`` file.
    """

    db_path: str = DEFAULT_DB_PATH
    translator: str = DEFAULT_TRANSLATOR
    langpair: str = DEFAULT_LANGPAIR
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    log_level: str = "INFO"
    shuffle: bool = True
    poll_seconds: float = DEFAULT_POLL_SECONDS

    @classmethod
    def from_env(cls) -> "Settings":
        """Construct settings directly from environment variables."""
        translator = os.getenv("LINGOCARDS_TRANSLATOR", DEFAULT_TRANSLATOR).strip().lower()
        if translator not in TranslationServiceFactory.get_available_services():
            raise RuntimeError(f"LINGOCARDS_TRANSLATOR must be one of {TranslationServiceFactory.get_available_services()}.")

        langpair = os.getenv("LINGOCARDS_LANGPAIR", DEFAULT_LANGPAIR)
        try:
            split_langpair(langpair)
        except ValueError as exc:
            raise RuntimeError("LINGOCARDS_LANGPAIR must look like 'id|en'.") from exc

        try:
            poll_seconds = float(os.getenv("LINGOCARDS_POLL_SECONDS", str(DEFAULT_POLL_SECONDS)))
        except ValueError as exc:
            raise RuntimeError("LINGOCARDS_POLL_SECONDS must be a number.") from exc
        if poll_seconds <= 0:
            raise RuntimeError("LINGOCARDS_POLL_SECONDS must be positive.")

        return cls(
            db_path=os.getenv("LINGOCARDS_DB_PATH", DEFAULT_DB_PATH),
            translator=translator,
            langpair=langpair,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            shuffle=_parse_bool("LINGOCARDS_SHUFFLE", True),
            poll_seconds=poll_seconds,
        )

    def api_key_for(self, service_type: str) -> Optional[str]:
        if service_type == "openai":
            return self.openai_api_key
        if service_type == "gemini":
            return self.gemini_api_key
        return None
