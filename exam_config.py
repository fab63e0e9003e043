"""
Settings for the exam app: Streamlit secrets first, then environment, then defaults.
"""

import logging
import os
from dataclasses import dataclass

from question_service import DEFAULT_MAX_TOKENS, DEFAULT_MODEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    sheet_url: str = ""
    sheet_timeout: float = 10.0
    log_level: str = "INFO"


def _lookup(name, secrets, environ):
    if secrets is not None:
        try:
            value = secrets.get(name)
        except Exception:
            # st.secrets raises when no secrets.toml exists
            value = None
        if value not in (None, ""):
            return str(value)
    value = environ.get(name)
    return value if value not in (None, "") else None


def _as_number(name, raw, cast, default):
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_settings(secrets=None, environ=None):
    environ = os.environ if environ is None else environ

    def get(name):
        return _lookup(name, secrets, environ)

    return Settings(
        api_key=(get("ANTHROPIC_API_KEY") or "").strip(),
        model=get("EXAM_MODEL") or DEFAULT_MODEL,
        max_tokens=_as_number("EXAM_MAX_TOKENS", get("EXAM_MAX_TOKENS"), int, DEFAULT_MAX_TOKENS),
        sheet_url=(get("SHEET_WEBHOOK_URL") or "").strip(),
        sheet_timeout=_as_number("SHEET_TIMEOUT", get("SHEET_TIMEOUT"), float, 10.0),
        log_level=(get("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level="INFO"):
    """Attach one stream handler to the root logger, once per process."""
    root = logging.getLogger()
    if not any(getattr(h, "_exam_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._exam_handler = True
        root.addHandler(handler)
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    return root
