import logging

import pytest

from exam_config import configure_logging, load_settings
from question_service import DEFAULT_MAX_TOKENS, DEFAULT_MODEL


class MissingSecrets:
    """Behaves like st.secrets without a secrets.toml."""

    def get(self, name, default=None):
        raise FileNotFoundError("No secrets found")


def test_defaults_with_empty_environment():
    s = load_settings(environ={})
    assert s.api_key == ""
    assert s.model == DEFAULT_MODEL
    assert s.max_tokens == DEFAULT_MAX_TOKENS
    assert s.sheet_url == ""
    assert s.sheet_timeout == 10.0
    assert s.log_level == "INFO"


def test_secrets_take_precedence_over_environment():
    secrets = {"ANTHROPIC_API_KEY": "sk-ant-secret", "EXAM_MAX_TOKENS": 2000}
    environ = {"ANTHROPIC_API_KEY": "sk-ant-env", "SHEET_WEBHOOK_URL": " https://x/exec "}
    s = load_settings(secrets=secrets, environ=environ)
    assert s.api_key == "sk-ant-secret"
    assert s.max_tokens == 2000
    assert s.sheet_url == "https://x/exec"


def test_missing_secrets_file_falls_back_to_environment():
    s = load_settings(secrets=MissingSecrets(), environ={"ANTHROPIC_API_KEY": "sk-ant-env", "LOG_LEVEL": "debug"})
    assert s.api_key == "sk-ant-env"
    assert s.log_level == "DEBUG"


def test_bad_number_is_reported():
    with pytest.raises(ValueError, match="SHEET_TIMEOUT"):
        load_settings(environ={"SHEET_TIMEOUT": "soon"})


@pytest.fixture
def bare_root_logger():
    """Root logger with no exam handler, restored afterwards."""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    for h in saved_handlers:
        if getattr(h, "_exam_handler", False):
            root.removeHandler(h)
    yield root
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_configure_logging_installs_one_handler(bare_root_logger):
    configure_logging("debug")
    configure_logging("warning")
    exam_handlers = [h for h in bare_root_logger.handlers if getattr(h, "_exam_handler", False)]
    assert len(exam_handlers) == 1
    assert bare_root_logger.level == logging.WARNING
