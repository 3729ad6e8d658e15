"""
Tests for logging setup.
"""

import logging

from timeleft.core.config import Settings
from timeleft.core.logging import redact_secrets, setup_logging


def test_secrets_are_masked():
    event = redact_secrets(None, "info", {"event": "login_succeeded", "token": "abc", "Password": "x", "user_id": "u1"})
    assert event == {"event": "login_succeeded", "token": "***", "Password": "***", "user_id": "u1"}


def test_repeated_setup_keeps_one_handler():
    root = logging.getLogger()
    before = len(root.handlers)

    setup_logging(Settings(_env_file=None, LOG_LEVEL="debug"))
    setup_logging(Settings(_env_file=None, ENVIRONMENT="production"))

    assert len(root.handlers) <= before + 1
    assert root.level == logging.INFO
