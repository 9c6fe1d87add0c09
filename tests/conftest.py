import logging
from datetime import datetime, timezone

import pytest

from config import AppConfig
from context import ContextInjector
from logging_config import APP_LOGGERS
from transcript_store import MessageStore, TranscriptFile


class FakeTransport:
    """Stands in for CohereClient; replays canned bodies or raises canned errors."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def post(self, path, json_body):
        self.calls.append((path, json_body))
        if not self.responses:
            raise AssertionError("unexpected request")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FixedLocator:
    def __init__(self, city="Toronto"):
        self.city = city
        self.calls = 0

    def current_city(self):
        self.calls += 1
        return self.city


FIXED_NOW = datetime(2025, 1, 6, 12, 34, 56, tzinfo=timezone.utc)


@pytest.fixture
def transcript_path(tmp_path):
    return tmp_path / "chat-memory.json"


@pytest.fixture
def store(transcript_path):
    return MessageStore(TranscriptFile(transcript_path))


@pytest.fixture
def settings(tmp_path):
    return AppConfig(
        _env_file=None,
        api_key="test-key",
        inject_location=False,
        inject_time=False,
        debug_mode=False,
        config_dir=tmp_path / "config",
    )


@pytest.fixture
def injector():
    return ContextInjector(FixedLocator(), clock=lambda: FIXED_NOW)


@pytest.fixture
def make_transport():
    """Factory so tests can script the bodies a transport returns."""
    return FakeTransport


@pytest.fixture
def restore_loggers():
    """dictConfig and level changes mutate global logger state; put it back afterwards."""
    saved = {name: (logging.getLogger(name).handlers[:], logging.getLogger(name).level,
                    logging.getLogger(name).propagate) for name in APP_LOGGERS}
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate
