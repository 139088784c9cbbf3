"""Shared fixtures."""

import pytest

from gate import Conn, Router
from gate.utils.logger import LogLevel, MemoryHandler, get_logger


@pytest.fixture
def router():
    return Router()


@pytest.fixture
def make_conn():
    def factory(method="GET", path="/", headers=None, **kwargs):
        return Conn(method, path, headers=headers, **kwargs)
    return factory


@pytest.fixture
def calls():
    """Records the order in which steps and handlers run."""
    return []


@pytest.fixture
def recorder(calls):
    """Build a step that appends its name to ``calls``."""
    def factory(name, halt=False):
        def step(conn, options):
            calls.append(name)
            if halt:
                conn.send_resp(401, "Unauthorized").halt()
            return conn
        step.__name__ = name
        return step
    return factory


@pytest.fixture
def log_records():
    """Capture records emitted by the named gate loggers."""
    handler = MemoryHandler()
    names = ["gate.router", "gate.pipeline", "gate.dispatch", "gate.app", "gate.config"]
    loggers = [get_logger(name) for name in names]
    levels = [logger.level for logger in loggers]
    for logger in loggers:
        logger.level = LogLevel.DEBUG
    loggers[0].add_handler(handler)
    yield handler.records
    loggers[0].remove_handler(handler)
    for logger, level in zip(loggers, levels):
        logger.level = level
