from __future__ import annotations

import logging
from collections.abc import Iterator
from unittest.mock import Mock

import pytest

from mssqlkit.config import MssqlConfig
from mssqlkit.driver import ConnectionManager, StatementExecutor
from mssqlkit.utils.logging import ROOT_LOGGER_NAME, set_correlation_id


@pytest.fixture(autouse=True)
def restore_library_logger() -> Iterator[None]:
    """Undo ``configure_logging`` calls so caplog keeps seeing library records."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
    set_correlation_id(None)


@pytest.fixture
def mock_cursor() -> Mock:
    cursor = Mock(name="cursor")
    cursor.description = None
    cursor.rowcount = 1
    cursor.nextset.return_value = False
    return cursor


@pytest.fixture
def mock_connection(mock_cursor: Mock) -> Mock:
    connection = Mock(name="connection")
    connection.cursor.return_value = mock_cursor
    return connection


@pytest.fixture
def connection_factory(mock_connection: Mock) -> Mock:
    return Mock(name="connection_factory", return_value=mock_connection)


@pytest.fixture
def config(connection_factory: Mock) -> MssqlConfig:
    return MssqlConfig(connection_string="DRIVER={Test};SERVER=test;", connection_factory=connection_factory)


@pytest.fixture
def manager(config: MssqlConfig) -> ConnectionManager:
    return ConnectionManager(config)


@pytest.fixture
def executor(manager: ConnectionManager) -> StatementExecutor:
    return StatementExecutor(manager)
