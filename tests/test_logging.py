"""Tests for logging helpers."""

import logging

import pytest

from masterflasher_core.utils.logging import get_logger, log_exceptions

logger = get_logger("masterflasher_core.tests")


def test_package_loggers_share_root_handler() -> None:
    root = logging.getLogger("masterflasher_core")

    assert root.handlers
    assert not logger.handlers


def test_sync_exceptions_logged_and_reraised(caplog) -> None:
    @log_exceptions(logger, operation="parse deck")
    def broken() -> None:
        raise ValueError("bad deck")

    with caplog.at_level(logging.ERROR), pytest.raises(ValueError):
        broken()

    assert "parse deck failed with ValueError: bad deck" in caplog.text


@pytest.mark.asyncio
async def test_async_exceptions_logged_and_reraised(caplog) -> None:
    @log_exceptions(logger)
    async def broken_async() -> None:
        raise RuntimeError("model down")

    with caplog.at_level(logging.ERROR), pytest.raises(RuntimeError):
        await broken_async()

    assert "broken_async failed with RuntimeError: model down" in caplog.text


@pytest.mark.asyncio
async def test_return_values_pass_through() -> None:
    @log_exceptions(logger)
    async def ok() -> int:
        return 3

    assert await ok() == 3


def test_decorator_factory_returns_decorator() -> None:
    decorator = log_exceptions(logger, operation="export")

    assert callable(decorator)
    assert callable(decorator(lambda: None))


@pytest.mark.asyncio
async def test_package_entry_point_logs_failures(caplog) -> None:
    import masterflasher_core
    from masterflasher_core.settings import (
        InMemoryKeyValueStore,
        MissingConfigurationError,
        StoredConfigProvider,
    )

    provider = StoredConfigProvider(InMemoryKeyValueStore())

    with caplog.at_level(logging.ERROR), pytest.raises(MissingConfigurationError):
        await masterflasher_core.create_flashcards("Some text.", provider)

    assert "Flashcard pipeline failed with MissingConfigurationError" in caplog.text
