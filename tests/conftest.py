import asyncio

import pytest

from polylog import MemLogger, dispatch, install_root_logger


@pytest.fixture
def mem() -> MemLogger:
    """Function-scoped in-memory logger storing raw message dicts."""
    return MemLogger()


@pytest.fixture(autouse=True)
def reset_root_logger():
    """configure_logging() installs its root into the current context; undo it."""
    yield
    install_root_logger(None)


@pytest.fixture(autouse=True)
def reset_sync_debounce():
    """Object ids are reused across tests; forget loop-less reports."""
    dispatch._sync_reports.clear()
    yield
    dispatch._sync_reports.clear()


async def next_tick(times: int = 2) -> None:
    """Let callbacks deferred with ``call_soon`` run."""
    for _ in range(times):
        await asyncio.sleep(0)


@pytest.fixture
def tick():
    return next_tick
