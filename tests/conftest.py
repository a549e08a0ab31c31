from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from tests.fakes import FakeFetchTool, FakeTrimTool


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    # CLI tests call logging.basicConfig(force=True) under CliRunner, which binds
    # root handlers to a captured stream that is closed after the invocation.
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in saved_handlers:
            root.removeHandler(handler)
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)


@pytest.fixture
def fetch_tool() -> FakeFetchTool:
    return FakeFetchTool()


@pytest.fixture
def trim_tool() -> FakeTrimTool:
    return FakeTrimTool()
