from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_tradeledger_loggers():
    """
    Test hygiene: keep logger levels from leaking between tests.

    caplog only restores the level it set itself; tests that call
    `init_structured_logging` change the root logger too.
    """
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)
