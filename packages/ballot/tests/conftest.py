import logging
import os
import sys
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from pythonjsonlogger import jsonlogger

# allow "packages" imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from ballot.config import LedgerConfig
from ballot.schemas import PendingTransaction, Receipt

TEST_PRIVATE_KEY = "0x" + "1" * 64
TX_HASH = "0x" + "ab" * 32


class FakeClock:
    """Monotonic clock that only advances when ``sleep`` is called."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    level = root.level
    yield
    # drop the stderr JSON handler configure_logging installs
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, jsonlogger.JsonFormatter):
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def config():
    return LedgerConfig(
        api_key="test-api-key",
        private_key=TEST_PRIVATE_KEY,
        confirmation_timeout=10,
        poll_interval=1,
    )


@pytest.fixture
def mock_w3():
    return MagicMock()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_pending():
    def _make(function="mint", target=None, is_deployment=False, request=None):
        return PendingTransaction(
            tx_hash=TX_HASH,
            submitted_at=datetime.now(timezone.utc),
            target=target,
            function=function,
            is_deployment=is_deployment,
            request=request or {},
        )

    return _make


@pytest.fixture
def make_receipt():
    def _make(block_number=42, success=True, contract_address=None):
        return Receipt(
            tx_hash=TX_HASH,
            block_number=block_number,
            contract_address=contract_address,
            success=success,
            gas_used=21000,
        )

    return _make
