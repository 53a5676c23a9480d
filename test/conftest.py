"""Shared test fixtures"""

import logging
import os
from typing import Any, Dict

import pytest

from txscope.core.flattener import analyze_trace

INPUTS_DIR = os.path.join(os.path.dirname(__file__), 'Inputs')

EOA = "0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
VAULT = "0x1111111111111111111111111111111111111111"
ATTACKER = "0x2222222222222222222222222222222222222222"
TOKEN = "0x3333333333333333333333333333333333333333"
RECIPIENT = "0x4444444444444444444444444444444444444444"

WITHDRAW_INPUT = "0x2e1a7d4d" + "0" * 48 + "0de0b6b3a7640000"
ONE_ETH = "1000000000000000000"


def frame(to: str = VAULT, from_: str = EOA, **fields) -> Dict[str, Any]:
    """Build a callTracer frame; extra keyword arguments become fields."""
    raw = {"from": from_, "to": to}
    raw.update(fields)
    return raw


@pytest.fixture
def make_frame():
    """Factory for callTracer frames"""
    return frame


@pytest.fixture
def inputs_dir() -> str:
    return INPUTS_DIR


@pytest.fixture
def fixed_clock():
    """Clock frozen at 2024-01-01T00:00:00Z"""
    return lambda: 1704067200.0


@pytest.fixture
def reentrancy_trace() -> Dict[str, Any]:
    """withdraw() that sends ETH to a contract which calls withdraw() again"""
    return frame(
        to=VAULT, type="CALL", value="0x0", gas="0x30d40", gasUsed="0x186a0", input=WITHDRAW_INPUT,
        calls=[
            frame(
                to=ATTACKER, from_=VAULT, type="CALL", value="0xde0b6b3a7640000",
                gasUsed="0x5208", input="0x",
                calls=[
                    frame(to=VAULT, from_=ATTACKER, type="CALL", value="0x0",
                          gasUsed="0x2710", input=WITHDRAW_INPUT),
                ],
            ),
        ],
    )


@pytest.fixture
def reentrancy_analysis(reentrancy_trace):
    return analyze_trace(reentrancy_trace)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo setup_logging() so caplog sees txscope records"""
    yield
    txscope_logger = logging.getLogger('txscope')
    for handler in txscope_logger.handlers:
        handler.close()
    txscope_logger.handlers.clear()
    txscope_logger.propagate = True
    txscope_logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    """Assertions match on uncolored text"""
    monkeypatch.setattr('txscope.utils.colors.SUPPORTS_COLOR', False)
