"""Pytest configuration and shared fixtures for edidrr tests

This module provides common fixtures and test utilities used across
unit tests.
"""

import logging
import struct
from typing import Callable, Generator

import pytest

from edidrr.common.settings import settings

EDID_HEADER = bytes([0x00, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0xFF, 0x00])


def edidBlob_build(manufacturer: str = "DEL", product: int = 0xA0B1, serial: int = 1) -> bytes:
    """Build a 128-byte EDID base block with the given identification fields"""
    letters = [ord(letter) - ord("A") + 1 for letter in manufacturer]
    word = (letters[0] << 10) | (letters[1] << 5) | letters[2]
    blob = bytearray(128)
    blob[0:8] = EDID_HEADER
    struct.pack_into(">H", blob, 8, word)
    struct.pack_into("<H", blob, 10, product)
    struct.pack_into("<I", blob, 12, serial)
    return bytes(blob)


@pytest.fixture
def edid_blob() -> Callable[..., bytes]:
    """Factory for synthetic EDID blobs

    Returns:
        edidBlob_build, so tests can vary manufacturer, product and serial
    """
    return edidBlob_build


@pytest.fixture
def reset_settings() -> Generator[None, None, None]:
    """Reset settings singleton between tests

    This fixture ensures each test gets a fresh Settings instance.
    """
    settings._initialized = False
    settings._config = None
    yield
    settings._initialized = False
    settings._config = None


@pytest.fixture(autouse=True)
def setup_logging(caplog):
    """Setup logging for tests"""
    caplog.set_level(logging.DEBUG)


def pytest_configure(config) -> None:
    """Register custom pytest markers used by this test suite."""
    config.addinivalue_line("markers", "requires_x11: mark test as requiring X11 display")
