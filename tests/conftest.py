"""Pytest fixtures shared by the relaychat tests.

Provides the shared secret the reader is started with and a fresh
FrameClassifier in normal mode.
"""

import pytest

from relaychat import FrameClassifier
from tests.helpers import SECRET


@pytest.fixture
def secret() -> bytes:
    """32-byte AES key standing in for the handshake output."""
    return SECRET


@pytest.fixture
def classifier(secret: bytes) -> FrameClassifier:
    return FrameClassifier(secret)
