"""
Shared test fixtures and configuration for pytest
"""
import os
import random
import tempfile
from datetime import datetime, timezone

# Keep config and logs out of the real home directory; must run before
# anything under mimecraft is imported.
os.environ["MIMECRAFT_HOME"] = tempfile.mkdtemp(prefix="mimecraft-tests-")

import pytest

from mimecraft.core.mime.identifiers import IdentifierGenerator
from mimecraft.core.mime.serializer import MessageSerializer
from mimecraft.core.models.message import Message, Part

FIXED_DATE = datetime(2024, 3, 1, 12, 30, 0, tzinfo=timezone.utc)


class DeterministicRandomSource:
    """RandomSource that replays given tokens, then falls back to a seeded RNG."""

    def __init__(self, tokens=None, seed=0):
        self.tokens = list(tokens or [])
        self.token_calls = []
        self._rng = random.Random(seed)

    def randbits(self, k):
        return self._rng.getrandbits(k)

    def token_hex(self, nbytes):
        self.token_calls.append(nbytes)
        if self.tokens:
            return self.tokens.pop(0)
        return f"{self._rng.getrandbits(nbytes * 8):0{nbytes * 2}x}"


class FailingRandomSource:
    """RandomSource whose every call fails like an unavailable OS CSPRNG."""

    def randbits(self, k):
        raise OSError("getrandom() failed")

    def token_hex(self, nbytes):
        raise OSError("getrandom() failed")


@pytest.fixture
def random_source():
    """Seeded random source"""
    return DeterministicRandomSource()


@pytest.fixture
def serializer(random_source):
    """Serializer with a fixed domain and deterministic randomness"""
    identifiers = IdentifierGenerator(random_source=random_source, domain="test.example")
    return MessageSerializer(identifier_generator=identifiers, clock=lambda: FIXED_DATE)


@pytest.fixture
def simple_message():
    """Single-part text message"""
    return Message(
        sender="alice@example.com",
        to=["bob@example.com"],
        subject="Lunch",
        body=Part.text("See you at noon.\n"),
    )


@pytest.fixture
def config_path(tmp_path):
    """Path for a throwaway config file"""
    return tmp_path / "config.json"
