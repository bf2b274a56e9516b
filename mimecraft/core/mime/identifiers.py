"""Message-ID generation.

Identifiers have the form ``<timestamp.pid.random@host>``: nanosecond
clock, process id, 63 random bits and the host name. The random part
comes from a ``RandomSource`` so tests can supply fixed sequences while
production always reads the operating system CSPRNG.
"""

import os
import re
import secrets
import socket
import time
from typing import Callable, Optional, Protocol

from mimecraft.utils.errors import RandomnessUnavailableError
from mimecraft.utils.logging import get_logger

from .constants import Defaults

logger = get_logger(__name__)

# dot-atom-text from RFC 5322 3.2.3, restricted to what host names use
_DOMAIN_RE = re.compile(r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*$")

_RANDOM_BITS = 63


class RandomSource(Protocol):
    """Source of secure random values."""

    def randbits(self, k: int) -> int:
        """Return a non-negative integer with k random bits."""
        ...

    def token_hex(self, nbytes: int) -> str:
        """Return a random hex string of 2 * nbytes characters."""
        ...


class SystemRandomSource:
    """RandomSource backed by ``secrets`` (the OS CSPRNG)."""

    def randbits(self, k: int) -> int:
        try:
            return secrets.randbits(k)
        except (OSError, NotImplementedError) as e:
            raise RandomnessUnavailableError(
                f"Secure random source failed: {e}"
            ) from e

    def token_hex(self, nbytes: int) -> str:
        try:
            return secrets.token_hex(nbytes)
        except (OSError, NotImplementedError) as e:
            raise RandomnessUnavailableError(
                f"Secure random source failed: {e}"
            ) from e


def random_token(source: RandomSource, nbytes: int) -> str:
    """Draw a hex token, turning any source failure into RandomnessUnavailableError."""
    try:
        return source.token_hex(nbytes)
    except RandomnessUnavailableError:
        raise
    except (OSError, NotImplementedError) as e:
        raise RandomnessUnavailableError(f"Secure random source failed: {e}") from e


def resolve_domain(domain: Optional[str] = None) -> str:
    """Return a msg-id safe domain: the configured one, the host name or a placeholder."""
    if domain:
        candidate = domain
    else:
        try:
            candidate = socket.gethostname()
        except OSError:
            candidate = ""

    if candidate and _DOMAIN_RE.match(candidate):
        return candidate

    logger.debug(f"Unusable host name {candidate!r}, using placeholder domain")
    return Defaults.PLACEHOLDER_DOMAIN


class IdentifierGenerator:
    """Produces globally unique Message-ID values.

    Safe to share between threads: the only per-instance state is the
    domain, fixed at construction.
    """

    def __init__(
        self,
        random_source: Optional[RandomSource] = None,
        domain: Optional[str] = None,
        clock: Callable[[], int] = time.time_ns,
    ):
        self.random_source = random_source or SystemRandomSource()
        self.domain = resolve_domain(domain)
        self._clock = clock

    def generate(self) -> str:
        """Generate a new Message-ID including the angle brackets.

        Raises:
            RandomnessUnavailableError: If the random source fails.
        """
        try:
            token = self.random_source.randbits(_RANDOM_BITS)
        except RandomnessUnavailableError:
            raise
        except (OSError, NotImplementedError) as e:
            raise RandomnessUnavailableError(
                f"Secure random source failed: {e}"
            ) from e

        return f"<{self._clock()}.{os.getpid()}.{token}@{self.domain}>"
