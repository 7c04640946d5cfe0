"""Build identifiers: ``{epoch_ms}-{suffix}``.

Every resource of one build is named from the identifier, so it is
generated once per submission and never regenerated.
"""

from __future__ import annotations

import secrets
import string
import threading
import time

_ALPHABET = string.digits + string.ascii_lowercase
SUFFIX_LENGTH = 9


class BuildIdGenerator:
    """Generates build identifiers with a strictly increasing time component.

    Two calls inside the same millisecond get consecutive millisecond
    values, so identifiers from one process never collide even before the
    random suffix is considered.  The suffix keeps separate processes apart.
    """

    def __init__(self, suffix_length: int = SUFFIX_LENGTH) -> None:
        if suffix_length < SUFFIX_LENGTH:
            raise ValueError(f"suffix_length must be >= {SUFFIX_LENGTH}")
        self._suffix_length = suffix_length
        self._last_ms = 0
        self._lock = threading.Lock()

    def _next_ms(self) -> int:
        now = time.time_ns() // 1_000_000
        with self._lock:
            if now <= self._last_ms:
                now = self._last_ms + 1
            self._last_ms = now
        return now

    def _suffix(self) -> str:
        return "".join(secrets.choice(_ALPHABET) for _ in range(self._suffix_length))

    def generate(self) -> str:
        return f"{self._next_ms()}-{self._suffix()}"

    __call__ = generate


_default_generator = BuildIdGenerator()


def generate_build_id() -> str:
    """Return a new build identifier from the process-wide generator."""
    return _default_generator.generate()
