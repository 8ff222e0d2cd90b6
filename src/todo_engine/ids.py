from __future__ import annotations

import random
import string
import time
from typing import Callable, Optional

_ALPHABET = string.digits + string.ascii_lowercase


def _to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, r = divmod(n, 36)
        digits.append(_ALPHABET[r])
    return "".join(reversed(digits))


# PUBLIC_INTERFACE
class IdGenerator:
    """
    Produces short unique string ids: nine random base-36 characters followed by
    a base-36 millisecond timestamp.

    The time component never goes backwards within one generator, so two ids
    generated in the same millisecond still differ in their suffix. Ids are not
    cryptographically secure and are not checked against existing records.
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock_ms: Optional[Callable[[], int]] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock_ms = clock_ms or (lambda: time.time_ns() // 1_000_000)
        self._last_ms = 0

    def generate(self) -> str:
        now = self._clock_ms()
        self._last_ms = now if now > self._last_ms else self._last_ms + 1
        random_part = "".join(self._rng.choice(_ALPHABET) for _ in range(9))
        return random_part + _to_base36(self._last_ms)
