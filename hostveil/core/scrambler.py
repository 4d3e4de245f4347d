"""Password-keyed pseudo-random generator, keystream masking and unit permutation.

The generator is a reproducible PRNG, not a cipher: the same password always
replays the same draws so insertion and extraction stay in step.
"""

from __future__ import annotations

import random
from typing import Iterator, List

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from hostveil.config import SCRAMBLER_SETTINGS
from hostveil.utils.logger import setup_logger

__all__ = ["Scrambler", "UnitPermutation", "derive_seed"]

logger = setup_logger(__name__)

_MASK_MODULUS = SCRAMBLER_SETTINGS.get("mask_modulus", 255)


def derive_seed(password: str) -> int:
    """Fold *password* into a 64-bit seed with PBKDF2-HMAC-SHA256."""

    params = SCRAMBLER_SETTINGS.get("pbkdf2", {})
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=params.get("key_len", 8),
        salt=SCRAMBLER_SETTINGS["salt"],
        iterations=params.get("iterations", 20_000),
    )
    logger.debug("Deriving scrambler seed (%d PBKDF2 iterations)", params.get("iterations", 20_000))
    return int.from_bytes(kdf.derive(password.encode("utf-8")), "big")


class Scrambler:
    """PRNG owned by one operation, re-seeded explicitly at every pass."""

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    @classmethod
    def from_password(cls, password: str) -> "Scrambler":
        return cls(derive_seed(password))

    @classmethod
    def from_seed(cls, seed: int) -> "Scrambler":
        return cls(seed)

    def reseed(self) -> "Scrambler":
        """Rewind the generator to the start of its sequence."""

        self._rng.seed(self.seed)
        return self

    def next(self) -> int:
        """Return the next 31-bit draw."""

        return self._rng.getrandbits(31)

    def mask_byte(self, value: int) -> int:
        return value ^ (self.next() % _MASK_MODULUS)

    def mask(self, data: bytes) -> bytes:
        """Xor every byte of *data* with the next keystream byte.

        Masking is its own inverse given the same generator position.
        """

        return bytes(self.mask_byte(value) for value in data)


class UnitPermutation:
    """Visit ``0..n-1`` once each, in an order chosen by the scrambler.

    Each draw takes ``rng() % remaining`` and returns the unit holding that
    rank among the units not drawn yet. A Fenwick tree over the "not drawn"
    flags finds the rank in O(log n).
    """

    def __init__(self, count: int, scrambler: Scrambler) -> None:
        if count < 0:
            raise ValueError("unit count must be non-negative")
        self.count = count
        self.remaining = count
        self._scrambler = scrambler
        self._tree = self._build(count)
        self._top = 1 << max(count.bit_length() - 1, 0) if count else 0

    @staticmethod
    def _build(count: int) -> List[int]:
        # Every unit starts available: linear-time Fenwick construction.
        tree = [0] + [1] * count
        for index in range(1, count + 1):
            parent = index + (index & -index)
            if parent <= count:
                tree[parent] += tree[index]
        return tree

    def _take(self, rank: int) -> int:
        """Remove and return the unit holding 0-based ``rank``."""

        position = 0
        step = self._top
        wanted = rank + 1
        while step:
            candidate = position + step
            if candidate <= self.count and self._tree[candidate] < wanted:
                position = candidate
                wanted -= self._tree[candidate]
            step >>= 1
        unit = position  # 0-based index of the (rank+1)-th available unit
        index = unit + 1
        while index <= self.count:
            self._tree[index] -= 1
            index += index & -index
        return unit

    def draw(self) -> int:
        if self.remaining <= 0:
            raise IndexError("every unit has already been drawn")
        if self.remaining == 1:
            rank = 0
        else:
            rank = self._scrambler.next() % self.remaining
        self.remaining -= 1
        return self._take(rank)

    def __iter__(self) -> Iterator[int]:
        while self.remaining:
            yield self.draw()
