"""Coordinate-keyed deterministic randomness using xxhash.

Map generation must produce the same terrain and starting layout for the
same seed regardless of the order tiles are visited in, so every draw is a
pure hash of its inputs:

    value = xxh64(seed, domain, a, b) / 2**64

Generators key draws by tile coordinates (``a = x``, ``b = y``); spawn
placement keys them by a salt and the starting tile.
"""

from __future__ import annotations

import struct

import xxhash

from eternity.core.enums import Domain

_PACK = struct.Struct("<qiqq")
_SCALE = float(1 << 64)


class DeterministicRNG:
    """Stateless domain-separated random source; safe to share."""

    __slots__ = ("_seed",)

    def __init__(self, seed: int) -> None:
        self._seed = seed

    @property
    def seed(self) -> int:
        return self._seed

    def _hash(self, domain: Domain, a: int, b: int) -> int:
        return xxhash.xxh64(_PACK.pack(self._seed, domain.value, a, b)).intdigest()

    def next_float(self, domain: Domain, a: int, b: int) -> float:
        """Deterministic float in [0.0, 1.0) for the key (domain, a, b)."""
        return self._hash(domain, a, b) / _SCALE

    def lattice(self, domain: Domain, x: int, y: int) -> float:
        """Noise lattice value at integer point (x, y)."""
        return self.next_float(domain, x, y)
