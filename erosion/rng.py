"""Deterministic forkable RNG streams."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib

import numpy as np


_NAMESPACE = "erosion-v1"


def _normalize_seed(seed: int) -> int:
    return int(seed) & ((1 << 64) - 1)


def derive_seed(parent_seed: int, key: str, *, namespace: str = _NAMESPACE) -> int:
    """Derive a deterministic child seed from a parent seed and a stage label."""

    payload = f"{namespace}:{_normalize_seed(parent_seed)}:{key}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=8, person=b"erosfork").digest()
    return int.from_bytes(digest, byteorder="big", signed=False)


@dataclass(frozen=True)
class RngStream:
    """Immutable RNG stream; each simulation stage forks its own child stream."""

    seed: int
    namespace: str = _NAMESPACE

    def fork(self, key: str) -> "RngStream":
        if not key:
            raise ValueError("fork key must be non-empty")
        return RngStream(derive_seed(self.seed, key, namespace=self.namespace), self.namespace)

    def generator(self) -> np.random.Generator:
        return np.random.Generator(np.random.PCG64(np.uint64(_normalize_seed(self.seed))))


def random_positions(rng: np.random.Generator, count: int, extent: float) -> np.ndarray:
    """Draw `count` continuous (x, y) positions uniformly over ``[0, extent)^2``."""

    if count < 0:
        raise ValueError("count must be >= 0")
    return rng.random((count, 2)) * float(extent)
