"""
Deterministic RNG utilities for cellworld simulation.

Uses SHA256 hashing to derive stable seeds from hierarchical components
(world_seed, purpose, index). All randomness uses
numpy.random.Generator(PCG64) for reproducible cross-session results.
"""

import hashlib
import string
import numpy as np
from typing import Any, Optional, Tuple


def make_seed(*components: Any) -> int:
    """
    Generate deterministic 64-bit seed from hierarchical components.

    Uses SHA256 to hash components into stable seed value.

    Args:
        *components: Seed components (world_seed, purpose, index, etc.)

    Returns:
        64-bit integer seed for numpy RNG

    Example:
        world_seed = make_seed(config_seed, "world")
        spawn_seed = make_seed(world_seed, "seed_population", count)
    """
    # Join all components with colon separator
    hash_input = ":".join(str(c) for c in components)

    # SHA256 hash and extract 64-bit integer
    hash_bytes = hashlib.sha256(hash_input.encode('utf-8')).digest()
    seed = int.from_bytes(hash_bytes[:8], byteorder='big')

    return seed


def make_rng(seed: Optional[int] = None, *components: Any) -> np.random.Generator:
    """
    Build a PCG64 generator.

    Args:
        seed: Base seed (None = fresh OS entropy)
        *components: Extra components hashed together with the seed

    Returns:
        numpy Generator
    """
    if seed is None:
        return np.random.Generator(np.random.PCG64())
    return np.random.Generator(np.random.PCG64(make_seed(seed, *components)))


def random_cell(rng: np.random.Generator, cols: int, rows: int) -> Tuple[int, int]:
    """Uniformly random (col, row) inside a cols x rows grid"""
    return int(rng.integers(cols)), int(rng.integers(rows))


def random_name(rng: np.random.Generator, length: int) -> str:
    """Random lowercase name (species names)"""
    letters = np.array(list(string.ascii_lowercase))
    return "".join(rng.choice(letters, size=length))
