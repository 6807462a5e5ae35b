"""Reproducibility seeds.

:func:`resolve_seed` is the only place in the compiler allowed to touch an
ambient random source, and only when the caller did not supply a seed.
Every later stage that wants variation derives it from the resolved seed
with :func:`seeded_stream`, so a compile is a pure function of its inputs.
"""

from __future__ import annotations

import hashlib
import random
import secrets
import string

SEED_LENGTH = 8
SEED_ALPHABET = string.ascii_lowercase + string.digits


def resolve_seed(requested: str | None = None) -> str:
    """Return ``requested`` verbatim, or a fresh 8-character seed.

    Args:
        requested: Caller-supplied seed.  Any non-empty string is
            authoritative and echoed back unchanged.

    Returns:
        The seed to compile with.
    """
    if requested:
        return requested
    return "".join(secrets.choice(SEED_ALPHABET) for _ in range(SEED_LENGTH))


def seeded_stream(seed: str, discriminator: str) -> random.Random:
    """Build a private PRNG keyed on ``seed`` and a stage discriminator.

    The same ``(seed, discriminator)`` pair yields the same sequence in any
    process; different discriminators give independent streams.
    """
    digest = hashlib.sha256(f"{seed}:{discriminator}".encode("utf-8")).digest()
    return random.Random(int.from_bytes(digest[:8], "big"))
