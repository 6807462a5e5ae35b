"""Quality score for a compiled prompt."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from .models import Profile

MAX_SCORE = 100
WARNING_PENALTY = 10
SPARSE_PENALTY = 5
# Prompts shorter than 1/SPARSE_DIVISOR of the profile's max length are "sparse".
SPARSE_DIVISOR = 10


def score_prompt(
    compiled_prompt: str,
    stage_warnings: Iterable[Sequence[str]],
    profile: Profile,
) -> tuple[int, list[str]]:
    """Score a compiled prompt and collect the final warning list.

    Each warning costs 10 points and a prompt under 10% of the profile's
    ``max_length`` costs another 5.  The score is clamped to ``[0, 100]``.

    Args:
        compiled_prompt: The final prompt text.  Not modified.
        stage_warnings: Warning lists in stage order (resolver, filters,
            profile adapter).
        profile: The target profile.

    Returns:
        Tuple of ``(score, warnings)``.  Warnings are concatenated in stage
        order with duplicates preserved.
    """
    warnings = [warning for stage in stage_warnings for warning in stage]

    score = MAX_SCORE - WARNING_PENALTY * len(warnings)
    if len(compiled_prompt) * SPARSE_DIVISOR < profile.max_length:
        score -= SPARSE_PENALTY

    return max(0, min(MAX_SCORE, score)), warnings
