"""Adapt resolved fragments to a target profile and platform.

Steps, in order:

1. **Reorder** fragments by block type following ``profile.preferred_order``.
   The sort is stable; fragments whose type is not listed (including the
   untyped filter effects) follow, in their original relative order.
2. **Prefix** with ``profile.base_prompt`` and join.
3. **LoRA branch**.  With an active LoRA, the static platform table decides
   between two modes:

   ``inline-lora``
       The platform accepts ``<lora:name:weight>`` tokens; the token is
       appended at the end of the prompt.
   ``character-pack``
       The platform does not (or no platform was given); the prompt carries
       no LoRA syntax and a :class:`CharacterPack` describes how to use
       reference images instead.

4. **Length**.  Over-long prompts are cut at the last whole word that fits
   (leaving room for an inline LoRA token) and a warning is recorded.  When
   the token alone leaves no room for the prompt, the LoRA falls back to a
   Character Pack with its own warning.
5. **Forbidden patterns**.  Matches are reported, never removed.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass

from .models import CharacterPack, LoraMode, LoraVersion, Profile, RecommendedParams
from .platforms import lookup_platform, normalize_platform
from .resolver import Fragment, join_fragments
from .seed import seeded_stream

logger = logging.getLogger(__name__)

IMAGE_REFERENCE_COUNT = 3
VIDEO_REFERENCE_COUNT = 5

_INSTRUCTION_OPENERS = (
    "Attach {count} reference images of {name} as the character reference.",
    "Provide {count} reference images of {name} to anchor the character's identity.",
    "Use {count} reference images of {name} as the identity source for this generation.",
)


@dataclass(frozen=True)
class ActiveLora:
    """A LoRA version resolved from the catalog plus its activation settings."""

    version: LoraVersion
    weight: float = 1.0
    target_platform: str | None = None

    @property
    def token(self) -> str:
        return f"<lora:{self.version.token_name}:{self.weight:g}>"


@dataclass(frozen=True)
class AdaptedPrompt:
    text: str
    warnings: tuple[str, ...] = ()
    lora_mode: LoraMode | None = None
    character_pack: CharacterPack | None = None


def reorder_fragments(fragments: Sequence[Fragment], preferred_order: Sequence[str]) -> list[Fragment]:
    """Stable-sort fragments by the position of their type in ``preferred_order``."""
    rank = {block_type: index for index, block_type in enumerate(preferred_order)}
    unranked = len(rank)
    return sorted(fragments, key=lambda fragment: rank.get(fragment.block_type, unranked))


def truncate_at_word(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` characters without splitting a word.

    Returns an empty string when not even the first word fits.
    """
    if len(text) <= limit:
        return text
    if limit <= 0:
        return ""
    head = text[:limit]
    if text[limit].isspace():
        return head.rstrip()
    boundary = max(head.rfind(" "), head.rfind("\n"), head.rfind("\t"))
    if boundary == -1:
        return ""
    return head[:boundary].rstrip()


def find_forbidden(text: str, pattern: str) -> bool:
    """Case-insensitive regex search; plain substring match if ``pattern`` is not a valid regex."""
    try:
        return re.search(pattern, text, re.IGNORECASE) is not None
    except re.error:
        return pattern.lower() in text.lower()


def build_character_pack(prompt: str, lora: ActiveLora, *, seed: str) -> CharacterPack:
    """Describe how to approximate a trained subject with reference images."""
    spec = lookup_platform(lora.target_platform)
    is_video = spec.media == "video"
    count = VIDEO_REFERENCE_COUNT if is_video else IMAGE_REFERENCE_COUNT
    name = lora.version.model_name

    # Phrasing varies with the seed, never with call order.
    opener = seeded_stream(seed, "character-pack").choice(_INSTRUCTION_OPENERS)
    lines = [
        opener.format(count=count, name=name),
        "Use well-lit images showing the face from the front, at three-quarter view and in profile.",
        f"Keep {name}'s facial features, hairstyle and distinguishing marks consistent with the references.",
    ]
    if is_video:
        lines.append("Include at least one full-body image so the character stays consistent in motion.")
    lines.append("The prompt describes the scene only; identity comes from the reference images.")

    return CharacterPack(
        platform=normalize_platform(lora.target_platform) or None,
        prompt_without_lora=prompt,
        character_instructions=" ".join(lines),
        reference_image_count=count,
        recommended_params=RecommendedParams(
            aspect_ratio=spec.aspect_ratio,
            duration_seconds=spec.duration_seconds if is_video else None,
        ),
    )


def adapt_for_profile(
    fragments: Sequence[Fragment],
    profile: Profile,
    lora: ActiveLora | None = None,
    *,
    seed: str,
) -> AdaptedPrompt:
    """Apply a profile's ordering, length and pattern rules.

    Args:
        fragments: Block and filter fragments, in resolution order.
        profile: The target profile.
        lora: Active LoRA, if any.
        seed: The resolved compile seed.

    Returns:
        The final prompt text, this stage's warnings, the LoRA mode and an
        optional Character Pack.
    """
    warnings: list[str] = []
    ordered = reorder_fragments(fragments, profile.preferred_order)
    body = join_fragments([profile.base_prompt, *(fragment.text for fragment in ordered)])

    lora_mode: LoraMode | None = None
    suffix = ""
    if lora is not None:
        if lookup_platform(lora.target_platform).inline_lora:
            lora_mode = "inline-lora"
            suffix = lora.token
        else:
            lora_mode = "character-pack"
        logger.debug(f"LoRA {lora.version.id} on '{lora.target_platform}': {lora_mode}")

    text = join_fragments([body, suffix])
    limit = profile.max_length
    if suffix and len(text) > limit and limit - len(suffix) - 1 <= 0:
        # No room for the token plus one character of prompt.
        warnings.append(
            f"LoRA token {suffix} does not fit max length {limit}; using Character Pack instead"
        )
        lora_mode = "character-pack"
        suffix = ""
        text = body
    if len(text) > limit:
        full_length = len(text)
        budget = limit - len(suffix) - 1
        if suffix and budget > 0:
            text = join_fragments([truncate_at_word(body, budget), suffix])
        else:
            text = truncate_at_word(text, limit)
        warnings.append(f"Prompt exceeds max length ({full_length}/{limit}); truncated")

    for pattern in profile.forbidden_patterns:
        if pattern and find_forbidden(text, pattern):
            warnings.append(f'Contains forbidden pattern: "{pattern}"')

    character_pack = None
    if lora is not None and lora_mode == "character-pack":
        character_pack = build_character_pack(text, lora, seed=seed)

    return AdaptedPrompt(
        text=text,
        warnings=tuple(warnings),
        lora_mode=lora_mode,
        character_pack=character_pack,
    )
