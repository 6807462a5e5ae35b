"""Static capability table for generation platforms.

The profile adapter decides between inline LoRA syntax and a Character Pack
purely from this table.  Platform identifiers are trimmed, lower-cased and
have ``-`` and spaces folded to ``_`` before lookup, so ``Flux-Dev`` and
``flux_dev`` are the same platform.

An identifier missing from the table still gets inline LoRA support when it
names one of the Flux, SDXL or SD 1.5 families (``flux_1_dev``,
``sdxl_lightning``).  Anything else is treated as an image platform without
inline LoRA support.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class PlatformSpec:
    """Generation capabilities of one platform.

    Attributes:
        inline_lora: Whether prompts may carry ``<lora:name:weight>`` tokens.
        media: ``"image"`` or ``"video"``.
        aspect_ratio: Recommended aspect ratio for Character Pack output.
        duration_seconds: Recommended clip length (video platforms only).
    """

    inline_lora: bool
    media: Literal["image", "video"] = "image"
    aspect_ratio: str = "1:1"
    duration_seconds: int | None = None


# Platforms whose prompt syntax accepts inline LoRA trigger tokens: the
# Flux, SDXL and SD 1.5 families.
_INLINE_LORA = PlatformSpec(inline_lora=True)

PLATFORMS: dict[str, PlatformSpec] = {
    "flux": _INLINE_LORA,
    "flux_dev": _INLINE_LORA,
    "flux_schnell": _INLINE_LORA,
    "flux_pro": _INLINE_LORA,
    "sdxl": _INLINE_LORA,
    "sdxl_1.0": _INLINE_LORA,
    "sdxl_turbo": _INLINE_LORA,
    "stable_diffusion": _INLINE_LORA,
    "sd1.5": _INLINE_LORA,
    "sd_1.5": _INLINE_LORA,
    # Image platforms without inline LoRA syntax.
    "midjourney": PlatformSpec(inline_lora=False, aspect_ratio="1:1"),
    "dall_e_3": PlatformSpec(inline_lora=False, aspect_ratio="1:1"),
    "ideogram": PlatformSpec(inline_lora=False, aspect_ratio="1:1"),
    "nano_banana": PlatformSpec(inline_lora=False, aspect_ratio="1:1"),
    "leonardo": PlatformSpec(inline_lora=False, aspect_ratio="1:1"),
    # Video platforms.
    "runway_gen3": PlatformSpec(inline_lora=False, media="video", aspect_ratio="16:9", duration_seconds=5),
    "kling": PlatformSpec(inline_lora=False, media="video", aspect_ratio="16:9", duration_seconds=5),
    "luma": PlatformSpec(inline_lora=False, media="video", aspect_ratio="16:9", duration_seconds=5),
    "pika": PlatformSpec(inline_lora=False, media="video", aspect_ratio="16:9", duration_seconds=3),
    "veo": PlatformSpec(inline_lora=False, media="video", aspect_ratio="16:9", duration_seconds=8),
    "sora": PlatformSpec(inline_lora=False, media="video", aspect_ratio="16:9", duration_seconds=10),
}

DEFAULT_PLATFORM = PlatformSpec(inline_lora=False)

# Substrings naming a model family that accepts inline LoRA tokens.
INLINE_LORA_FAMILIES = ("flux", "sdxl", "stable_diffusion", "sd1.5", "sd_1.5")

_SEPARATORS = re.compile(r"[\s-]+")


def normalize_platform(platform: str | None) -> str:
    return _SEPARATORS.sub("_", (platform or "").strip().lower())


def lookup_platform(platform: str | None) -> PlatformSpec:
    """Return the capability entry for ``platform``.

    Exact table entries win; otherwise a name containing an inline-LoRA
    family gets inline support, and anything else gets :data:`DEFAULT_PLATFORM`.
    """
    name = normalize_platform(platform)
    spec = PLATFORMS.get(name)
    if spec is not None:
        return spec
    if name and any(family in name for family in INLINE_LORA_FAMILIES):
        return _INLINE_LORA
    return DEFAULT_PLATFORM


def supports_inline_lora(platform: str | None) -> bool:
    return lookup_platform(platform).inline_lora
