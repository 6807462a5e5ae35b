"""Gem optimisation: fixed enhancement packs applied after profile adaptation.

A *gem* is a static, named bundle of prompt enhancements aimed at one kind
of realism (face fidelity, UGC photo look, tattoo preservation, documentary
context).  Applying gems to an adapted prompt produces::

    <gem prefixes>

    <adapted prompt>

    Quality: ...
    Fidelity: ...
    Anatomy: ...

    <gem suffixes>

Sections are separated by blank lines.  Modifier lines are de-duplicated
across gems in request order and capped (8 quality, 6 fidelity, 6 anatomy
modifiers).  The adapted prompt itself is never edited: if the result would
exceed ``profile.max_length``, whole gem sections are dropped (suffixes
first, prefixes last) and a warning lists them.

Gems also yield a merged negative prompt, averaged sampler settings and a
quality checklist.  The negative prompt and sampler settings are only
reported for profiles with the ``negative_prompt`` capability, since other
models have nowhere to put them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .models import GemReport, Profile, TechnicalRecommendations
from .profile_adapter import find_forbidden

logger = logging.getLogger(__name__)

NEGATIVE_PROMPT_CAPABILITY = "negative_prompt"

QUALITY_CAP = 8
FIDELITY_CAP = 6
ANATOMY_CAP = 6

SECTION_SEPARATOR = "\n\n"

# Baseline the per-gem settings are averaged with.
BASE_CFG_SCALE = 7.5
BASE_DENOISING_STRENGTH = 0.25
BASE_CONTROL_NET_WEIGHTS = {"open_pose": 1.0, "depth": 0.5, "canny": 0.4, "ip_adapter": 0.5}
RECOMMENDED_SAMPLER = "DPM++ 2M Karras"


@dataclass(frozen=True)
class Gem:
    """One enhancement pack.

    Attributes:
        id: Request identifier.
        name: Display name, reported in :class:`GemReport`.
        description: One-line summary for the catalog.
        category: ``facial_biometrics``, ``identity_preservation`` or
            ``ugc_realism``.
        prefix: Block placed before the prompt.
        suffix: Block placed after the modifier lines.
        negative_prompt: Comma-separated terms to steer away from.
        quality_modifiers / fidelity_modifiers / anatomy_modifiers: Terms
            for the ``Quality:``, ``Fidelity:`` and ``Anatomy:`` lines.
        cfg_scale_range / denoising_range: Recommended sampler ranges.
        control_net_weights: Recommended ControlNet weights by unit.
        quality_checks: Review checklist entries.
    """

    id: str
    name: str
    description: str
    category: str
    prefix: str
    suffix: str
    negative_prompt: str
    quality_modifiers: tuple[str, ...]
    fidelity_modifiers: tuple[str, ...]
    anatomy_modifiers: tuple[str, ...]
    cfg_scale_range: tuple[float, float]
    denoising_range: tuple[float, float]
    control_net_weights: dict[str, float]
    quality_checks: tuple[str, ...]


@dataclass(frozen=True)
class GemOptimization:
    text: str
    warnings: tuple[str, ...] = ()
    report: GemReport | None = None


_TATTOO_NEGATIVES = (
    "extra tattoos, new tattoos, additional body art, tattoo modifications, altered tattoos, "
    "tattoos appearing where none exist, invented tattoos, different tattoo designs"
)

GEMS: dict[str, Gem] = {
    gem.id: gem
    for gem in (
        Gem(
            id="face_swapper",
            name="FACE-SWAPPER",
            description="VFX-grade face swap with facial biometrics lockdown",
            category="facial_biometrics",
            prefix="\n".join(
                (
                    "[FACIAL BIOMETRICS LOCKDOWN MODE]",
                    "Ultra-high fidelity facial reconstruction with biometric preservation.",
                    "Maintain exact facial geometry: landmark alignment, bone structure, eye spacing.",
                    "Preserve microexpressions and facial muscle topology.",
                    "",
                    "[BODY MARKING PRESERVATION - CRITICAL]",
                    "PRESERVE EXACT original tattoos - do NOT add, remove, or modify any tattoos.",
                    "Maintain all existing body markings, scars, and skin features WITHOUT alteration.",
                )
            ),
            suffix="\n".join(
                (
                    "Technical requirements:",
                    "- Exact replication of facial proportions",
                    "- Consistent lighting direction on facial planes",
                    "- Seamless blending with no visible mask edges",
                    "- Skin texture preservation (pores, fine lines, natural imperfections)",
                    "- Eye reflection consistency with scene lighting",
                    "- Hair-to-face boundary natural transition",
                )
            ),
            negative_prompt=(
                "deformed face, asymmetric eyes, wrong eye color, plastic skin, airbrushed, "
                "uncanny valley, facial distortion, mask artifacts, halo around face, color mismatch, "
                "wrong skin tone, floating features, disconnected face, blurred edges, "
                "bad facial anatomy, extra features, missing features, wrong proportions, "
                + _TATTOO_NEGATIVES
            ),
            quality_modifiers=(
                "photorealistic skin texture",
                "detailed skin pores",
                "natural subsurface scattering",
                "accurate facial shadows",
                "lifelike eye reflections",
                "anatomically correct proportions",
                "cinematic facial lighting",
                "8K facial detail",
            ),
            fidelity_modifiers=(
                "exact replication",
                "perfect fidelity",
                "maintain original identity",
                "biometric consistency",
                "facial landmark preservation",
                "expression microdetail capture",
                "preserve exact tattoos",
                "maintain body markings",
            ),
            anatomy_modifiers=(
                "correct eye spacing",
                "natural nose bridge alignment",
                "accurate lip proportions",
                "proper ear placement",
                "natural jawline curvature",
                "anatomically correct neck transition",
            ),
            cfg_scale_range=(7, 9),
            denoising_range=(0.15, 0.25),
            control_net_weights={"open_pose": 1.0, "depth": 0.8, "canny": 0.6, "ip_adapter": 0.75},
            quality_checks=(
                "Identity coherence - subject remains recognizable",
                "Zero uncanny valley - natural expressions",
                "Chromatic compatibility - matching white balance and saturation",
                "Edge seamlessness - invisible mask transitions",
                "Lighting consistency - shadows match scene key light",
                "Tattoo preservation - NO new tattoos added",
            ),
        ),
        Gem(
            id="ai_instagram_media",
            name="A.I INSTAGRAM MEDIA",
            description="Photorealistic Instagram media with identity preservation",
            category="identity_preservation",
            prefix="\n".join(
                (
                    "[INSTAGRAM UGC PHOTOREALISM MODE]",
                    "Generate authentic user-generated content style imagery.",
                    "Priority: Identity preservation > Artistic style.",
                    "Target: Indistinguishable from real smartphone photography.",
                )
            ),
            suffix="\n".join(
                (
                    "Instagram optimization requirements:",
                    "- Natural smartphone camera aesthetics (slight lens distortion, authentic bokeh)",
                    "- Organic lighting conditions (golden hour, natural window light, ambient)",
                    "- Genuine skin texture (not airbrushed, real pores and imperfections visible)",
                    "- Authentic composition (not overly staged, natural candid feel)",
                    "- Natural hand/body positioning typical of selfies and UGC",
                )
            ),
            negative_prompt=(
                "studio lighting, professional photoshoot, airbrushed skin, perfect symmetry, "
                "overly posed, stock photo aesthetic, unnatural colors, oversaturated, "
                "HDR artifacts, artificial bokeh, lens flare abuse, plastic skin texture, "
                "fashion magazine style, advertising aesthetic, corporate look, "
                "deformed hands, extra fingers, bad anatomy, mutated limbs, "
                + _TATTOO_NEGATIVES
            ),
            quality_modifiers=(
                "authentic UGC aesthetic",
                "smartphone camera quality",
                "natural skin imperfections",
                "organic lighting",
                "candid composition",
                "Instagram-native colors",
                "genuine photorealism",
                "lived-in authenticity",
            ),
            fidelity_modifiers=(
                "identity lock",
                "face consistency across generations",
                "recognizable subject",
                "preserved distinctive features",
                "maintained facial structure",
                "consistent skin tone",
                "preserve original tattoos",
            ),
            anatomy_modifiers=(
                "natural hand positions",
                "correct finger count",
                "anatomically accurate limbs",
                "proper body proportions",
                "realistic joint articulation",
                "natural pose biomechanics",
            ),
            cfg_scale_range=(7, 10),
            denoising_range=(0.15, 0.30),
            control_net_weights={"open_pose": 1.0, "depth": 0.7, "canny": 0.5, "ip_adapter": 0.70},
            quality_checks=(
                "Identity preservation - subject clearly recognizable",
                "UGC authenticity - looks like real smartphone photo",
                "Natural imperfections - not overly processed",
                "Anatomy correctness - no deformed features",
                "Lighting realism - consistent with scene",
                "Tattoo fidelity - original tattoos preserved",
            ),
        ),
        Gem(
            id="tattoo_preservation",
            name="TATTOO PRESERVATION",
            description="Exact preservation of tattoos, scars and body markings",
            category="identity_preservation",
            prefix="\n".join(
                (
                    "[TATTOO & BODY MARKING PRESERVATION MODE - MAXIMUM PRIORITY]",
                    "This is a TATTOOED subject. Their tattoos are FIXED IDENTITY MARKERS.",
                    "CRITICAL: Preserve ALL existing tattoos EXACTLY as shown in reference.",
                    "DO NOT add ANY new tattoos, body art, or skin markings.",
                    "DO NOT modify, extend, or alter existing tattoo designs.",
                    "Tattoo locations, sizes, and designs must match reference PRECISELY.",
                )
            ),
            suffix="\n".join(
                (
                    "Tattoo preservation requirements:",
                    "- EXACT replication of all visible tattoos (position, size, design, color)",
                    "- NO new tattoos or body art invention",
                    "- Preserve tattoo edges and boundaries precisely",
                    "- Keep scar tissue and skin imperfections intact",
                    "VALIDATION: Count the tattoos in reference vs output - must match exactly.",
                )
            ),
            negative_prompt=(
                "extra tattoos, new tattoos, additional tattoos, invented tattoos, "
                "tattoo modifications, altered tattoos, extended tattoos, changed tattoo designs, "
                "tattoos appearing where none exist, different tattoo style, removed tattoos, "
                "wrong tattoo placement, incorrect tattoo size, added body art, new piercings, "
                "new scars, modified skin markings, tattoo color changes, missing tattoos"
            ),
            quality_modifiers=(
                "exact tattoo replication",
                "precise body art preservation",
                "tattoo-accurate skin rendering",
                "original ink colors maintained",
                "tattoo line work fidelity",
                "skin marking consistency",
            ),
            fidelity_modifiers=(
                "zero tattoo alterations",
                "exact tattoo count preservation",
                "tattoo position lock",
                "body marking immutability",
                "tattoo design fidelity",
                "no invented markings",
            ),
            anatomy_modifiers=(
                "tattoo placement accuracy",
                "correct skin topology",
                "natural tattoo curvature on body",
                "proper tattoo perspective",
                "body-accurate tattoo sizing",
            ),
            cfg_scale_range=(8, 10),
            denoising_range=(0.10, 0.20),
            control_net_weights={"open_pose": 1.0, "depth": 0.9, "canny": 0.8, "ip_adapter": 0.85},
            quality_checks=(
                "Tattoo count match - exact same number as reference",
                "Tattoo position accuracy - correct body placement",
                "Tattoo design fidelity - no alterations to artwork",
                "No invented tattoos - zero new body art",
                "Scar preservation - all skin features maintained",
            ),
        ),
        Gem(
            id="real_life_context",
            name="REAL LIFE CONTEXT",
            description="Grounds the subject in a raw, documentary real-life setting",
            category="ugc_realism",
            prefix="\n".join(
                (
                    "[REAL LIFE DOCUMENTARY MODE]",
                    "CONTEXT: REAL LIFE, RAW REALITY, HUMAN EXPERIENCE.",
                    "Subject must be grounded in a believable, tangible, real-world environment.",
                    "Avoid generic backgrounds. Use specific, lived-in, cluttered, imperfect settings.",
                )
            ),
            suffix="\n".join(
                (
                    "Realism requirements:",
                    "- Imperfect composition (documentary style)",
                    "- Natural, unposed body language",
                    "- Cluttered, detailed backgrounds implying a history",
                    "- Realistic textures (dust, scratches, fabric wear)",
                )
            ),
            negative_prompt=(
                "cgi, 3d render, anime, cartoon, sketch, painting, unreal engine, "
                "perfect studio lighting, empty background, generic background, "
                "floating objects, physical impossibilities, dreamlike, fantasy, "
                "overly clean, sterile environment, ai generated look, plastic"
            ),
            quality_modifiers=(
                "raw documentary style",
                "real life context",
                "human imperfection",
                "tangible atmosphere",
                "lived-in environment",
                "environmental storytelling",
            ),
            fidelity_modifiers=(
                "contextual grounding",
                "realistic scale",
                "physical plausibility",
                "environmental interaction",
            ),
            anatomy_modifiers=(
                "relaxed posture",
                "natural weight distribution",
                "candid expression",
            ),
            cfg_scale_range=(5, 8),
            denoising_range=(0.3, 0.5),
            control_net_weights={"depth": 0.6, "ip_adapter": 0.6},
            quality_checks=(
                "Is the environment believable?",
                "Does it look like a real photo?",
                "Are textures realistic?",
            ),
        ),
    )
}

# Optional sections in the order they are given up to respect max_length.
_DROP_ORDER = ("suffix", "anatomy", "fidelity", "quality", "prefix")


def list_gems() -> list[dict[str, str]]:
    """Gem summaries for the catalog endpoint, in table order."""
    return [
        {"id": gem.id, "name": gem.name, "description": gem.description, "category": gem.category}
        for gem in GEMS.values()
    ]


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(item for item in items if item))


def _modifier_line(label: str, modifiers: Iterable[str], cap: int) -> str:
    terms = _unique(modifiers)[:cap]
    return f"{label}: {', '.join(terms)}" if terms else ""


def merge_negative_prompt(restrictions: str, gems: Sequence[Gem]) -> str:
    """Join ``restrictions`` and each gem's negative terms, dropping repeated terms."""
    sources = [restrictions, *(gem.negative_prompt for gem in gems)]
    terms = (" ".join(term.split()) for source in sources for term in source.split(","))
    return ", ".join(_unique(terms))


def recommend_settings(gems: Sequence[Gem]) -> TechnicalRecommendations:
    """Average sampler ranges with the baseline; take the maximum ControlNet weights."""
    count = len(gems) + 1
    cfg = BASE_CFG_SCALE + sum(sum(gem.cfg_scale_range) / 2 for gem in gems)
    denoise = BASE_DENOISING_STRENGTH + sum(sum(gem.denoising_range) / 2 for gem in gems)
    weights = dict(BASE_CONTROL_NET_WEIGHTS)
    for gem in gems:
        for unit, weight in gem.control_net_weights.items():
            weights[unit] = max(weights.get(unit, 0.0), weight)
    return TechnicalRecommendations(
        cfg_scale=round(cfg / count, 1),
        denoising_strength=round(denoise / count, 2),
        sampler=RECOMMENDED_SAMPLER,
        control_net_weights=weights,
    )


def apply_gems(
    prompt: str,
    gem_ids: Sequence[str],
    profile: Profile,
    *,
    restrictions: str = "",
) -> GemOptimization:
    """Wrap an adapted prompt with the requested gems' enhancements.

    Args:
        prompt: The profile-adapted prompt (already within ``max_length``).
        gem_ids: Requested gem ids, applied in order; repeats are ignored.
        profile: The target profile (length limit, capabilities, forbidden
            patterns).
        restrictions: The request's restrictions, merged into the negative
            prompt.

    Returns:
        The enhanced text, this stage's warnings, and a :class:`GemReport`
        (``None`` when no gem was applied).
    """
    warnings: list[str] = []
    gems: list[Gem] = []
    for gem_id in _unique(gem_id.strip() for gem_id in gem_ids):
        gem = GEMS.get(gem_id.lower())
        if gem is None:
            warnings.append(f"Unknown gem '{gem_id}' ignored")
        elif gem not in gems:
            gems.append(gem)

    if not gems:
        return GemOptimization(text=prompt, warnings=tuple(warnings))

    sections = {
        "prefix": SECTION_SEPARATOR.join(gem.prefix for gem in gems if gem.prefix),
        "prompt": prompt,
        "quality": _modifier_line("Quality", (m for gem in gems for m in gem.quality_modifiers), QUALITY_CAP),
        "fidelity": _modifier_line("Fidelity", (m for gem in gems for m in gem.fidelity_modifiers), FIDELITY_CAP),
        "anatomy": _modifier_line("Anatomy", (m for gem in gems for m in gem.anatomy_modifiers), ANATOMY_CAP),
        "suffix": SECTION_SEPARATOR.join(gem.suffix for gem in gems if gem.suffix),
    }

    def _assemble() -> str:
        return SECTION_SEPARATOR.join(text for text in sections.values() if text)

    text = _assemble()
    dropped: list[str] = []
    for name in _DROP_ORDER:
        if len(text) <= profile.max_length:
            break
        if sections[name]:
            sections[name] = ""
            dropped.append(name)
            text = _assemble()
    if dropped:
        warnings.append(f"Gem sections dropped to fit max length {profile.max_length}: {', '.join(dropped)}")

    for pattern in profile.forbidden_patterns:
        if pattern and find_forbidden(text, pattern) and not find_forbidden(prompt, pattern):
            warnings.append(f'Contains forbidden pattern: "{pattern}"')

    with_negative = NEGATIVE_PROMPT_CAPABILITY in profile.capabilities
    report = GemReport(
        applied_gems=[gem.name for gem in gems],
        negative_prompt=merge_negative_prompt(restrictions, gems) if with_negative else None,
        recommendations=recommend_settings(gems) if with_negative else None,
        quality_checklist=_unique(check for gem in gems for check in gem.quality_checks),
    )
    logger.debug(f"Applied gems {report.applied_gems}; dropped sections {dropped}")
    return GemOptimization(text=text, warnings=tuple(warnings), report=report)
