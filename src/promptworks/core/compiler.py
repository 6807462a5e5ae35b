"""Deterministic prompt compilation.

:func:`compile_prompt` sequences the compile stages into one pure function::

    CompileRequest
      -> resolve seed            (seed.resolve_seed)
      -> resolve blocks          (resolver.resolve_blocks)
      -> apply filters           (filters.apply_filters)
      -> adapt for profile       (profile_adapter.adapt_for_profile)
      -> apply gems              (gems.apply_gems)
      -> score                   (scorer.score_prompt)
      -> CompileResult

Each stage receives only the previous stage's output.  Records come from a
:class:`Lookups` object supplied by the caller; the compiler itself does no
I/O, keeps no cache and shares no state between calls, so it is safe to run
concurrently.

Failure Model
-------------
A compile either returns a full :class:`CompileResult` or raises a
:class:`~promptworks.core.errors.CompileError`.  It raises only when the
blueprint reference is missing or ambiguous, when a referenced record does
not exist, or when the requested LoRA is not trained yet.  Every other
anomaly becomes a warning on the result.

Usage
-----
::

    from promptworks.core.catalog import load_catalog
    from promptworks.core.compiler import PromptCompiler
    from promptworks.core.models import CompileRequest

    compiler = PromptCompiler(load_catalog())
    result = compiler.compile(
        CompileRequest(profile_id="flux-pro", blueprint_id="weightless-phone-photo", subject="a teapot")
    )
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Protocol

from .errors import BlueprintReferenceError, LoraNotReadyError
from .filters import apply_filters
from .gems import apply_gems
from .models import (
    Block,
    BlueprintSnapshot,
    CompileMetadata,
    CompileRequest,
    CompileResult,
    Filter,
    LoraVersion,
    Profile,
)
from .profile_adapter import ActiveLora, adapt_for_profile
from .resolver import constraint_fragments, resolve_blocks
from .scorer import score_prompt
from .seed import resolve_seed

logger = logging.getLogger(__name__)


class Lookups(Protocol):
    """Read-only record access.

    Every method raises the matching
    :class:`~promptworks.core.errors.RecordNotFoundError` subclass when a
    requested record does not exist.
    """

    def get_profile(self, profile_id: str) -> Profile: ...

    def get_blueprint(self, blueprint_id: str) -> BlueprintSnapshot: ...

    def get_user_blueprint(self, user_blueprint_id: str, version: int | None = None) -> BlueprintSnapshot: ...

    def get_blocks(self, keys: Iterable[str]) -> Mapping[str, Block]: ...

    def get_filters(self, keys: Iterable[str]) -> Mapping[str, Filter]: ...

    def get_lora_version(self, version_id: str) -> LoraVersion: ...


def _load_blueprint(request: CompileRequest, lookups: Lookups) -> BlueprintSnapshot:
    if request.blueprint_id and request.user_blueprint_id:
        raise BlueprintReferenceError("Provide either blueprint_id or user_blueprint_id, not both")
    if request.blueprint_id:
        return lookups.get_blueprint(request.blueprint_id)
    if request.user_blueprint_id:
        return lookups.get_user_blueprint(request.user_blueprint_id, request.user_blueprint_version)
    raise BlueprintReferenceError("Either blueprint_id or user_blueprint_id is required")


def _load_lora(request: CompileRequest, lookups: Lookups) -> ActiveLora | None:
    if request.lora is None:
        return None
    version = lookups.get_lora_version(request.lora.version_id)
    if not version.artifact_url:
        raise LoraNotReadyError(version.id)
    return ActiveLora(
        version=version,
        weight=request.lora.weight,
        target_platform=request.lora.target_platform,
    )


def compile_prompt(request: CompileRequest, lookups: Lookups) -> CompileResult:
    """Compile a request into a prompt, score and warnings.

    Args:
        request: The compile request.
        lookups: Read-only record accessor.

    Returns:
        The immutable compile result.

    Raises:
        BlueprintReferenceError: Neither or both blueprint references given.
        RecordNotFoundError: A profile, blueprint, block, filter or LoRA
            version does not exist.
        LoraNotReadyError: The LoRA version has no trained artifact.
    """
    seed = resolve_seed(request.seed)

    blueprint = _load_blueprint(request, lookups)
    profile = lookups.get_profile(request.profile_id)
    blocks = lookups.get_blocks(blueprint.blocks)
    filter_defs = lookups.get_filters(key for key, value in request.filters.items() if value.strip())
    lora = _load_lora(request, lookups)

    # --- Resolve blocks ----------------------------------------------------
    resolved = resolve_blocks(blueprint.blocks, blocks, request.inputs)
    resolver_warnings = list(resolved.warnings)
    if blueprint.compatible_profiles is not None and profile.id not in blueprint.compatible_profiles:
        resolver_warnings.insert(
            0, f"Blueprint '{blueprint.name}' is not marked compatible with profile '{profile.name}'"
        )
    fragments = [
        *resolved.fragments,
        *constraint_fragments(blueprint.constraints, request.restrictions, resolved.used_fields),
    ]

    # --- Apply filters -----------------------------------------------------
    filtered = apply_filters(fragments, request.filters, filter_defs)

    # --- Adapt for profile / platform --------------------------------------
    adapted = adapt_for_profile(filtered.fragments, profile, lora, seed=seed)

    # --- Gems --------------------------------------------------------------
    optimized = apply_gems(adapted.text, request.gems, profile, restrictions=request.restrictions)
    character_pack = adapted.character_pack
    if character_pack is not None and optimized.report is not None:
        character_pack = character_pack.model_copy(update={"prompt_without_lora": optimized.text})

    # --- Score -------------------------------------------------------------
    score, warnings = score_prompt(
        optimized.text,
        (resolver_warnings, filtered.warnings, adapted.warnings, optimized.warnings),
        profile,
    )

    logger.info(
        f"Compiled prompt seed={seed} profile={profile.id} score={score} warnings={len(warnings)}"
    )
    return CompileResult(
        seed=seed,
        compiled_prompt=optimized.text,
        score=score,
        warnings=warnings,
        metadata=CompileMetadata(
            profile_name=profile.name,
            blueprint_name=blueprint.name,
            blueprint_version=blueprint.version,
            block_count=len(resolved.fragments),
            filter_count=len(request.filters),
            lora_mode=adapted.lora_mode,
            gem_count=len(optimized.report.applied_gems) if optimized.report else 0,
        ),
        character_pack=character_pack,
        gems=optimized.report,
    )


class PromptCompiler:
    """Binds a :class:`Lookups` implementation to :func:`compile_prompt`."""

    def __init__(self, lookups: Lookups) -> None:
        self.lookups = lookups

    def compile(self, request: CompileRequest) -> CompileResult:
        return compile_prompt(request, self.lookups)
