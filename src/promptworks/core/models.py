"""Pydantic records consumed and produced by the prompt compiler.

These models describe the read-only catalog records (profiles, blueprints,
blocks, filters, LoRA versions), the compile request, and the compile
result.  Every model is frozen: records are read-only at compile time and a
:class:`CompileResult` is immutable once produced.

Records
-------
Profile
    Target-model constraints: base prefix, preferred block-type order,
    forbidden patterns, maximum length, capability flags.
Block
    A reusable template fragment tagged with a block type.
Filter
    A user-selectable option whose chosen value injects an effect fragment.
Blueprint / UserBlueprint
    Ordered block lists.  User blueprints keep an append-only history of
    :class:`BlueprintVersion` snapshots.

Request / Result
----------------
CompileRequest
    The compiler's sole input.
CompileResult
    The compiler's sole output.  Serialises to JSON verbatim.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

BlockType = Literal["style", "camera", "layout", "constraint", "postfx", "subject"]
LoraMode = Literal["inline-lora", "character-pack"]

# Names of the free-text fields a block template may reference.
INPUT_FIELDS: tuple[str, ...] = ("subject", "context", "items", "environment", "restrictions")


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Catalog records.
# ---------------------------------------------------------------------------


class Profile(_Record):
    """Constraints of a target LLM / image model.

    Attributes:
        id: Catalog identifier.
        name: Display name (reported in compile metadata).
        base_prompt: Prefix placed before every compiled prompt.  May be empty.
        preferred_order: Block types in the order the model responds best to.
        forbidden_patterns: Regular expressions (or plain substrings) that
            should not appear in the output.
        max_length: Hard character cap for the compiled prompt.
        capabilities: Free-form capability flags.
    """

    id: str
    name: str
    base_prompt: str = ""
    preferred_order: list[str] = Field(default_factory=list)
    forbidden_patterns: list[str] = Field(default_factory=list)
    max_length: int = Field(default=2000, ge=1)
    capabilities: list[str] = Field(default_factory=list)


class Block(_Record):
    """A template fragment referenced by blueprints."""

    key: str
    label: str = ""
    type: BlockType
    template: str


class FilterSchema(_Record):
    """Valid values of a filter: enumerated options or a numeric range."""

    type: Literal["select", "range"] = "select"
    options: list[str] | None = None
    min: float | None = None
    max: float | None = None


class Filter(_Record):
    """A selectable option that appends an effect fragment to the prompt.

    Attributes:
        key: Unique filter key (also the conflict tie-break order).
        label: Display label.
        schema_: Declared valid values (serialised as ``schema``).
        effect: Mapping of value to injected text.  A ``"*"`` entry acts as a
            fallback for range filters and may contain a ``{value}`` token.
        dimension: The named prompt dimension the effect targets.  Two
            filters on the same dimension with different effects conflict.
            Defaults to the filter's own key.
        is_premium: Plan-tier gate.  Enforced upstream, informational here.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str
    label: str = ""
    schema_: FilterSchema = Field(default_factory=FilterSchema, alias="schema")
    effect: dict[str, str] = Field(default_factory=dict)
    dimension: str | None = None
    is_premium: bool = False

    @property
    def target_dimension(self) -> str:
        return self.dimension or self.key


class Blueprint(_Record):
    """A system-defined blueprint."""

    id: str
    name: str
    category: str = ""
    description: str = ""
    blocks: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    compatible_profiles: list[str] | None = None


class BlueprintVersion(_Record):
    """Immutable snapshot of a user blueprint's block list and constraints."""

    version: int = Field(ge=1)
    blocks: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)


class UserBlueprint(_Record):
    """A user-defined blueprint with an append-only version history."""

    id: str
    owner_id: str | None = None
    name: str
    category: str = "custom"
    compatible_profiles: list[str] | None = None
    versions: list[BlueprintVersion] = Field(min_length=1)

    @property
    def current_version(self) -> BlueprintVersion:
        return self.versions[-1]

    def with_revision(self, blocks: list[str], constraints: list[str]) -> UserBlueprint:
        """Return a copy carrying one more version.

        Existing versions are kept as-is; the new snapshot is numbered one
        past the current version.
        """
        revision = BlueprintVersion(
            version=self.current_version.version + 1,
            blocks=list(blocks),
            constraints=list(constraints),
        )
        return self.model_copy(update={"versions": [*self.versions, revision]})


class BlueprintSnapshot(_Record):
    """A system or user blueprint resolved to the version being compiled."""

    name: str
    version: int | None = None
    blocks: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    compatible_profiles: list[str] | None = None

    @classmethod
    def from_blueprint(cls, blueprint: Blueprint) -> BlueprintSnapshot:
        return cls(
            name=blueprint.name,
            blocks=blueprint.blocks,
            constraints=blueprint.constraints,
            compatible_profiles=blueprint.compatible_profiles,
        )

    @classmethod
    def from_user_blueprint(
        cls, blueprint: UserBlueprint, version: int | None = None
    ) -> BlueprintSnapshot:
        """Snapshot a user blueprint at ``version`` (default: current)."""
        selected = blueprint.current_version
        if version is not None:
            selected = next((v for v in blueprint.versions if v.version == version), selected)
        return cls(
            name=blueprint.name,
            version=selected.version,
            blocks=selected.blocks,
            constraints=selected.constraints,
            compatible_profiles=blueprint.compatible_profiles,
        )


class LoraVersion(_Record):
    """A trained (or training) LoRA version owned by a user."""

    id: str
    model_name: str
    trigger_word: str | None = None
    artifact_url: str | None = None

    @property
    def token_name(self) -> str:
        """Name used inside the inline ``<lora:name:weight>`` syntax."""
        if self.trigger_word:
            return self.trigger_word
        return "_".join(self.model_name.lower().split()) or "custom_style"


# ---------------------------------------------------------------------------
# Request.
# ---------------------------------------------------------------------------


class LoraActivation(_Record):
    """An active LoRA for this compile."""

    version_id: str
    weight: float = Field(default=1.0, ge=0.0, le=2.0)
    target_platform: str | None = None


class PromptInputs(_Record):
    """The five free-text fields substituted into block templates."""

    subject: str = ""
    context: str = ""
    items: str = ""
    environment: str = ""
    restrictions: str = ""


class CompileRequest(_Record):
    """Everything the compiler needs besides the catalog records.

    Exactly one of ``blueprint_id`` and ``user_blueprint_id`` must be set;
    the compiler (not this model) enforces it so the failure surfaces as a
    compile error.
    """

    profile_id: str
    blueprint_id: str | None = None
    user_blueprint_id: str | None = None
    user_blueprint_version: int | None = None
    filters: dict[str, str] = Field(default_factory=dict)
    seed: str | None = None
    subject: str = ""
    context: str = ""
    items: str = ""
    environment: str = ""
    restrictions: str = ""
    lora: LoraActivation | None = None
    gems: list[str] = Field(default_factory=list)

    @property
    def inputs(self) -> PromptInputs:
        return PromptInputs(
            subject=self.subject,
            context=self.context,
            items=self.items,
            environment=self.environment,
            restrictions=self.restrictions,
        )


# ---------------------------------------------------------------------------
# Result.
# ---------------------------------------------------------------------------


class RecommendedParams(_Record):
    aspect_ratio: str
    duration_seconds: int | None = None


class CharacterPack(_Record):
    """Reference-image instructions for platforms without inline LoRA syntax."""

    platform: str | None
    prompt_without_lora: str
    character_instructions: str
    reference_image_count: int
    recommended_params: RecommendedParams


class CompileMetadata(_Record):
    profile_name: str
    blueprint_name: str
    blueprint_version: int | None = None
    block_count: int
    filter_count: int
    lora_mode: LoraMode | None = None
    gem_count: int = 0


class TechnicalRecommendations(_Record):
    """Sampler settings suggested by the applied gems."""

    cfg_scale: float
    denoising_strength: float
    sampler: str
    control_net_weights: dict[str, float]


class GemReport(_Record):
    """What the gem stage applied.

    ``negative_prompt`` and ``recommendations`` are ``None`` for profiles
    without the ``negative_prompt`` capability.
    """

    applied_gems: list[str]
    negative_prompt: str | None = None
    recommendations: TechnicalRecommendations | None = None
    quality_checklist: list[str] = Field(default_factory=list)


class CompileResult(_Record):
    """The compiler's output, persisted and returned to the client as-is."""

    seed: str
    compiled_prompt: str
    score: int = Field(ge=0, le=100)
    warnings: list[str] = Field(default_factory=list)
    metadata: CompileMetadata
    character_pack: CharacterPack | None = None
    gems: GemReport | None = None
