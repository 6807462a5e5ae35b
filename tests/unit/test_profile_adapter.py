"""Tests for promptworks.core.profile_adapter and promptworks.core.platforms."""

from __future__ import annotations

import pytest

from promptworks.core.models import LoraVersion, Profile
from promptworks.core.platforms import lookup_platform, normalize_platform, supports_inline_lora
from promptworks.core.profile_adapter import (
    ActiveLora,
    adapt_for_profile,
    build_character_pack,
    reorder_fragments,
    truncate_at_word,
)
from promptworks.core.resolver import Fragment

LORA_VERSION = LoraVersion(
    id="lora-v1",
    model_name="Jane Doe",
    trigger_word="janedoe",
    artifact_url="https://example.com/janedoe.safetensors",
)


def _fragments(*pairs):
    return [Fragment(text=text, block_type=block_type) for text, block_type in pairs]


class TestReorderFragments:
    """Test reorder_fragments()."""

    def test_follows_preferred_order(self):
        fragments = _fragments(("watercolor", "style"), ("A cat", "subject"))
        ordered = reorder_fragments(fragments, ["subject", "style"])
        assert [f.text for f in ordered] == ["A cat", "watercolor"]

    def test_unlisted_types_appended_stably(self):
        fragments = _fragments(
            ("grain", "postfx"),
            ("effect one", None),
            ("A cat", "subject"),
            ("grid", "layout"),
            ("effect two", None),
        )
        ordered = reorder_fragments(fragments, ["subject"])
        assert [f.text for f in ordered] == ["A cat", "grain", "effect one", "grid", "effect two"]

    def test_same_type_keeps_relative_order(self):
        fragments = _fragments(("b", "style"), ("a", "style"), ("s", "subject"))
        assert [f.text for f in reorder_fragments(fragments, ["subject", "style"])] == ["s", "b", "a"]


class TestTruncateAtWord:
    """Test truncate_at_word()."""

    def test_short_text_untouched(self):
        assert truncate_at_word("a cat", 10) == "a cat"

    def test_cuts_at_word_boundary(self):
        assert truncate_at_word("a black cat sleeping", 9) == "a black"

    def test_limit_on_space(self):
        assert truncate_at_word("a black cat", 7) == "a black"

    def test_single_long_word(self):
        assert truncate_at_word("supercalifragilistic", 5) == ""


class TestAdaptForProfile:
    """Test adapt_for_profile()."""

    def test_example_prompt(self, profile):
        fragments = _fragments(("A cat", "subject"), ("in watercolor style", "style"))
        adapted = adapt_for_profile(fragments, profile, seed="seed0001")
        assert adapted.text == "A cat in watercolor style"
        assert adapted.warnings == ()
        assert adapted.lora_mode is None
        assert adapted.character_pack is None

    def test_base_prompt_leads(self):
        profile = Profile(id="p", name="P", base_prompt="Masterpiece.", preferred_order=["subject"])
        adapted = adapt_for_profile(_fragments(("style", "style"), ("A cat", "subject")), profile, seed="s")
        assert adapted.text == "Masterpiece. A cat style"

    @pytest.mark.parametrize("limit", [5, 12, 17, 30])
    def test_length_bound(self, limit):
        profile = Profile(id="p", name="P", max_length=limit)
        fragments = _fragments(("a very long prompt about a sleeping cat", "subject"))
        adapted = adapt_for_profile(fragments, profile, seed="s")
        assert len(adapted.text) <= limit
        assert "a very long prompt about a sleeping cat".startswith(adapted.text)
        full_words = "a very long prompt about a sleeping cat".split(" ")
        assert all(word in full_words for word in adapted.text.split(" ") if word)
        assert any("exceeds max length" in w for w in adapted.warnings)

    def test_forbidden_pattern_reported_not_removed(self):
        profile = Profile(id="p", name="P", forbidden_patterns=["gore", r"\bnsfw\b", "[unclosed"])
        fragments = _fragments(("Gore scene, nsfw, [unclosed bracket", "subject"))
        adapted = adapt_for_profile(fragments, profile, seed="s")
        assert adapted.text == "Gore scene, nsfw, [unclosed bracket"
        assert adapted.warnings == (
            'Contains forbidden pattern: "gore"',
            'Contains forbidden pattern: "\\bnsfw\\b"',
            'Contains forbidden pattern: "[unclosed"',
        )

    def test_inline_lora_token_appended(self, profile):
        lora = ActiveLora(version=LORA_VERSION, weight=0.8, target_platform="flux_dev")
        adapted = adapt_for_profile(_fragments(("A cat", "subject")), profile, lora, seed="s")
        assert adapted.text == "A cat <lora:janedoe:0.8>"
        assert adapted.lora_mode == "inline-lora"
        assert adapted.character_pack is None

    def test_inline_lora_token_survives_truncation(self):
        profile = Profile(id="p", name="P", max_length=30)
        lora = ActiveLora(version=LORA_VERSION, weight=1.0, target_platform="sdxl")
        fragments = _fragments(("one two three four five six seven", "subject"))
        adapted = adapt_for_profile(fragments, profile, lora, seed="s")
        assert len(adapted.text) <= 30
        assert adapted.text.endswith("<lora:janedoe:1>")
        assert adapted.text == "one two three <lora:janedoe:1>"

    def test_lora_token_too_long_falls_back_to_character_pack(self):
        """A token that leaves no room for the prompt is not silently dropped."""
        profile = Profile(id="p", name="P", max_length=16)
        lora = ActiveLora(version=LORA_VERSION, target_platform="flux_dev")
        adapted = adapt_for_profile(_fragments(("A cat sleeping", "subject")), profile, lora, seed="s")
        assert adapted.text == "A cat sleeping"
        assert adapted.lora_mode == "character-pack"
        assert adapted.character_pack is not None
        assert adapted.character_pack.prompt_without_lora == "A cat sleeping"
        assert adapted.warnings == (
            "LoRA token <lora:janedoe:1> does not fit max length 16; using Character Pack instead",
        )

    def test_lora_fallback_still_truncates_prompt(self):
        profile = Profile(id="p", name="P", max_length=12)
        lora = ActiveLora(version=LORA_VERSION, target_platform="sdxl")
        adapted = adapt_for_profile(_fragments(("A cat sleeping soundly", "subject")), profile, lora, seed="s")
        assert adapted.text == "A cat"
        assert adapted.lora_mode == "character-pack"
        assert adapted.warnings[0].startswith("LoRA token <lora:janedoe:1> does not fit")
        assert adapted.warnings[1] == "Prompt exceeds max length (22/12); truncated"

    def test_character_pack_for_midjourney(self, profile):
        lora = ActiveLora(version=LORA_VERSION, target_platform="midjourney")
        adapted = adapt_for_profile(_fragments(("A cat", "subject")), profile, lora, seed="s")
        assert adapted.lora_mode == "character-pack"
        assert "<lora:" not in adapted.text
        pack = adapted.character_pack
        assert pack is not None
        assert pack.prompt_without_lora == adapted.text
        assert pack.platform == "midjourney"
        assert pack.reference_image_count == 3
        assert pack.recommended_params.duration_seconds is None
        assert "Jane Doe" in pack.character_instructions

    def test_character_pack_when_platform_missing(self, profile):
        lora = ActiveLora(version=LORA_VERSION, target_platform=None)
        adapted = adapt_for_profile(_fragments(("A cat", "subject")), profile, lora, seed="s")
        assert adapted.lora_mode == "character-pack"
        assert adapted.character_pack.platform is None


class TestCharacterPack:
    """Test build_character_pack()."""

    def test_video_platform_params(self):
        lora = ActiveLora(version=LORA_VERSION, target_platform="kling")
        pack = build_character_pack("A cat", lora, seed="seed0001")
        assert pack.reference_image_count == 5
        assert pack.recommended_params.aspect_ratio == "16:9"
        assert pack.recommended_params.duration_seconds == 5
        assert "full-body" in pack.character_instructions

    def test_deterministic_for_seed(self):
        lora = ActiveLora(version=LORA_VERSION, target_platform="midjourney")
        assert build_character_pack("x", lora, seed="abc") == build_character_pack("x", lora, seed="abc")


class TestPlatformTable:
    """Test the static platform capability table."""

    @pytest.mark.parametrize("platform", ["flux_dev", "FLUX_PRO", " sdxl ", "sd_1.5", "sd1.5"])
    def test_inline_platforms(self, platform):
        assert supports_inline_lora(platform)

    @pytest.mark.parametrize(
        "platform", ["flux-dev", "Flux Schnell", "flux_1_dev", "sdxl_lightning", "stable-diffusion-3", "SD1.5-inpaint"]
    )
    def test_family_spellings_are_inline(self, platform):
        assert supports_inline_lora(platform)

    @pytest.mark.parametrize("platform", ["midjourney", "dall_e_3", "runway_gen3", "my image clone", "", None])
    def test_non_inline_platforms(self, platform):
        assert not supports_inline_lora(platform)

    def test_separators_folded(self):
        assert normalize_platform(" Runway-Gen3 ") == "runway_gen3"
        assert lookup_platform("Runway Gen3").media == "video"

    def test_unknown_platform_defaults_to_image(self):
        assert lookup_platform("unheard_of").media == "image"
