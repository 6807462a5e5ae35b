"""Shared pytest fixtures for Promptworks tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from promptworks.core.catalog import RecordCatalog
from promptworks.core.models import Block, Blueprint, Filter, FilterSchema, LoraVersion, Profile


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def profile() -> Profile:
    """Profile from the end-to-end example: subject first, then style."""
    return Profile(
        id="example",
        name="Example Profile",
        preferred_order=["subject", "style"],
        forbidden_patterns=[],
        max_length=50,
    )


@pytest.fixture
def blocks() -> dict[str, Block]:
    """Blocks covering each block type used in the tests."""
    records = [
        Block(key="subj_block", type="subject", template="A {subject}"),
        Block(key="style_block", type="style", template="in {context} style"),
        Block(key="camera_block", type="camera", template="shot on {items}"),
        Block(key="layout_block", type="layout", template="set in {environment}"),
        Block(key="postfx_block", type="postfx", template="film grain"),
        Block(key="mystery_block", type="style", template="with {mood} and {mood} and {era}"),
    ]
    return {block.key: block for block in records}


@pytest.fixture
def filters() -> dict[str, Filter]:
    """Filter definitions, including two that target the same dimension."""
    records = [
        Filter(
            key="camera_angle_a",
            schema=FilterSchema(type="select", options=["low", "high"]),
            effect={"low": "low angle shot", "high": "high angle shot"},
            dimension="camera_angle",
        ),
        Filter(
            key="camera_angle_b",
            schema=FilterSchema(type="select", options=["low", "high"]),
            effect={"low": "worm's eye view", "high": "bird's eye view"},
            dimension="camera_angle",
        ),
        Filter(
            key="lighting",
            schema=FilterSchema(type="select", options=["soft", "hard"]),
            effect={"soft": "soft lighting", "hard": "hard lighting"},
        ),
        Filter(
            key="grain",
            schema=FilterSchema(type="range", min=0, max=100),
            effect={"0": "no grain", "*": "grain {value}%"},
        ),
    ]
    return {definition.key: definition for definition in records}


@pytest.fixture
def catalog(profile: Profile, blocks: dict[str, Block], filters: dict[str, Filter]) -> RecordCatalog:
    """Small catalog wired for compiler and API tests."""
    return RecordCatalog(
        profiles=[
            profile,
            Profile(
                id="strict",
                name="Strict Profile",
                base_prompt="Masterpiece.",
                preferred_order=["subject", "camera", "style"],
                forbidden_patterns=["gore", r"\bnsfw\b"],
                max_length=40,
            ),
        ],
        blueprints=[
            Blueprint(id="cat_painting", name="Cat Painting", blocks=["subj_block", "style_block"]),
            Blueprint(
                id="style_first",
                name="Style First",
                blocks=["style_block", "postfx_block", "subj_block"],
                constraints=["no text"],
                compatible_profiles=["strict"],
            ),
            Blueprint(id="broken", name="Broken", blocks=["subj_block", "missing_block"]),
        ],
        blocks=blocks.values(),
        filters=filters.values(),
        lora_versions=[
            LoraVersion(
                id="lora-v1",
                model_name="Jane Doe",
                trigger_word="janedoe",
                artifact_url="https://example.com/janedoe.safetensors",
            ),
            LoraVersion(id="lora-untrained", model_name="Pending"),
        ],
    )


@pytest.fixture
def test_client(catalog: RecordCatalog) -> Generator:
    """FastAPI TestClient serving the small test catalog.

    The lifespan still runs (loading the packaged defaults); the catalog is
    swapped afterwards so routes see the fixture records.
    """
    from fastapi.testclient import TestClient

    from promptworks.api.main import app

    with TestClient(app) as client:
        app.state.catalog = catalog
        yield client
