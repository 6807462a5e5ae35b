"""Promptworks — FastAPI Application.

This module defines the FastAPI ``app`` instance, the REST routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Records** (profiles, blueprints, blocks, filters, LoRA versions) live in a
  :class:`~promptworks.core.catalog.RecordCatalog` loaded at startup from
  ``config.catalog_path`` (or the packaged defaults) and stored on
  ``app.state.catalog``.
- **Compilation** is delegated to
  :func:`~promptworks.core.compiler.compile_prompt`, a pure function; route
  handlers only translate compile errors into HTTP 400 responses.

Endpoints
---------
========  ==============================  ====================================
Method    Path                            Purpose
========  ==============================  ====================================
GET       ``/api/catalog``                Profiles, blueprints, filters, gems
POST      ``/api/prompt/compile``         Compile a prompt
POST      ``/api/user-blueprints``        Create a user blueprint
GET       ``/api/user-blueprints/{id}``   User blueprint with its versions
PUT       ``/api/user-blueprints/{id}``   Store a new blueprint version
========  ==============================  ====================================

Usage
-----
CLI (installed entry point)::

    promptworks

Direct invocation::

    python -m promptworks.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from promptworks import __version__
from promptworks.api.models import UserBlueprintCreateRequest, UserBlueprintRevisionRequest
from promptworks.core.catalog import RecordCatalog, load_catalog
from promptworks.core.compiler import compile_prompt
from promptworks.core.config import config
from promptworks.core.errors import CompileError, UserBlueprintNotFoundError
from promptworks.core.gems import list_gems
from promptworks.core.models import CompileRequest, CompileResult, UserBlueprint

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Application lifecycle.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load the record catalog on startup.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    app.state.catalog = load_catalog(config.catalog_path)
    yield


app = FastAPI(
    title="Promptworks",
    description="Deterministic prompt compilation for generative image and video models.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _catalog(request: Request) -> RecordCatalog:
    return request.app.state.catalog


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/catalog")
async def get_catalog(request: Request) -> dict:
    """Return the selectable catalog records for the frontend.

    Blocks and LoRA versions are not listed: blueprints reference blocks by
    key, and LoRA versions are per-user.

    Returns:
        Dictionary with ``version``, ``profiles``, ``blueprints``,
        ``filters`` and ``gems`` lists.
    """
    catalog = _catalog(request)
    return {
        "version": __version__,
        "profiles": [p.model_dump() for p in catalog.profiles.values()],
        "blueprints": [b.model_dump() for b in catalog.blueprints.values()],
        "filters": [f.model_dump(by_alias=True) for f in catalog.filters.values()],
        "gems": list_gems(),
    }


@app.post("/api/prompt/compile")
async def compile_endpoint(req: CompileRequest, request: Request) -> CompileResult:
    """Compile a prompt from a profile, blueprint, filters and inputs.

    Args:
        req: Validated :class:`CompileRequest` payload.

    Returns:
        The :class:`CompileResult` (seed, prompt, score, warnings, metadata,
        optional Character Pack).

    Raises:
        HTTPException: 400 when the blueprint reference is missing, a
            referenced record does not exist, or the LoRA is not trained.
    """
    try:
        return compile_prompt(req, _catalog(request))
    except CompileError as exc:
        logger.warning(f"Compile rejected: {exc}")
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/api/user-blueprints", status_code=201)
async def create_user_blueprint(req: UserBlueprintCreateRequest, request: Request) -> UserBlueprint:
    """Create a user blueprint at version 1.

    Raises:
        HTTPException: 400 if a block key does not exist.
    """
    try:
        return _catalog(request).create_user_blueprint(
            req.name,
            req.blocks,
            req.constraints,
            owner_id=req.owner_id,
            category=req.category,
            compatible_profiles=req.compatible_profiles,
        )
    except CompileError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.get("/api/user-blueprints/{blueprint_id}")
async def get_user_blueprint(blueprint_id: str, request: Request) -> UserBlueprint:
    """Return a user blueprint with its full version history.

    Raises:
        HTTPException: 404 if the blueprint is not found.
    """
    blueprint = _catalog(request).user_blueprints.get(blueprint_id)
    if blueprint is None:
        raise HTTPException(status_code=404, detail="User blueprint not found")
    return blueprint


@app.put("/api/user-blueprints/{blueprint_id}")
async def revise_user_blueprint(
    blueprint_id: str, req: UserBlueprintRevisionRequest, request: Request
) -> UserBlueprint:
    """Store a new immutable version of a user blueprint.

    Raises:
        HTTPException: 404 if the blueprint is not found, 400 if a block key
            does not exist.
    """
    try:
        return _catalog(request).revise_user_blueprint(blueprint_id, req.blocks, req.constraints)
    except UserBlueprintNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except CompileError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Host, port and log level come from :data:`~promptworks.core.config.config`
    (``PROMPTWORKS_SERVER_HOST``, ``PROMPTWORKS_SERVER_PORT``,
    ``PROMPTWORKS_LOG_LEVEL``).

    This function is registered as the ``promptworks`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "promptworks.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
