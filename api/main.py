"""FastAPI service exposing the converted dashboard artifacts and live 311 figures."""

from __future__ import annotations

import json
import os
from datetime import date
from typing import Any

import httpx
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.auth import Principal, require_admin, require_user
from jobs.config import SOURCES, get_source_by_key
from pipelines.sources.socrata import DEFAULT_SINCE, fetch_pothole_summary
from storage.artifacts import artifact_exists, artifact_path, read_artifact

load_dotenv()

app = FastAPI(title="Civic Metrics API", version="0.1.0")


def _configure_cors() -> None:
    raw_origins = os.getenv("API_CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        allow_credentials=True,
    )


_configure_cors()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def _artifact_listing() -> list[dict[str, Any]]:
    return [
        {
            "key": source.key,
            "artifact": source.artifact,
            "description": source.description,
            "available": artifact_exists(artifact_path(source.artifact)),
        }
        for source in SOURCES
    ]


@app.get("/artifacts")
def list_artifacts(_: Principal = Depends(require_user)) -> dict[str, Any]:
    items = _artifact_listing()
    return {"count": len(items), "items": items}


@app.get("/artifacts/{key}")
def get_artifact(key: str, _: Principal = Depends(require_user)):
    source = get_source_by_key(key)
    if not source:
        raise HTTPException(status_code=404, detail=f"Unknown artifact key '{key}'")
    path = artifact_path(source.artifact)
    if not artifact_exists(path):
        raise HTTPException(status_code=404, detail=f"Artifact '{source.artifact}' has not been generated")
    try:
        return JSONResponse(content=read_artifact(path))
    except json.JSONDecodeError as exc:  # pragma: no cover - defensive
        raise HTTPException(status_code=500, detail="Artifact is not valid JSON") from exc


@app.get("/live/potholes")
async def live_potholes(
    since: date = Query(DEFAULT_SINCE, description="Count requests created on or after this date (YYYY-MM-DD)"),
    _: Principal = Depends(require_user),
):
    try:
        summary = await fetch_pothole_summary(since=since)
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail=f"311 data unavailable: {exc}") from exc
    return JSONResponse(content=summary.to_json_dict())


@app.get("/admin/sources")
def admin_sources(principal: Principal = Depends(require_admin)) -> dict[str, Any]:
    items = [
        {**item, "filename": source.filename, "fallbackFilename": source.fallback_filename}
        for item, source in zip(_artifact_listing(), SOURCES)
    ]
    return {"requestedBy": principal.username, "count": len(items), "items": items}
