"""JSON artifact persistence for the dashboard's static data files."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Sequence

from pydantic import BaseModel

ARTIFACT_DIR_ENV_VAR = "ARTIFACT_DIR"
DEFAULT_ARTIFACT_DIR = Path("data/artifacts")


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def get_artifact_dir(override: str | os.PathLike[str] | None = None) -> Path:
    """Resolve the artifact directory from an explicit override or environment variable."""

    if override is not None:
        return Path(override)
    env_value = os.getenv(ARTIFACT_DIR_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_ARTIFACT_DIR


def artifact_path(name: str, directory: str | os.PathLike[str] | None = None) -> Path:
    return get_artifact_dir(directory) / name


def artifact_exists(path: str | os.PathLike[str]) -> bool:
    return Path(path).is_file()


def _to_jsonable(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", by_alias=True)
    if isinstance(payload, Sequence) and not isinstance(payload, (str, bytes)):
        return [_to_jsonable(item) for item in payload]
    return payload


def serialize_artifact(payload: Any) -> str:
    return json.dumps(_to_jsonable(payload), indent=2, ensure_ascii=False) + "\n"


def write_artifact(path: str | os.PathLike[str], payload: Any) -> Path:
    """Serialize ``payload`` to ``path``, replacing whatever was there.

    Returns
    -------
    Path
        The path that was written.
    """

    dest_path = Path(path)
    _ensure_parent(dest_path)
    dest_path.write_text(serialize_artifact(payload), encoding="utf-8")
    return dest_path


def read_artifact(path: str | os.PathLike[str]) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


__all__ = [
    "ARTIFACT_DIR_ENV_VAR",
    "DEFAULT_ARTIFACT_DIR",
    "artifact_exists",
    "artifact_path",
    "get_artifact_dir",
    "read_artifact",
    "serialize_artifact",
    "write_artifact",
]
