"""Reading and writing the JSON artifacts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import CatalogStructureError

ModelT = TypeVar("ModelT", bound=BaseModel)


def dump_artifact(model: BaseModel) -> str:
    """Serialize deterministically: camelCase keys, unset optionals omitted."""
    data = model.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, indent=2, ensure_ascii=False)


def write_artifact(path: Path, model: BaseModel) -> int:
    """Write an artifact, creating parent directories. Returns size in bytes."""
    content = dump_artifact(model)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return len(content.encode("utf-8"))


def read_artifact(path: Path, model: type[ModelT]) -> ModelT:
    """Load and validate an artifact written by :func:`write_artifact`."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CatalogStructureError(f"Missing: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise CatalogStructureError(f"JSON parse error in {path}: {e}") from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise CatalogStructureError(f"{path.name} does not match the {model.__name__} schema: {e}") from e
