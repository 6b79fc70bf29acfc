"""OSCAL catalog parser.

Walks the nested catalog (groups -> controls -> enhancement controls -> parts)
depth-first and flattens it into normalized control records. Base controls
are immediately followed by their enhancements, in document order.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

from ..errors import CatalogStructureError
from ..models.control import ControlKind, ControlParameter, ParameterSelect
from .ids import extract_family_code, is_canonical_control_id, normalize_control_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedControl:
    """A catalog node flattened out of the tree, before baseline resolution."""

    id: str
    family: str
    title: str
    kind: ControlKind
    description: str = ""
    guidance: str = ""
    parent_id: Optional[str] = None
    enhancement_ids: tuple[str, ...] = ()
    related_controls: tuple[str, ...] = ()
    parameters: tuple[ControlParameter, ...] = field(default=())


def load_catalog_document(path: Path) -> dict:
    """Read a raw OSCAL catalog JSON file."""
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise CatalogStructureError(f"Catalog file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise CatalogStructureError(f"Catalog is not valid JSON ({path}): {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("catalog"), dict):
        raise CatalogStructureError(f"Missing 'catalog' root property in {path}")
    return document


def get_catalog_metadata(document: dict) -> dict:
    """Title, version and OSCAL version from the catalog metadata block."""
    metadata = (document.get("catalog") or {}).get("metadata") or {}
    return {
        "title": metadata.get("title", ""),
        "version": metadata.get("version", ""),
        "oscal_version": metadata.get("oscal-version", ""),
    }


def parse_catalog(document: dict) -> list[NormalizedControl]:
    """Flatten a raw OSCAL catalog document into normalized controls."""
    catalog = document.get("catalog") if isinstance(document, dict) else None
    if not isinstance(catalog, dict):
        raise CatalogStructureError("Catalog document has no 'catalog' root property")

    controls: list[NormalizedControl] = []

    for index, node in enumerate(_iter_dicts(catalog.get("controls"))):
        _walk_control(node, controls, f"controls[{index}]")

    for index, group in enumerate(_iter_dicts(catalog.get("groups"))):
        _walk_group(group, controls, f"groups[{index}]")

    logger.debug("Parsed %d controls from catalog", len(controls))
    return controls


def _walk_group(group: dict, out: list[NormalizedControl], path: str) -> None:
    for index, node in enumerate(_iter_dicts(group.get("controls"))):
        _walk_control(node, out, f"{path}.controls[{index}]")

    for index, sub_group in enumerate(_iter_dicts(group.get("groups"))):
        _walk_group(sub_group, out, f"{path}.groups[{index}]")


def _walk_control(node: dict, out: list[NormalizedControl], path: str) -> None:
    """Emit a base control followed by all of its enhancements.

    Enhancements nested under other enhancements are flattened onto the base
    control: their parent is always the base, and the base lists every one
    of them in document order.
    """
    control_id = normalize_control_id(_require(node, "id", path))
    descendants = list(_iter_enhancements(node, path))
    enhancement_ids = []
    for child, child_path, depth in descendants:
        child_id = normalize_control_id(_require(child, "id", child_path))
        if depth > 1 and not is_canonical_control_id(child_id):
            raise CatalogStructureError(
                f"Nested enhancement at {child_path} has non-canonical id '{child['id']}'"
            )
        enhancement_ids.append(child_id)

    out.append(_normalize_node(node, control_id, None, tuple(enhancement_ids), path))
    for (child, child_path, _), child_id in zip(descendants, enhancement_ids):
        out.append(_normalize_node(child, child_id, control_id, (), child_path))


def _iter_enhancements(node: dict, path: str, depth: int = 1) -> Iterator[tuple[dict, str, int]]:
    for index, child in enumerate(_iter_dicts(node.get("controls"))):
        child_path = f"{path}.controls[{index}]"
        yield child, child_path, depth
        yield from _iter_enhancements(child, child_path, depth + 1)


def _normalize_node(
    node: dict,
    control_id: str,
    parent_id: Optional[str],
    enhancement_ids: tuple[str, ...],
    path: str,
) -> NormalizedControl:
    parts = node.get("parts")
    return NormalizedControl(
        id=control_id,
        family=extract_family_code(control_id),
        title=_require(node, "title", path),
        kind=ControlKind.ENHANCEMENT if parent_id else ControlKind.BASE,
        description=extract_statement(parts),
        guidance=extract_guidance(parts),
        parent_id=parent_id,
        enhancement_ids=enhancement_ids,
        related_controls=tuple(extract_related_controls(node.get("links"))),
        parameters=tuple(transform_parameters(node.get("params"))),
    )


def _require(node: dict, key: str, path: str) -> str:
    value = node.get(key)
    if not isinstance(value, str) or not value.strip():
        raise CatalogStructureError(f"Control node at {path} is missing required '{key}'")
    return value


def _iter_dicts(value: Any) -> Iterator[dict]:
    """Yield the dict items of a list; anything else yields nothing."""
    if not isinstance(value, list):
        return
    for item in value:
        if isinstance(item, dict):
            yield item


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _prose(part: dict) -> str:
    prose = part.get("prose")
    return prose if isinstance(prose, str) else ""


# ---------------------------------------------------------------------------
# Part extraction
# ---------------------------------------------------------------------------


def _part_label(part: dict) -> str:
    """Enumeration label of a statement item ('a.', '1.', ...)."""
    for prop in _iter_dicts(part.get("props")):
        if prop.get("name") == "label" and isinstance(prop.get("value"), str):
            return prop["value"].strip()

    part_id = part.get("id")
    if isinstance(part_id, str) and "." in part_id:
        return part_id.rsplit(".", 1)[-1] + "."
    return ""


def _collect_items(parts: Any, lines: list[str]) -> None:
    for sub_part in _iter_dicts(parts):
        prose = _prose(sub_part)
        if prose:
            label = _part_label(sub_part)
            lines.append(f"{label} {prose}" if label else prose)
        _collect_items(sub_part.get("parts"), lines)


def extract_statement(parts: Any) -> str:
    """Full statement text, one line per enumerated item."""
    lines: list[str] = []
    for part in _iter_dicts(parts):
        if part.get("name") != "statement":
            continue
        prose = _prose(part)
        if prose:
            lines.append(prose)
        _collect_items(part.get("parts"), lines)
    return "\n".join(lines)


def extract_guidance(parts: Any) -> str:
    return _find_prose(parts, "guidance")


def _find_prose(parts: Any, part_name: str) -> str:
    """First prose of a part named ``part_name``, searched depth-first."""
    for part in _iter_dicts(parts):
        if part.get("name") == part_name:
            prose = _prose(part)
            if prose:
                return prose
        nested = _find_prose(part.get("parts"), part_name)
        if nested:
            return nested
    return ""


def extract_related_controls(links: Any) -> list[str]:
    """Normalized IDs of 'related' links, deduplicated in document order."""
    related: list[str] = []
    for link in _iter_dicts(links):
        if link.get("rel") != "related":
            continue
        href = link.get("href")
        if not isinstance(href, str) or "#" not in href:
            continue
        fragment = href.split("#", 1)[1]
        if not fragment:
            continue
        control_id = normalize_control_id(fragment)
        if is_canonical_control_id(control_id) and control_id not in related:
            related.append(control_id)
    return related


def transform_parameters(params: Any) -> list[ControlParameter]:
    result: list[ControlParameter] = []
    for param in _iter_dicts(params):
        param_id = param.get("id")
        if not isinstance(param_id, str) or not param_id:
            continue

        label = param.get("label")
        guidelines = [
            g["prose"] for g in _iter_dicts(param.get("guidelines"))
            if isinstance(g.get("prose"), str)
        ]
        values = _strings(param.get("values"))

        select = None
        raw_select = param.get("select")
        if isinstance(raw_select, dict):
            select = ParameterSelect(
                how_many="one-or-more" if raw_select.get("how-many") == "one-or-more" else "one",
                choices=_strings(raw_select.get("choice")),
            )

        result.append(ControlParameter(
            id=param_id,
            label=label if isinstance(label, str) else None,
            guidelines=" ".join(guidelines) if guidelines else None,
            values=values or None,
            select=select,
        ))
    return result
