"""Control identifier normalization and ordering.

Canonical form is uppercase with a parenthetical enhancement suffix:
``ac-2`` -> ``AC-2``, ``ac-2.1`` / ``ac_2_1`` -> ``AC-2(1)``.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

_CONTROL_ID_RE = re.compile(
    r"([A-Z]{2})[-_](\d+)(?:(?:[._]|\()(\d+)\)?)?", re.ASCII
)
_CANONICAL_RE = re.compile(r"([A-Z]{2})-(\d+)(?:\((\d+)\))?", re.ASCII)
_FAMILY_RE = re.compile(r"^([A-Za-z]{2})")


def normalize_control_id(raw_id: str) -> str:
    """Normalize a raw control identifier to its canonical form.

    Total and idempotent: identifiers that do not look like a control ID are
    uppercased with underscores mapped to hyphens.
    """
    candidate = raw_id.strip().upper()
    m = _CONTROL_ID_RE.fullmatch(candidate)
    if not m:
        return candidate.replace("_", "-")

    family, number, enhancement = m.groups()
    control_id = f"{family}-{int(number)}"
    if enhancement is not None:
        control_id += f"({int(enhancement)})"
    return control_id


def is_canonical_control_id(control_id: str) -> bool:
    return bool(_CANONICAL_RE.fullmatch(control_id))


def extract_family_code(control_id: str) -> str:
    """Two-letter uppercase family prefix, or '' when there is none."""
    m = _FAMILY_RE.match(control_id)
    return m.group(1).upper() if m else ""


def is_enhancement(control_id: str) -> bool:
    return bool(re.search(r"\(\d+\)$", control_id))


def get_parent_control_id(control_id: str) -> Optional[str]:
    if not is_enhancement(control_id):
        return None
    return re.sub(r"\(\d+\)$", "", control_id)


def control_sort_key(control_id: str) -> tuple[str, int, int]:
    """Sort key: family, numeric control number, enhancement number.

    Base controls carry enhancement -1 so they sort ahead of their
    enhancements.
    """
    family = extract_family_code(control_id)
    number_match = re.search(r"(\d+)", control_id)
    number = int(number_match.group(1)) if number_match else 0
    enhancement_match = re.search(r"\((\d+)\)", control_id)
    enhancement = int(enhancement_match.group(1)) if enhancement_match else -1
    return (family, number, enhancement)


def sort_control_ids(control_ids: Iterable[str]) -> list[str]:
    """Deduplicate and sort control IDs in catalog order."""
    return sorted(set(control_ids), key=lambda cid: (control_sort_key(cid), cid))
