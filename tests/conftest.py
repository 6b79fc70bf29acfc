"""Shared fixtures for oscalcat tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from oscalcat.core.config import DEFAULT_CONFIG


def _statement(control_id: str, items: list[dict]) -> dict:
    return {"id": f"{control_id}_smt", "name": "statement", "parts": items}


def _item(part_id: str, label: str, prose: str, parts: list[dict] | None = None) -> dict:
    item = {
        "id": part_id,
        "name": "item",
        "props": [{"name": "label", "value": label}],
        "prose": prose,
    }
    if parts:
        item["parts"] = parts
    return item


def _guidance(control_id: str, prose: str) -> dict:
    return {"id": f"{control_id}_gdn", "name": "guidance", "prose": prose}


@pytest.fixture
def catalog_document() -> dict:
    """A small OSCAL catalog with two families and one enhancement."""
    return {
        "catalog": {
            "uuid": "00000000-0000-4000-8000-000000000000",
            "metadata": {
                "title": "Test Catalog",
                "version": "5.1.1",
                "oscal-version": "1.1.2",
            },
            "groups": [
                {
                    "id": "ac",
                    "class": "family",
                    "title": "Access Control",
                    "controls": [
                        {
                            "id": "ac-1",
                            "class": "SP800-53",
                            "title": "Policy and Procedures",
                            "params": [
                                {
                                    "id": "ac-01_odp.01",
                                    "label": "personnel or roles",
                                    "guidelines": [{"prose": "personnel or roles to whom the policy is disseminated"}],
                                },
                                {
                                    "id": "ac-01_odp.02",
                                    "select": {
                                        "how-many": "one-or-more",
                                        "choice": ["organization-level", "system-level"],
                                    },
                                },
                            ],
                            "parts": [
                                _statement("ac-1", [
                                    _item("ac-1_smt.a", "a.", "Develop and document an access control policy;"),
                                    _item("ac-1_smt.b", "b.", "Review and update the current access control:", [
                                        _item("ac-1_smt.b.1", "1.", "Policy annually; and"),
                                        _item("ac-1_smt.b.2", "2.", "Procedures annually."),
                                    ]),
                                ]),
                                _guidance("ac-1", "Access control policy addresses the controls in the AC family."),
                            ],
                        },
                        {
                            "id": "ac-2",
                            "class": "SP800-53",
                            "title": "Account Management",
                            "links": [
                                {"href": "#ac-3", "rel": "related"},
                                {"href": "#si-4", "rel": "related"},
                                {"href": "#si-4", "rel": "related"},
                                {"href": "#ref-1", "rel": "reference"},
                            ],
                            "parts": [
                                _statement("ac-2", [
                                    _item("ac-2_smt.a", "a.", "Define allowed account types;"),
                                ]),
                                _guidance("ac-2", "Examples of system account types include individual and shared."),
                            ],
                            "controls": [
                                {
                                    "id": "ac-2.1",
                                    "class": "SP800-53-enhancement",
                                    "title": "Automated System Account Management",
                                    "parts": [
                                        {
                                            "id": "ac-2.1_smt",
                                            "name": "statement",
                                            "prose": "Support the management of system accounts using automated mechanisms.",
                                        },
                                    ],
                                },
                            ],
                        },
                        {
                            "id": "ac-10",
                            "class": "SP800-53",
                            "title": "Concurrent Session Control",
                            "parts": [
                                {"id": "ac-10_smt", "name": "statement", "prose": "Limit the number of concurrent sessions."},
                            ],
                        },
                        {
                            "id": "ac-9",
                            "class": "SP800-53",
                            "title": "Previous Logon Notification",
                        },
                    ],
                },
                {
                    "id": "si",
                    "class": "family",
                    "title": "System and Information Integrity",
                    "controls": [
                        {
                            "id": "si-4",
                            "class": "SP800-53",
                            "title": "System Monitoring",
                            "links": [{"href": "#ac-2", "rel": "related"}],
                        },
                    ],
                },
            ],
        }
    }


def _profile(ids: list[str]) -> dict:
    return {
        "profile": {
            "uuid": "00000000-0000-4000-8000-000000000001",
            "imports": [
                {
                    "href": "catalog.json",
                    "include-controls": [{"with-ids": ids}],
                },
            ],
        }
    }


@pytest.fixture
def profile_documents() -> dict[str, dict]:
    """LOW/MODERATE/HIGH profiles over the test catalog."""
    return {
        "low": _profile(["ac-1", "ac-2"]),
        "moderate": _profile(["ac-1", "ac-2", "ac-2.1", "si-4"]),
        "high": _profile(["ac-1", "ac-2", "ac-2.1", "ac-10", "si-4"]),
    }


@pytest.fixture
def tool_mapping_documents() -> list[dict]:
    return [
        {
            "toolId": "semgrep",
            "toolName": "Semgrep",
            "vendor": "Semgrep Inc.",
            "category": "SAST",
            "controlMappings": [
                {"controlId": "ac-2", "coverage": "partial", "rationale": "Detects hardcoded accounts"},
                {"controlId": "si-4", "coverage": "partial", "rationale": "Flags missing logging"},
            ],
        },
        {
            "toolId": "gitleaks",
            "toolName": "Gitleaks",
            "vendor": "Gitleaks",
            "category": "secrets",
            "controlMappings": [
                {"controlId": "AC-2", "coverage": "full", "rationale": "Finds leaked credentials"},
            ],
        },
    ]


@pytest.fixture
def tools_dir(tmp_path: Path, tool_mapping_documents: list[dict]) -> Path:
    directory = tmp_path / "tools"
    directory.mkdir()
    for doc in tool_mapping_documents:
        (directory / f"{doc['toolId']}.json").write_text(json.dumps(doc), encoding="utf-8")
    return directory


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """An empty project directory."""
    project = tmp_path / "test-project"
    project.mkdir()
    return project


@pytest.fixture
def raw_project(tmp_project: Path, catalog_document: dict, profile_documents: dict[str, dict]) -> Path:
    """A project whose raw sources and manifest are already in place."""
    raw = tmp_project / DEFAULT_CONFIG["paths"]["raw_dir"]
    raw.mkdir(parents=True)
    files = DEFAULT_CONFIG["source"]["files"]

    documents = {"catalog": catalog_document, **profile_documents}
    entries = []
    for key, document in documents.items():
        content = json.dumps(document)
        (raw / files[key]).write_text(content, encoding="utf-8")
        entries.append({
            "name": key,
            "filename": files[key],
            "url": f"https://example.test/{files[key]}",
            "checksum": "0" * 64,
            "size": len(content),
            "downloadedAt": "2026-01-01T00:00:00.000Z",
        })

    manifest = {
        "version": "1.0",
        "generatedAt": "2026-01-01T00:00:00.000Z",
        "source": "https://example.test",
        "files": entries,
    }
    (raw / "manifest.json").write_text(json.dumps(manifest), encoding="utf-8")
    return tmp_project
