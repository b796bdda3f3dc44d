"""Shared pytest fixtures for the specforge test suite.

Provides reusable fixtures for:
- A complete sample spec payload (docs tree, interfaces, data types, pages)
- Output directories
- A file system that records downloads and purges instead of hitting the network
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from specforge.fs import LocalFileSystem
from specforge.spec import RawSpec, normalize


# ---------------------------------------------------------------------------
# File system
# ---------------------------------------------------------------------------


class RecordingFileSystem(LocalFileSystem):
    """Local disk, except downloads write an empty file and every call is logged."""

    def __init__(self) -> None:
        super().__init__()
        self.downloads: list[tuple[str, Path]] = []
        self.removed: list[Path] = []

    def rmdir(self, path) -> None:
        self.removed.append(Path(path))
        super().rmdir(path)

    def download(self, url: str, path) -> None:
        path = Path(path)
        self.downloads.append((url, path))
        path.write_bytes(b"")


@pytest.fixture
def fs() -> RecordingFileSystem:
    return RecordingFileSystem()


@pytest.fixture
def make_fs():
    """Factory for fresh file systems, one per generation run."""
    return RecordingFileSystem


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Output root for generated projects (auto-cleanup)."""
    out = tmp_path / "out"
    out.mkdir()
    return out


# ---------------------------------------------------------------------------
# Spec payloads
# ---------------------------------------------------------------------------


SAMPLE_SPEC: dict[str, Any] = {
    "project": {"id": 11, "name": "Shop", "description": "Demo shop"},
    "specs": [
        {
            "spec": {
                "id": 1,
                "name": "web",
                "engine": "freemarker",
                "viewExt": "ftl",
                "attributes": {
                    "webRoot": 101,
                    "viewRoot": 102,
                    "mockApiRoot": 103,
                    "mockViewRoot": 104,
                },
            },
            "docs": [
                {
                    "id": 100,
                    "type": 1,
                    "name": "src",
                    "children": [
                        {
                            "id": 101,
                            "type": 1,
                            "name": "web",
                            "children": [
                                {
                                    "id": 110,
                                    "type": 0,
                                    "name": "README.md",
                                    "mime": "text/markdown",
                                    "content": "# {{ project.name }} at {{ config.web_root }}",
                                },
                            ],
                        },
                        {
                            "id": 102,
                            "type": 1,
                            "name": "views",
                            "children": [
                                {
                                    "id": 120,
                                    "type": 0,
                                    "name": "{{ template.path }}",
                                    "dataSource": 3,
                                    "content": "<h1>{{ template.name }}</h1>",
                                },
                            ],
                        },
                        {
                            "id": 105,
                            "type": 1,
                            "name": "api",
                            "children": [
                                {
                                    "id": 130,
                                    "type": 0,
                                    "name": "{{ interface.class_name }}.js",
                                    "dataSource": 1,
                                    "content": "// {{ interface.method }} {{ interface.path }}",
                                },
                            ],
                        },
                        {
                            "id": 106,
                            "type": 1,
                            "name": "models",
                            "children": [
                                {
                                    "id": 140,
                                    "type": 0,
                                    "name": "{{ datatype.name }}.ts",
                                    "dataSource": 2,
                                    "content": (
                                        "export interface {{ datatype.name }} {\n"
                                        "{% for f in datatype.fields %}"
                                        "  {{ f.name }}: {{ f | type_name }}\n"
                                        "{% endfor %}}\n"
                                    ),
                                },
                                {
                                    "id": 141,
                                    "type": 0,
                                    "name": "enums/{{ datatype.name }}!!enum.ts",
                                    "dataSource": 2,
                                    "content": "export enum {{ datatype.name }} {}",
                                },
                            ],
                        },
                    ],
                },
                {"id": 103, "type": 1, "name": "mock/api", "children": []},
                {"id": 104, "type": 1, "name": "mock/views", "children": []},
                {
                    "id": 150,
                    "type": 0,
                    "name": "helpers.j2",
                    "dataSource": 5,
                    "content": "{% macro shout(s) %}{{ s | upper }}!{% endmacro %}",
                },
                {
                    "id": 160,
                    "type": 0,
                    "name": "pages/{{ view.name | kebab_case }}.md",
                    "dataSource": 4,
                    "content": "{{ view.name | shout }}",
                },
                {
                    "id": 170,
                    "type": 0,
                    "name": "logo.png",
                    "mime": "image/png",
                    "content": "https://assets.example.com/logo.png",
                },
            ],
        }
    ],
    "interfaces": [
        {
            "id": 1,
            "name": "get-user",
            "method": "get",
            "path": "/api/user/:id",
            "params": {
                "inputs": [{"name": "id", "type": 10002}],
                "outputs": [{"name": "user", "type": 201}],
            },
        },
        {
            "id": 2,
            "name": "list-orders",
            "method": "POST",
            "path": "/api/orders",
            "params": {
                "outputs": [
                    {"name": "orders", "type": 202, "isArray": True},
                    {"name": "total", "type": 10002},
                ],
            },
        },
    ],
    "datatypes": [
        {
            "id": 201,
            "name": "User",
            "params": [
                {"name": "name", "type": 10001},
                {"name": "age", "type": 10002},
                {"name": "status", "type": 203},
            ],
        },
        {
            "id": 202,
            "name": "Order",
            "params": [
                {"name": "no", "type": 10001, "defaultValue": "A-1"},
                {"name": "paid", "type": 10003},
            ],
        },
        {
            "id": 203,
            "name": "Status",
            "format": 1,
            "params": [
                {"name": "ACTIVE", "type": 10002, "defaultValue": "1"},
                {"name": "BANNED", "type": 10002, "defaultValue": "2"},
            ],
        },
        {"id": 204, "name": "Inline", "type": 1, "params": []},
    ],
    "templates": [
        {
            "id": 301,
            "name": "Home",
            "path": "home/index",
            "description": "Landing page",
            "params": [{"name": "banner", "type": 10001}],
        },
        {"id": 302, "name": "Unused", "path": "unused.ftl"},
    ],
    "pages": [
        {"id": 401, "name": "Home Page", "path": "/index", "templates": [{"id": 301}]},
    ],
    "constraints": [],
}


@pytest.fixture
def sample_spec() -> dict[str, Any]:
    """A deep copy of the sample payload, safe to modify per test."""
    return copy.deepcopy(SAMPLE_SPEC)


@pytest.fixture
def raw_spec(sample_spec) -> RawSpec:
    return RawSpec.model_validate(sample_spec)


@pytest.fixture
def normalized(raw_spec):
    return normalize(raw_spec)


@pytest.fixture
def spec_file(tmp_path: Path, sample_spec) -> Path:
    """Sample payload written to disk as JSON."""
    path = tmp_path / "spec.json"
    path.write_text(json.dumps(sample_spec), encoding="utf-8")
    return path
