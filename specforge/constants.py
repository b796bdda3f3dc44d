"""
Specforge Constants - Shared enumerations for spec payloads

Numeric codes match the values used by the spec service payloads, so raw
JSON/YAML loads straight into these enums.
"""

from __future__ import annotations

import re
from enum import IntEnum
from typing import Any


# ═══════════════════════════════════════════════════════════════════════════
# DOCUMENT TREE
# ═══════════════════════════════════════════════════════════════════════════


class NodeType(IntEnum):
    FILE = 0
    DIRECTORY = 1


class DataSource(IntEnum):
    """What a file node expands over"""

    NONE = 0
    INTERFACE = 1
    DATATYPE = 2
    TEMPLATE = 3
    WEBVIEW = 4
    HANDLEBAR = 5  # helper definitions, never written


# ═══════════════════════════════════════════════════════════════════════════
# DATA TYPES
# ═══════════════════════════════════════════════════════════════════════════


class DataFormat(IntEnum):
    HASH = 0
    ENUM = 1
    ARRAY = 2
    STRING = 3
    NUMBER = 4
    BOOLEAN = 5
    FILE = 6


class DatatypeKind(IntEnum):
    NORMAL = 0
    ANONYMOUS = 1  # inline types, never exposed as their own entity


class SystemType(IntEnum):
    """Built-in type ids referenced by parameters"""

    VARIABLE = 10000
    STRING = 10001
    NUMBER = 10002
    BOOLEAN = 10003
    FILE = 10004


SYSTEM_TYPE_NAMES: dict[SystemType, str] = {
    SystemType.VARIABLE: "Variable",
    SystemType.STRING: "String",
    SystemType.NUMBER: "Number",
    SystemType.BOOLEAN: "Boolean",
    SystemType.FILE: "File",
}

SYSTEM_TYPE_FORMATS: dict[SystemType, DataFormat] = {
    SystemType.VARIABLE: DataFormat.HASH,
    SystemType.STRING: DataFormat.STRING,
    SystemType.NUMBER: DataFormat.NUMBER,
    SystemType.BOOLEAN: DataFormat.BOOLEAN,
    SystemType.FILE: DataFormat.FILE,
}


# ═══════════════════════════════════════════════════════════════════════════
# GENERATION
# ═══════════════════════════════════════════════════════════════════════════


TEXT_MIME = re.compile(r"^(text/.+)|(application/json)$")

ENUM_FLAG = "!!enum"

IOS_SPEC_TYPE = "ios"

DEFAULT_MOCK_FILTER = "\n".join([
    "module.exports = function (json) {",
    "\treturn json;",
    "}",
])


def sandbox_constants() -> dict[str, Any]:
    """Constants exposed to templates as ``const``."""
    consts: dict[str, Any] = {}
    for enum in (NodeType, DataSource, DataFormat, DatatypeKind, SystemType):
        consts[enum.__name__] = {member.name: int(member) for member in enum}
    return consts
