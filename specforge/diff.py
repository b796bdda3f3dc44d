"""
Specforge Diff - Did interfaces or data types change since the last run?

Incremental runs persist a snapshot of the raw spec next to the engine config;
the next run compares against it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from specforge.spec import RawSpec

logger = logging.getLogger(__name__)

SNAPSHOT_FILE = "snapshot.json"


def _dump(items: list[Any]) -> list[dict[str, Any]]:
    return sorted((i.model_dump(mode="json") for i in items), key=lambda d: d.get("id") or 0)


@dataclass(frozen=True)
class SpecDiff:
    interface_changed: bool
    datatype_changed: bool

    @property
    def changed(self) -> bool:
        return self.interface_changed or self.datatype_changed

    @classmethod
    def compare(cls, previous: RawSpec | None, current: RawSpec) -> SpecDiff:
        """With no previous snapshot everything counts as changed."""
        if previous is None:
            return cls(interface_changed=True, datatype_changed=True)
        return cls(
            interface_changed=_dump(previous.interfaces) != _dump(current.interfaces),
            datatype_changed=_dump(previous.datatypes) != _dump(current.datatypes),
        )


def load_snapshot(path: Path) -> RawSpec | None:
    if not path.exists():
        return None
    try:
        return RawSpec.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as e:
        logger.warning("Ignoring unreadable spec snapshot %s: %s", path, e)
        return None


def snapshot_content(raw: RawSpec) -> str:
    return json.dumps(raw.model_dump(mode="json", by_alias=True), indent=4, ensure_ascii=False)
