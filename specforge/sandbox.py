"""
Specforge Sandbox - Isolated template compilation for one generation run

Spec authors ship helper logic as HANDLEBAR-sourced file nodes whose content
is a Jinja2 template of ``{% macro %}`` / ``{% set %}`` definitions. These are
evaluated once in an immutable sandboxed environment and their exports become
globals and filters for every template compiled afterwards.

Template and helper failures never escape: they are logged, recorded on
``Sandbox.errors`` and reported to the caller as "nothing produced".
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from jinja2 import ChainableUndefined, Template
from jinja2.runtime import Macro
from jinja2.sandbox import ImmutableSandboxedEnvironment
from pydantic import BaseModel

from specforge.constants import DataSource, sandbox_constants
from specforge.helpers import BUILTIN_FILTERS, type_name
from specforge.spec import DocNode

logger = logging.getLogger(__name__)


class SpecSandboxEnvironment(ImmutableSandboxedEnvironment):
    """Immutable sandbox that also hides pydantic's model API from templates."""

    def is_safe_attribute(self, obj: Any, attr: str, value: Any) -> bool:
        if isinstance(obj, BaseModel) and attr.startswith("model_"):
            return False
        return super().is_safe_attribute(obj, attr, value)


def collect_helper_nodes(nodes: Iterable[DocNode]) -> list[DocNode]:
    """HANDLEBAR file nodes in depth-first tree order."""
    found: list[DocNode] = []
    for node in nodes:
        if node.is_directory:
            found.extend(collect_helper_nodes(node.children))
        elif node.data_source == DataSource.HANDLEBAR:
            found.append(node)
    return found


class Sandbox:
    """
    Compilation environment owned by a single Builder run.

    Never share an instance between runs: helpers registered by one spec
    must not leak into another.
    """

    def __init__(self, constants: dict[str, Any] | None = None):
        self.env = SpecSandboxEnvironment(
            autoescape=False,
            keep_trailing_newline=True,
            undefined=ChainableUndefined,
        )
        self.env.filters.update(BUILTIN_FILTERS)
        self.env.globals["const"] = constants if constants is not None else sandbox_constants()
        self.env.globals["type_name"] = type_name
        # Engine-provided names helpers may not replace
        self.reserved = set(self.env.globals) | set(self.env.filters)

        self.helpers: list[str] = []
        self.errors: list[str] = []
        self._templates: dict[str, Template] = {}

    def _record(self, message: str) -> None:
        logger.error(message)
        self.errors.append(message)

    def register_helpers(self, nodes: Iterable[DocNode]) -> list[str]:
        """
        Evaluate every helper node under ``nodes`` and register its exports.

        Returns the names registered. A helper that fails to evaluate is
        skipped as a whole; later helpers still register.
        """
        registered: list[str] = []
        for node in collect_helper_nodes(nodes):
            try:
                module = self.env.from_string(node.content or "").make_module()
            except Exception as e:
                self._record(f"Helper {node.name} contains errors: {e}")
                continue

            for name, value in vars(module).items():
                if name.startswith("_"):
                    continue
                if name in self.reserved:
                    logger.warning("Helper %s cannot redefine built-in %s, ignored", node.name, name)
                    continue
                self.env.globals[name] = value
                if isinstance(value, Macro):
                    self.env.filters[name] = value
                registered.append(name)

            logger.debug("Registered helper file %s", node.name)

        self.helpers.extend(registered)
        return registered

    def compile(self, source: str | None, context: dict[str, Any]) -> str | None:
        """Render ``source`` against ``context``; ``None`` when it fails."""
        source = source or ""
        try:
            template = self._templates.get(source)
            if template is None:
                template = self.env.from_string(source)
                self._templates[source] = template
            return template.render(context)
        except Exception as e:
            self._record(f"Failed to render template {source[:60]!r}: {e}")
            return None
