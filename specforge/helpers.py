"""
Specforge Helpers - Built-in filters available to every spec template

Spec-authored helpers are registered on top of these at run time
(see specforge.sandbox).
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable

import yaml
from jinja2 import pass_context
from jinja2.runtime import Context
from pydantic import BaseModel

from specforge.constants import DataFormat


# ═══════════════════════════════════════════════════════════════════════════
# CASE HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def camel_case(s: str) -> str:
    """Convert to camelCase. Handles PascalCase input correctly."""
    s = re.sub(r"([a-z])([A-Z])", r"\1_\2", s)
    parts = s.replace("-", "_").split("_")
    return parts[0].lower() + "".join(p.capitalize() for p in parts[1:])


def pascal_case(s: str) -> str:
    """Convert to PascalCase."""
    parts = re.split(r"[-_\s]+", s)
    return "".join(p[0].upper() + p[1:] for p in parts if p)


def snake_case(s: str) -> str:
    s = re.sub(r"([A-Z])", r"_\1", s).lower()
    return s.lstrip("_").replace("-", "_")


def kebab_case(s: str) -> str:
    s = re.sub(r"[\s_]+", "-", s)
    s = re.sub(r"([a-z])([A-Z])", r"\1-\2", s).lower()
    s = re.sub(r"-+", "-", s)
    return s.strip("-")


def plural(s: str) -> str:
    """Simple English pluralization."""
    if s.endswith("y") and not s.endswith(("ay", "ey", "iy", "oy", "uy")):
        return s[:-1] + "ies"
    if s.endswith(("s", "x", "ch", "sh")):
        return s + "es"
    return s + "s"


def singular(s: str) -> str:
    if s.endswith("ies"):
        return s[:-3] + "y"
    if s.endswith("es"):
        return s[:-2]
    if s.endswith("s"):
        return s[:-1]
    return s


def upper_first(s: str) -> str:
    return s[:1].upper() + s[1:]


def lower_first(s: str) -> str:
    return s[:1].lower() + s[1:]


def hyphen_to_underline(s: str) -> str:
    """a---b-c -> a_b_c"""
    return "_".join(re.split(r"-+", s))


def hyphen_to_camel(s: str) -> str:
    """a-b-c -> ABC"""
    return "".join(upper_first(part) for part in s.split("-"))


def camel_to_hyphen(s: str) -> str:
    """AbcDefGhi -> abc-def-ghi"""
    return "-".join(part.lower() for part in re.findall(r"[A-Z][^A-Z]*", s))


# ═══════════════════════════════════════════════════════════════════════════
# TEXT HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def extname(s: str) -> str:
    """Everything after the last dot, or the whole string if there is none."""
    return s[s.rfind(".") + 1:]


def no_line_break(s: str, sep: str = ",") -> str:
    return s.replace("\n", sep)


def prettify_comment(s: str) -> str:
    """Prefix every line with ' * ' for block comments."""
    return " * " + "\n * ".join(s.split("\n"))


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any, indent: int | str = "\t") -> str:
    return json.dumps(value, indent=indent, ensure_ascii=False, default=_jsonable)


def to_yaml(value: Any) -> str:
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    return yaml.dump(value, default_flow_style=False, allow_unicode=True)


# ═══════════════════════════════════════════════════════════════════════════
# TYPE HELPERS
# ═══════════════════════════════════════════════════════════════════════════


def _attr(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def type_name(
    model: Any = None,
    use_list: bool = False,
    name: str | None = None,
    arr_dim: int | None = None,
) -> str:
    """
    Type name of a field, wrapped for its array dimensions.

    ``{{ field | type_name }}`` gives ``String[][]`` for a two-dimensional
    array, ``{{ field | type_name(use_list=True) }}`` gives
    ``List<List<String>>``. The parts can also be passed directly:
    ``{{ type_name(name=datatype.name, arr_dim=1) }}``.
    """
    if model is not None:
        name = _attr(model, "type")
        arr_dim = _attr(model, "arr_dim")

    if not arr_dim:
        return name or ""

    if use_list:
        return "List<" * arr_dim + (name or "") + ">" * arr_dim
    return (name or "") + "[]" * arr_dim


def _ios_property_line(field: Any, prefix: str, has_prefix: bool) -> str:
    fmt = _attr(field, "format")
    star = True
    ref = "strong"
    if not _attr(field, "item_is_array"):
        if fmt in (DataFormat.NUMBER, DataFormat.BOOLEAN):
            star, ref = False, "assign"
        elif fmt == DataFormat.STRING:
            ref = "copy"

    field_type = _attr(field, "type")
    if fmt == DataFormat.HASH and has_prefix:
        field_type = prefix + field_type

    header = f"/**\n *  {_attr(field, 'description', '')}\n */\n"
    return f"{header}@property (nonatomic, {ref}) {field_type} {'*' if star else ''}{_attr(field, 'name')};"


@pass_context
def ios_property(context: Context, datatype: Any, has_prefix: bool = False) -> str:
    """Objective-C property declarations for a data type or a list of fields."""
    prefix = _attr(context.get("args"), "prefix") or ""
    fields = datatype if isinstance(datatype, (list, tuple)) else _attr(datatype, "fields", [])
    return "\n".join(_ios_property_line(f, prefix, has_prefix) for f in fields)


# ═══════════════════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════════════════


BUILTIN_FILTERS: dict[str, Callable[..., Any]] = {
    # String transformation
    "camel_case": camel_case,
    "pascal_case": pascal_case,
    "snake_case": snake_case,
    "kebab_case": kebab_case,
    "plural": plural,
    "singular": singular,
    "upper_first": upper_first,
    "lower_first": lower_first,
    "hyphen_to_underline": hyphen_to_underline,
    "hyphen_to_camel": hyphen_to_camel,
    "camel_to_hyphen": camel_to_hyphen,
    # Text
    "extname": extname,
    "no_line_break": no_line_break,
    "prettify_comment": prettify_comment,
    "quote": lambda x: f"'{x}'",
    "dquote": lambda x: f'"{x}"',
    # Serialization
    "to_json": to_json,
    "to_yaml": to_yaml,
    # Types
    "type_name": type_name,
    "ios_property": ios_property,
}
