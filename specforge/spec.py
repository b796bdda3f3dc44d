"""
Specforge Spec Models - Pydantic models for spec payloads

Two layers:
- Raw models mirror the exported spec payload (camelCase, numeric codes)
- Normalized models are what templates see: resolved type names, array
  dimensions, and only the templates that pages actually use
"""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath
from typing import Any

import yaml
from pydantic import BaseModel, Field as PydanticField

from specforge.constants import (
    SYSTEM_TYPE_FORMATS,
    SYSTEM_TYPE_NAMES,
    TEXT_MIME,
    DataFormat,
    DataSource,
    DatatypeKind,
    NodeType,
    SystemType,
)
from specforge.helpers import pascal_case


# ═══════════════════════════════════════════════════════════════════════════
# DOCUMENT TREE
# ═══════════════════════════════════════════════════════════════════════════


class DocNode(BaseModel):
    """Directory or file in the spec's document tree"""

    id: int | None = None
    type: NodeType = NodeType.FILE
    name: str = ""
    mime: str | None = "text/plain"
    data_source: DataSource = PydanticField(DataSource.NONE, alias="dataSource")
    content: str | None = ""
    description: str | None = None
    children: list[DocNode] = []

    model_config = {"populate_by_name": True}

    @property
    def is_directory(self) -> bool:
        return self.type == NodeType.DIRECTORY

    @property
    def is_text(self) -> bool:
        return self.mime is None or bool(TEXT_MIME.search(self.mime))


class SpecAttributes(BaseModel):
    """Ids of the directory nodes that act as well-known roots"""

    web_root: int | None = PydanticField(None, alias="webRoot")
    view_root: int | None = PydanticField(None, alias="viewRoot")
    mock_api_root: int | None = PydanticField(None, alias="mockApiRoot")
    mock_view_root: int | None = PydanticField(None, alias="mockViewRoot")

    model_config = {"populate_by_name": True}


class SpecMeta(BaseModel):
    id: int | None = None
    name: str = ""
    description: str | None = None
    engine: str | None = None
    view_ext: str | None = PydanticField(None, alias="viewExt")
    attributes: SpecAttributes | None = None

    model_config = {"populate_by_name": True}


class SpecDefinition(BaseModel):
    spec: SpecMeta = SpecMeta()
    docs: list[DocNode] = []


class ProjectMeta(BaseModel):
    id: int | None = None
    name: str = ""
    description: str | None = None


# ═══════════════════════════════════════════════════════════════════════════
# RAW ENTITIES
# ═══════════════════════════════════════════════════════════════════════════


class Parameter(BaseModel):
    id: int | None = None
    name: str
    type: int = SystemType.STRING
    type_name: str | None = PydanticField(None, alias="typeName")
    is_array: bool = PydanticField(False, alias="isArray")
    description: str | None = ""
    default_value: str | None = PydanticField(None, alias="defaultValue")
    gen_expression: str | None = PydanticField(None, alias="genExpression")

    model_config = {"populate_by_name": True}


class InterfaceParams(BaseModel):
    inputs: list[Parameter] = []
    outputs: list[Parameter] = []


class RawInterface(BaseModel):
    id: int
    name: str
    description: str | None = ""
    method: str = "GET"
    path: str
    res_format: DataFormat = PydanticField(DataFormat.HASH, alias="resFormat")
    params: InterfaceParams = InterfaceParams()
    before_script: str | None = PydanticField(None, alias="beforeScript")
    after_script: str | None = PydanticField(None, alias="afterScript")

    model_config = {"populate_by_name": True}


class RawDatatype(BaseModel):
    id: int
    name: str
    description: str | None = ""
    format: DataFormat = DataFormat.HASH
    type: DatatypeKind = DatatypeKind.NORMAL
    params: list[Parameter] = []


class RawTemplate(BaseModel):
    id: int
    name: str
    path: str
    description: str | None = ""
    params: list[Parameter] = []


class TemplateRef(BaseModel):
    id: int
    path: str | None = None


class RawPage(BaseModel):
    id: int
    name: str
    path: str | None = None
    description: str | None = ""
    templates: list[TemplateRef] = []


class Constraint(BaseModel):
    id: int | None = None
    name: str
    function: str | None = None
    description: str | None = ""


# ═══════════════════════════════════════════════════════════════════════════
# RAW SPEC
# ═══════════════════════════════════════════════════════════════════════════


class RawSpec(BaseModel):
    """Spec payload as exported by the spec service"""

    project: ProjectMeta = ProjectMeta()
    specs: list[SpecDefinition] = PydanticField(..., min_length=1)
    interfaces: list[RawInterface] = []
    datatypes: list[RawDatatype] = []
    templates: list[RawTemplate] = []
    pages: list[RawPage] = []
    constraints: list[Constraint] = []

    @property
    def definition(self) -> SpecDefinition:
        return self.specs[0]

    @classmethod
    def from_yaml(cls, content: str) -> RawSpec:
        """Parse YAML (or JSON, which is valid YAML) into a RawSpec"""
        return cls.model_validate(yaml.safe_load(content))

    @classmethod
    def from_file(cls, path: str | Path) -> RawSpec:
        path = Path(path)
        content = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            return cls.model_validate(json.loads(content))
        return cls.from_yaml(content)


# ═══════════════════════════════════════════════════════════════════════════
# NORMALIZED ENTITIES
# ═══════════════════════════════════════════════════════════════════════════


class Field(BaseModel):
    """Parameter with its type resolved to a name"""

    name: str
    type: str
    type_id: int | None = None
    format: DataFormat = DataFormat.STRING
    arr_dim: int = 0
    item_is_array: bool = False
    description: str | None = ""
    default_value: str | None = None
    gen_expression: str | None = None


class Interface(BaseModel):
    id: int
    name: str
    class_name: str
    description: str | None = ""
    method: str
    path: str
    res_format: DataFormat = DataFormat.HASH
    inputs: list[Field] = []
    outputs: list[Field] = []
    before_script: str | None = None
    after_script: str | None = None


class DataType(BaseModel):
    id: int
    name: str
    description: str | None = ""
    format: DataFormat = DataFormat.HASH
    fields: list[Field] = []

    @property
    def is_enum(self) -> bool:
        return self.format == DataFormat.ENUM


class Template(BaseModel):
    id: int
    name: str
    path: str
    description: str | None = ""
    params: list[Field] = []


class Page(BaseModel):
    id: int
    name: str
    path: str | None = None
    description: str | None = ""
    templates: list[Template] = []


class NormalizedSpec(BaseModel):
    """Everything the generation engine reads, resolved and typed"""

    project: ProjectMeta
    spec: SpecMeta
    docs: list[DocNode] = []
    interfaces: list[Interface] = []
    datatypes: list[DataType] = []
    templates: list[Template] = []
    pages: list[Page] = []
    constraints: list[Constraint] = []
    datatype_enums: list[DataType] = []


# ═══════════════════════════════════════════════════════════════════════════
# NORMALIZATION
# ═══════════════════════════════════════════════════════════════════════════


def _resolve_field(
    param: Parameter,
    datatypes: dict[int, RawDatatype],
    seen: frozenset[int] = frozenset(),
) -> Field:
    arr_dim = 1 if param.is_array else 0
    type_id = param.type

    if type_id in SYSTEM_TYPE_NAMES:
        system = SystemType(type_id)
        type_label = SYSTEM_TYPE_NAMES[system]
        fmt = SYSTEM_TYPE_FORMATS[system]
    elif type_id in datatypes:
        datatype = datatypes[type_id]
        type_label = datatype.name
        fmt = datatype.format
        # Array datatypes wrap a single element parameter
        if datatype.format == DataFormat.ARRAY and datatype.params and type_id not in seen:
            element = _resolve_field(datatype.params[0], datatypes, seen | {type_id})
            type_label = element.type
            fmt = element.format
            arr_dim += 1 + element.arr_dim
    else:
        type_label = param.type_name or "Object"
        fmt = DataFormat.HASH

    return Field(
        name=param.name,
        type=type_label,
        type_id=type_id,
        format=fmt,
        arr_dim=arr_dim,
        item_is_array=param.is_array,
        description=param.description,
        default_value=param.default_value,
        gen_expression=param.gen_expression,
    )


def _with_view_ext(path: str, view_ext: str | None) -> str:
    if view_ext and not PurePosixPath(path).suffix:
        return f"{path}.{view_ext}"
    return path


def normalize(raw: RawSpec) -> NormalizedSpec:
    """Convert a raw payload into the entities templates are rendered with."""
    definition = raw.definition
    by_id = {d.id: d for d in raw.datatypes}

    def fields(params: list[Parameter]) -> list[Field]:
        return [_resolve_field(p, by_id) for p in params]

    interfaces = [
        Interface(
            id=itf.id,
            name=itf.name,
            class_name=pascal_case(itf.name),
            description=itf.description,
            method=itf.method.upper(),
            path=itf.path,
            res_format=itf.res_format,
            inputs=fields(itf.params.inputs),
            outputs=fields(itf.params.outputs),
            before_script=itf.before_script,
            after_script=itf.after_script,
        )
        for itf in raw.interfaces
    ]

    datatypes = [
        DataType(
            id=dt.id,
            name=dt.name,
            description=dt.description,
            format=dt.format,
            fields=fields(dt.params),
        )
        for dt in raw.datatypes
        if dt.type == DatatypeKind.NORMAL
    ]

    view_ext = definition.spec.view_ext
    raw_templates = {t.id: t for t in raw.templates}
    templates: dict[int, Template] = {}
    pages: list[Page] = []

    for page in raw.pages:
        bound: list[Template] = []
        for ref in page.templates:
            tpl = raw_templates.get(ref.id)
            if tpl is None:
                continue
            if tpl.id not in templates:
                templates[tpl.id] = Template(
                    id=tpl.id,
                    name=tpl.name,
                    path=_with_view_ext(tpl.path, view_ext),
                    description=tpl.description,
                    params=fields(tpl.params),
                )
            bound.append(templates[tpl.id])
        pages.append(Page(
            id=page.id,
            name=page.name,
            path=page.path,
            description=page.description,
            templates=bound,
        ))

    return NormalizedSpec(
        project=raw.project,
        spec=definition.spec,
        docs=definition.docs,
        interfaces=interfaces,
        datatypes=datatypes,
        templates=list(templates.values()),
        pages=pages,
        constraints=raw.constraints,
        datatype_enums=[dt for dt in datatypes if dt.is_enum],
    )
