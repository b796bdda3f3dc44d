"""
Specforge Mock Data - Default payloads for mock interfaces and views

Values are deterministic: declared defaults where present, otherwise a
placeholder derived from the parameter type. Problems are reported in
``MockResult.errors`` and never raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from specforge.constants import DataFormat, SystemType
from specforge.spec import Constraint, Parameter, RawDatatype, RawInterface


@dataclass
class MockResult:
    json: Any = None
    errors: list[str] = field(default_factory=list)


class MockDataProvider(Protocol):
    def synthesize(
        self,
        constraints: list[Constraint],
        res_format: DataFormat,
        params: list[Parameter],
        datatypes: list[RawDatatype],
    ) -> MockResult: ...

    def apply_script(
        self,
        constraints: list[Constraint],
        json: Any,
        interface: RawInterface,
    ) -> MockResult: ...


def _coerce(value: str, fmt: DataFormat) -> Any:
    if fmt == DataFormat.NUMBER:
        try:
            number = float(value)
        except ValueError:
            return 0
        return int(number) if number.is_integer() else number
    if fmt == DataFormat.BOOLEAN:
        return value.strip().lower() == "true"
    return value


_SYSTEM_FORMATS = {
    SystemType.STRING: DataFormat.STRING,
    SystemType.NUMBER: DataFormat.NUMBER,
    SystemType.BOOLEAN: DataFormat.BOOLEAN,
    SystemType.FILE: DataFormat.FILE,
    SystemType.VARIABLE: DataFormat.HASH,
}


class ParameterMockData:
    """Builds mock JSON by walking parameter schemas."""

    def synthesize(
        self,
        constraints: list[Constraint],
        res_format: DataFormat,
        params: list[Parameter],
        datatypes: list[RawDatatype],
    ) -> MockResult:
        result = MockResult()
        by_id = {d.id: d for d in datatypes}

        if res_format == DataFormat.HASH:
            result.json = {p.name: self._param_value(p, by_id, frozenset(), result) for p in params}
        elif params:
            result.json = self._param_value(params[0], by_id, frozenset(), result)
        return result

    def apply_script(
        self,
        constraints: list[Constraint],
        json: Any,
        interface: RawInterface,
    ) -> MockResult:
        """
        Check the interface's after-script against known constraints.

        Scripts run inside the mock server at request time, so the JSON is
        returned unchanged.
        """
        result = MockResult(json=json)
        script = interface.after_script
        if script and not any(c.name == script for c in constraints):
            result.errors.append(f"Interface {interface.name}: unknown after-script constraint {script}")
        return result

    # ------------------------------------------------------------------

    def _param_value(
        self,
        param: Parameter,
        datatypes: dict[int, RawDatatype],
        seen: frozenset[int],
        result: MockResult,
    ) -> Any:
        value = self._type_value(param, datatypes, seen, result)
        return [value] if param.is_array else value

    def _type_value(
        self,
        param: Parameter,
        datatypes: dict[int, RawDatatype],
        seen: frozenset[int],
        result: MockResult,
    ) -> Any:
        if param.type in _SYSTEM_FORMATS:
            fmt = _SYSTEM_FORMATS[SystemType(param.type)]
            if param.default_value is not None:
                return _coerce(param.default_value, fmt)
            return self._placeholder(param, fmt)

        datatype = datatypes.get(param.type)
        if datatype is None:
            result.errors.append(f"Parameter {param.name} references unknown type {param.type}")
            return None
        if datatype.id in seen:
            result.errors.append(f"Circular reference to {datatype.name} in parameter {param.name}")
            return None
        seen = seen | {datatype.id}

        if datatype.format == DataFormat.HASH:
            return {p.name: self._param_value(p, datatypes, seen, result) for p in datatype.params}
        if datatype.format == DataFormat.ENUM:
            member = datatype.params[0] if datatype.params else None
            if member is None or member.default_value is None:
                return None
            return _coerce(member.default_value, _SYSTEM_FORMATS.get(member.type, DataFormat.STRING))
        if datatype.format == DataFormat.ARRAY:
            if not datatype.params:
                return []
            return [self._param_value(datatype.params[0], datatypes, seen, result)]
        if datatype.params:
            return self._param_value(datatype.params[0], datatypes, seen, result)
        return self._placeholder(param, datatype.format)

    @staticmethod
    def _placeholder(param: Parameter, fmt: DataFormat) -> Any:
        if fmt == DataFormat.STRING:
            return param.name
        if fmt == DataFormat.NUMBER:
            return 0
        if fmt == DataFormat.BOOLEAN:
            return True
        if fmt == DataFormat.FILE:
            return ""
        return None
