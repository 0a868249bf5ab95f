"""Parameter Protocol: typed parameter keys of the form ``<widget>:<name>``.

A plugin declares parameter groups (dicts with a ``header`` and typed keys).
The value stored under a typed key in the declaration is the widget's
default or choice list:

- ``string:`` / ``file:`` default text
- ``number:`` default number
- ``bool:`` default boolean
- ``dropdown:`` list of options, exactly one is chosen
- ``multichoice:`` list of options, any subset is chosen
- ``slider:`` ``[min, max, step, initial]``

Requests send groups with the same typed keys holding the chosen values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from jsonschema import Draft7Validator

from .errors import InvalidParameter

HEADER_KEY = "header"

STRING = "string"
NUMBER = "number"
BOOL = "bool"
FILE = "file"
DROPDOWN = "dropdown"
MULTICHOICE = "multichoice"
SLIDER = "slider"

WIDGETS = (STRING, NUMBER, DROPDOWN, MULTICHOICE, BOOL, FILE, SLIDER)


@dataclass(frozen=True)
class ParameterDecl:
    key: str
    widget: str
    name: str
    declared: Any
    group: str


def split_key(key: str) -> tuple[str, str]:
    widget, sep, name = str(key).partition(":")
    widget = widget.strip().lower()
    if not sep or widget not in WIDGETS or not name.strip():
        raise InvalidParameter(str(key), "expected '<widget>:<name>' with a known widget")
    return widget, name.strip()


def declarations(groups: Iterable[dict[str, Any]]) -> list[ParameterDecl]:
    decls: list[ParameterDecl] = []
    seen: set[str] = set()
    for group in groups:
        header = str(group.get(HEADER_KEY, ""))
        for key, declared in group.items():
            if key == HEADER_KEY:
                continue
            widget, name = split_key(key)
            if name in seen:
                raise InvalidParameter(name, "declared more than once")
            seen.add(name)
            decls.append(ParameterDecl(key, widget, name, declared, header))
    return decls


def _slider_bounds(decl: ParameterDecl) -> tuple[float, float, float, float]:
    values = decl.declared
    if not isinstance(values, (list, tuple)) or len(values) != 4:
        raise InvalidParameter(decl.name, "slider declaration must be [min, max, step, initial]")
    low, high, step, initial = (float(v) for v in values)
    return low, high, step, initial


def _check_slider_step(decl: ParameterDecl, value: float) -> None:
    low, _, step, _ = _slider_bounds(decl)
    if step <= 0:
        return
    offset = (value - low) / step
    if abs(offset - round(offset)) > 1e-6:
        raise InvalidParameter(decl.name, f"{value} is not on a step of {step} from {low}")


def _value_schema(decl: ParameterDecl) -> dict[str, Any]:
    if decl.widget in (STRING, FILE):
        return {"type": "string"}
    if decl.widget == NUMBER:
        return {"type": "number"}
    if decl.widget == BOOL:
        return {"type": "boolean"}
    if decl.widget == DROPDOWN:
        schema: dict[str, Any] = {"type": "string"}
        if decl.declared:
            schema["enum"] = [str(option) for option in decl.declared]
        return schema
    if decl.widget == MULTICHOICE:
        items: dict[str, Any] = {"type": "string"}
        if decl.declared:
            items["enum"] = [str(option) for option in decl.declared]
        return {"type": "array", "items": items, "uniqueItems": True}
    low, high, _, _ = _slider_bounds(decl)
    return {"type": "number", "minimum": low, "maximum": high}


def parameter_json_schema(groups: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """JSON schema accepting a flattened {name: value} mapping for `groups`."""

    decls = declarations(groups)
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {decl.name: _value_schema(decl) for decl in decls},
    }


def default_value(decl: ParameterDecl) -> Any:
    if decl.widget == DROPDOWN:
        options = list(decl.declared or [])
        if not options:
            raise InvalidParameter(decl.name, "no value given and no options declared")
        return str(options[0])
    if decl.widget == MULTICHOICE:
        return []
    if decl.widget == SLIDER:
        return _slider_bounds(decl)[3]
    return decl.declared


def _flatten_request(
    decls: list[ParameterDecl], request_groups: Iterable[dict[str, Any]]
) -> dict[str, Any]:
    by_name = {decl.name: decl for decl in decls}
    values: dict[str, Any] = {}
    for group in request_groups or []:
        if not isinstance(group, dict):
            raise InvalidParameter("<group>", "parameter groups must be objects")
        for key, value in group.items():
            if key == HEADER_KEY:
                continue
            widget, name = split_key(key)
            decl = by_name.get(name)
            if decl is None:
                raise InvalidParameter(name, "not declared by this plugin")
            if decl.widget != widget:
                raise InvalidParameter(name, f"expected widget '{decl.widget}', got '{widget}'")
            values[name] = value
    return values


def parse_parameters(
    groups: Iterable[dict[str, Any]], request_groups: Iterable[dict[str, Any]] | None
) -> dict[str, Any]:
    """Validate requested values against declared groups.

    Returns a {name: value} mapping with defaults filled in for every
    declared parameter the request leaves out.
    """

    groups = list(groups)
    decls = declarations(groups)
    values = _flatten_request(decls, request_groups or [])
    validator = Draft7Validator(parameter_json_schema(groups))
    errors = sorted(validator.iter_errors(values), key=lambda e: [str(p) for p in e.path])
    if errors:
        first = errors[0]
        name = str(first.path[0]) if first.path else "<parameters>"
        raise InvalidParameter(name, first.message)
    resolved: dict[str, Any] = {}
    for decl in decls:
        if decl.name in values:
            value = values[decl.name]
            if decl.widget in (NUMBER, SLIDER):
                value = float(value)
                if decl.widget == SLIDER:
                    _check_slider_step(decl, value)
            elif decl.widget == MULTICHOICE:
                value = [str(item) for item in value]
            resolved[decl.name] = value
        else:
            resolved[decl.name] = default_value(decl)
    return resolved
