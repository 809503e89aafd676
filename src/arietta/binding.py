"""Request body binding for JSON and XML payloads.

Destinations are pydantic models, or ``list[Model]`` for array payloads.
Each model's :func:`schema_for` lists its fields with their wire name
and whether they are required.  Required-field checks run against the
decoded payload before the model is built.  A missing key and an
explicit ``null`` are both reported as absent.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, get_args, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

from arietta.errors import BindingError

if TYPE_CHECKING:
    from arietta.request import Request

T = TypeVar("T")


class Binding(Protocol):
    """Decodes a request body into a destination type."""

    name: str

    def bind(self, request: Request, destination: type[T]) -> T: ...


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    wire_name: str
    required: bool


@lru_cache(maxsize=None)
def schema_for(model: type[BaseModel]) -> tuple[FieldSpec, ...]:
    """Return the binding schema of *model*, one entry per declared field."""
    return tuple(
        FieldSpec(name=name, wire_name=info.alias or name, required=info.is_required())
        for name, info in model.model_fields.items()
    )


@lru_cache(maxsize=None)
def _adapter(destination: Any) -> TypeAdapter[Any]:
    return TypeAdapter(destination)


def _element_model(destination: Any) -> tuple[type[BaseModel], bool]:
    """Split *destination* into ``(model, is_list)``."""
    if get_origin(destination) is list:
        args = get_args(destination)
        if len(args) == 1 and isinstance(args[0], type) and issubclass(args[0], BaseModel):
            return args[0], True
    elif isinstance(destination, type) and issubclass(destination, BaseModel):
        return destination, False
    msg = f"binding destination must be a pydantic model or list of models, got {destination!r}"
    raise TypeError(msg)


def check_required(payload: Any, destination: Any) -> None:
    """Raise :class:`BindingError` naming the first absent required field."""
    model, many = _element_model(destination)
    schema = schema_for(model)
    if many:
        if not isinstance(payload, list):
            msg = "expected an array of objects"
            raise BindingError(msg)
        for index, item in enumerate(payload):
            _check_object(item, schema, f" in item {index}")
        return
    _check_object(payload, schema, "")


def _check_object(payload: Any, schema: tuple[FieldSpec, ...], where: str) -> None:
    if not isinstance(payload, Mapping):
        msg = f"expected an object{where}"
        raise BindingError(msg)
    for spec in schema:
        if spec.required and payload.get(spec.wire_name) is None:
            msg = f"field {spec.wire_name!r} is required{where}"
            raise BindingError(msg)


def check_unknown(payload: Any, destination: Any) -> None:
    """Raise :class:`BindingError` for the first key the schema does not declare."""
    model, many = _element_model(destination)
    known = {spec.wire_name for spec in schema_for(model)}
    items = payload if many and isinstance(payload, list) else [payload]
    for item in items:
        if not isinstance(item, Mapping):
            continue
        for key in item:
            if key not in known:
                msg = f"unknown field {key!r}"
                raise BindingError(msg)


def build(payload: Any, destination: type[T]) -> T:
    """Validate *payload* into *destination*, wrapping pydantic errors."""
    try:
        return _adapter(destination).validate_python(payload)
    except ValidationError as exc:
        raise BindingError(str(exc)) from exc


# ------------------------------------------------------------------
# Bindings
# ------------------------------------------------------------------


class JSONBinding:
    """Binds JSON bodies.

    Parameters
    ----------
    disallow_unknown_fields:
        Reject payload keys that the destination does not declare.
    validate_required:
        Decode to plain data first and report absent required fields by
        name before the destination is built.
    """

    name = "json"

    def __init__(self, *, disallow_unknown_fields: bool = False, validate_required: bool = True) -> None:
        self.disallow_unknown_fields = disallow_unknown_fields
        self.validate_required = validate_required

    def bind(self, request: Request, destination: type[T]) -> T:
        if not request.body:
            msg = "invalid request: empty body"
            raise BindingError(msg)
        try:
            payload = request.json()
        except ValueError as exc:
            msg = f"invalid JSON body: {exc}"
            raise BindingError(msg) from exc
        if self.disallow_unknown_fields:
            check_unknown(payload, destination)
        if self.validate_required:
            check_required(payload, destination)
        return build(payload, destination)

    def __repr__(self) -> str:
        return (
            f"JSONBinding(disallow_unknown_fields={self.disallow_unknown_fields!r}, "
            f"validate_required={self.validate_required!r})"
        )


class XMLBinding:
    """Binds XML bodies.

    The root element's children become the destination's fields.  For a
    ``list[Model]`` destination every child of the root is one item.
    """

    name = "xml"

    def bind(self, request: Request, destination: type[T]) -> T:
        if not request.body:
            msg = "invalid request: empty body"
            raise BindingError(msg)
        try:
            root = ET.fromstring(request.body)
        except ET.ParseError as exc:
            msg = f"invalid XML body: {exc}"
            raise BindingError(msg) from exc
        _, many = _element_model(destination)
        payload = [_element_value(child) for child in root] if many else _element_value(root)
        check_required(payload, destination)
        return build(payload, destination)

    def __repr__(self) -> str:
        return "XMLBinding()"


def _element_value(elem: ET.Element) -> Any:
    children = list(elem)
    if not children and not elem.attrib:
        return (elem.text or "").strip()
    value: dict[str, Any] = dict(elem.attrib)
    for child in children:
        item = _element_value(child)
        if child.tag not in value:
            value[child.tag] = item
        elif isinstance(value[child.tag], list):
            value[child.tag].append(item)
        else:
            value[child.tag] = [value[child.tag], item]
    return value


JSON = JSONBinding()
XML = XMLBinding()
