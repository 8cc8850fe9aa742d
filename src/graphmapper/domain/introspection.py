"""Discover and classify the mappable properties of entity classes."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses
import datetime as dt
import inspect
import types
import uuid
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum, StrEnum
from fractions import Fraction
from pathlib import PurePath
from typing import (
    TYPE_CHECKING,
    Annotated,
    Any,
    ClassVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from sqlalchemy.orm import Mapped

from .errors import MapperBuildError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

_SCALAR_BASES: tuple[type, ...] = (
    str,
    bytes,
    bytearray,
    memoryview,
    bool,
    int,
    float,
    complex,
    Decimal,
    Fraction,
    dt.date,
    dt.time,
    dt.timedelta,
    dt.tzinfo,
    uuid.UUID,
    Enum,
    PurePath,
)

_LIST_ORIGINS: frozenset[object] = frozenset(
    {
        list,
        cabc.Sequence,
        cabc.MutableSequence,
        cabc.Collection,
        cabc.Iterable,
    }
)
_SET_ORIGINS: frozenset[object] = frozenset({set, frozenset, cabc.Set, cabc.MutableSet})


class PropertyKind(StrEnum):
    SCALAR = "scalar"
    ENTITY = "entity"
    ENTITY_COLLECTION = "entity_collection"


@dataclass(frozen=True, slots=True, kw_only=True)
class PropertyInfo:
    """A declared property of an entity class.

    ``declared_type`` is the annotation with ``Mapped[...]``, ``Annotated[...]`` and
    ``| None`` stripped. ``item_type`` is the entity class for entity and entity
    collection properties; ``collection_factory`` builds an empty collection of the
    declared kind when the target has none yet.
    """

    name: str
    kind: PropertyKind
    declared_type: object
    item_type: type[Any] | None = None
    collection_factory: Callable[[], Any] | None = None

    @property
    def is_navigation(self) -> bool:
        return self.kind is not PropertyKind.SCALAR


def is_scalar_type(candidate: object, extra_scalars: frozenset[type[Any]] = frozenset()) -> bool:
    if not isinstance(candidate, type):
        return True
    return candidate in extra_scalars or issubclass(candidate, _SCALAR_BASES)


def is_entity_type(candidate: object, extra_scalars: frozenset[type[Any]] = frozenset()) -> bool:
    """Return whether ``candidate`` is a class whose instances are mapped property by property."""

    if not isinstance(candidate, type) or is_scalar_type(candidate, extra_scalars):
        return False
    if dataclasses.is_dataclass(candidate):
        return True
    return any(inspect.get_annotations(base) for base in candidate.__mro__ if base is not object)


def describe_properties(
    cls: type[Any],
    *,
    extra_scalars: frozenset[type[Any]] = frozenset(),
    localns: Mapping[str, object] | None = None,
) -> dict[str, PropertyInfo]:
    """Return the public annotated properties of ``cls`` keyed by name, in declaration order."""

    try:
        hints = get_type_hints(cls, localns=dict(localns or {}))
    except NameError as exc:
        raise MapperBuildError(
            f"Cannot resolve annotations of {cls.__qualname__}: {exc}. "
            "Register every referenced entity type with the builder."
        ) from exc

    properties: dict[str, PropertyInfo] = {}
    for name, hint in hints.items():
        if name.startswith("_") or get_origin(hint) is ClassVar:
            continue
        properties[name] = _classify(name, _unwrap(hint), extra_scalars)
    return properties


def can_construct_without_arguments(cls: type[Any]) -> bool:
    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError):
        return False
    return all(
        parameter.default is not inspect.Parameter.empty
        or parameter.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for parameter in signature.parameters.values()
    )


def _unwrap(hint: object) -> object:
    origin = get_origin(hint)
    if origin is Mapped or origin is Annotated:
        return _unwrap(get_args(hint)[0])
    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(members) == 1:
            return _unwrap(members[0])
    return hint


def _classify(name: str, hint: object, extra_scalars: frozenset[type[Any]]) -> PropertyInfo:
    origin = get_origin(hint)
    if origin in _LIST_ORIGINS or origin in _SET_ORIGINS:
        args = [arg for arg in get_args(hint) if arg is not Ellipsis]
        item = _unwrap(args[0]) if len(args) == 1 else None
        if item is not None and is_entity_type(item, extra_scalars):
            factory: Callable[[], Any] = set if origin in _SET_ORIGINS else list
            return PropertyInfo(
                name=name,
                kind=PropertyKind.ENTITY_COLLECTION,
                declared_type=hint,
                item_type=item,  # pyright: ignore[reportArgumentType]
                collection_factory=factory,
            )
        return PropertyInfo(name=name, kind=PropertyKind.SCALAR, declared_type=hint)

    if is_entity_type(hint, extra_scalars):
        return PropertyInfo(
            name=name,
            kind=PropertyKind.ENTITY,
            declared_type=hint,
            item_type=hint,  # pyright: ignore[reportArgumentType]
        )
    return PropertyInfo(name=name, kind=PropertyKind.SCALAR, declared_type=hint)
