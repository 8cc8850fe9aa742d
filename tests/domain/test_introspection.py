from __future__ import annotations

from collections.abc import Sequence  # noqa: TC003
from dataclasses import dataclass, field
from datetime import datetime  # noqa: TC003
from decimal import Decimal  # noqa: TC003
from enum import Enum
from typing import Annotated, ClassVar
from uuid import UUID  # noqa: TC003

import pytest
from sqlalchemy.orm import Mapped  # noqa: TC002

from graphmapper import MapperBuildError
from graphmapper.domain.introspection import (
    PropertyKind,
    can_construct_without_arguments,
    describe_properties,
    is_entity_type,
)


class Genre(Enum):
    FICTION = "fiction"


@dataclass
class Author:
    id: int | None = None
    name: str = ""


@dataclass
class Shelf:
    id: int | None = None
    label: Annotated[str, "display"] = ""
    genre: Genre | None = None
    updated: datetime | None = None
    checksum: UUID | None = None
    price: Decimal | None = None
    tags: list[str] = field(default_factory=list)
    curator: Author | None = None
    authors: list[Author] = field(default_factory=list)
    featured: set[Author] = field(default_factory=set)
    archive: Sequence[Author] = ()
    kind: ClassVar[str] = "shelf"
    _cache: dict[str, int] = field(default_factory=dict)


class MappedRow:
    id: Mapped[int]
    owner: Mapped[Author | None]
    authors: Mapped[list[Author]]


class WithArguments:
    def __init__(self, name: str) -> None:
        self.name = name


class Unresolvable:
    missing: NotDefinedAnywhere  # noqa: F821


def test_scalars_are_classified_as_scalars() -> None:
    properties = describe_properties(Shelf)

    for name in ("id", "label", "genre", "updated", "checksum", "price", "tags"):
        assert properties[name].kind is PropertyKind.SCALAR, name
    assert properties["label"].declared_type is str
    assert properties["id"].declared_type is int


def test_navigations_are_classified_with_their_item_type() -> None:
    properties = describe_properties(Shelf)

    assert properties["curator"].kind is PropertyKind.ENTITY
    assert properties["curator"].item_type is Author
    assert properties["authors"].kind is PropertyKind.ENTITY_COLLECTION
    assert properties["authors"].item_type is Author
    assert properties["authors"].collection_factory is list
    assert properties["featured"].collection_factory is set
    assert properties["archive"].kind is PropertyKind.ENTITY_COLLECTION
    assert properties["curator"].is_navigation
    assert not properties["tags"].is_navigation


def test_private_and_class_level_attributes_are_skipped() -> None:
    properties = describe_properties(Shelf)

    assert "kind" not in properties
    assert "_cache" not in properties


def test_mapped_annotations_are_unwrapped() -> None:
    properties = describe_properties(MappedRow)

    assert properties["id"].kind is PropertyKind.SCALAR
    assert properties["owner"].item_type is Author
    assert properties["authors"].kind is PropertyKind.ENTITY_COLLECTION


def test_extra_scalars_stop_entity_classification() -> None:
    properties = describe_properties(Shelf, extra_scalars=frozenset({Author}))

    assert properties["curator"].kind is PropertyKind.SCALAR
    assert properties["authors"].kind is PropertyKind.SCALAR


def test_entity_type_detection() -> None:
    assert is_entity_type(Author)
    assert is_entity_type(MappedRow)
    assert not is_entity_type(str)
    assert not is_entity_type(Genre)
    assert not is_entity_type(WithArguments)


def test_unresolvable_annotations_raise_build_error() -> None:
    with pytest.raises(MapperBuildError, match="Unresolvable"):
        describe_properties(Unresolvable)


def test_constructor_detection() -> None:
    assert can_construct_without_arguments(Shelf)
    assert can_construct_without_arguments(MappedRow)
    assert not can_construct_without_arguments(WithArguments)
