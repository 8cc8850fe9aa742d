from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

import pytest

from graphmapper import MapperBuilder, MapToStorageMode, UnregisteredMappingError


@dataclass(eq=False, kw_only=True)
class NodeDTO:
    id: int | None = None
    name: str = ""
    parent: NodeDTO | None = None
    children: list[NodeDTO] = field(default_factory=list)


@dataclass(eq=False, kw_only=True)
class Node:
    id: int | None = None
    name: str = ""
    parent: Node | None = None
    children: list[Node] = field(default_factory=list)


@dataclass(eq=False, kw_only=True)
class SpecialNodeDTO(NodeDTO):
    pass


@dataclass(eq=False, kw_only=True)
class InvoiceDTO:
    id: int | None = None
    number: str = ""
    currency: str = ""
    total: str | None = None
    issued: date | None = None
    internal: str = ""


@dataclass(eq=False, kw_only=True)
class Invoice:
    id: int | None = None
    number: str = ""
    currency: str = ""
    total: Decimal | None = None
    issued: date | None = None
    internal: str = "unset"


@dataclass(eq=False, kw_only=True)
class MemberDTO:
    id: int | None = None
    handle: str = ""


@dataclass(eq=False, kw_only=True)
class Member:
    id: int | None = None
    handle: str = ""


@dataclass(eq=False, kw_only=True)
class GroupDTO:
    id: int | None = None
    members: list[MemberDTO] = field(default_factory=list)


@dataclass(eq=False, kw_only=True)
class Group:
    id: int | None = None
    members: set[Member] = field(default_factory=set)


def node_builder() -> MapperBuilder:
    return MapperBuilder().register_two_way(NodeDTO, Node)


def tree(name: str, *children: NodeDTO, node_id: int | None = None) -> NodeDTO:
    root = NodeDTO(id=node_id, name=name, children=list(children))
    for child in children:
        child.parent = root
    return root


def test_map_copies_keys_and_scalars_into_new_target() -> None:
    mapper = node_builder().build()

    node = mapper.map(NodeDTO(id=1, name="root"), Node)

    assert isinstance(node, Node)
    assert node.id == 1
    assert node.name == "root"
    assert node.parent is None
    assert node.children == []


def test_cycles_terminate_and_keep_their_shape() -> None:
    mapper = node_builder().build()
    source = tree("root", NodeDTO(name="left"), NodeDTO(name="right"))

    node = mapper.map(source, Node)

    assert [child.name for child in node.children] == ["left", "right"]
    assert all(child.parent is node for child in node.children)
    assert all(isinstance(child, Node) for child in node.children)


def test_self_reference_maps_to_the_same_target() -> None:
    mapper = node_builder().build()
    source = NodeDTO(name="loop")
    source.parent = source

    node = mapper.map(source, Node)

    assert node.parent is node


def test_shared_child_converges_within_one_call() -> None:
    mapper = node_builder().build()
    shared = NodeDTO(name="shared")
    source = tree("root", NodeDTO(name="a", children=[shared]), NodeDTO(name="b"))
    source.children[1].children.append(shared)

    node = mapper.map(source, Node)

    left, right = node.children
    assert left.children[0] is right.children[0]
    assert len(node.children) == 2


def test_session_converges_shared_instances_across_calls() -> None:
    mapper = node_builder().build()
    shared = NodeDTO(name="shared")
    first = NodeDTO(name="first", parent=shared)
    second = NodeDTO(name="second", parent=shared)

    session = mapper.create_session()
    mapped_first = session.map(first, Node)
    mapped_second = session.map(second, Node)

    assert mapped_first.parent is mapped_second.parent
    assert mapped_first.parent is not None
    assert mapped_first.parent.name == "shared"


def test_session_converges_equal_identities_across_calls() -> None:
    mapper = node_builder().build()
    first = NodeDTO(name="first", parent=NodeDTO(id=7, name="seven"))
    second = NodeDTO(name="second", parent=NodeDTO(id=7, name="seven"))

    session = mapper.create_session()
    mapped_first = session.map(first, Node)
    mapped_second = session.map(second, Node)

    assert mapped_first.parent is mapped_second.parent


def test_separate_calls_do_not_share_state() -> None:
    mapper = node_builder().build()
    shared = NodeDTO(name="shared")

    first = mapper.map(NodeDTO(name="first", parent=shared), Node)
    second = mapper.map(NodeDTO(name="second", parent=shared), Node)

    assert first.parent is not second.parent


def test_mapping_back_reproduces_the_graph() -> None:
    mapper = node_builder().build()
    node = mapper.map(tree("root", NodeDTO(id=2, name="child"), node_id=1), Node)

    dto = mapper.map(node, NodeDTO)

    assert dto.id == 1
    assert dto.children[0].id == 2
    assert dto.children[0].parent is dto


def test_mapping_into_existing_target_diffs_collections() -> None:
    mapper = node_builder().build()
    two = Node(id=2, name="two")
    three = Node(id=3, name="three")
    target = Node(id=1, name="old", children=[two, three])
    two.parent = three.parent = target
    source = tree("new", NodeDTO(id=2, name="two!"), NodeDTO(name="fresh"), node_id=1)

    result = mapper.map(source, Node, target)

    assert result is target
    assert target.name == "new"
    assert [child.name for child in target.children] == ["two!", "fresh"]
    assert target.children[0] is two
    assert target.children[1].parent is target
    assert three.parent is None


def test_keep_unmatched_leaves_missing_children_in_place() -> None:
    mapper = node_builder().configure_type(Node).keep_unmatched("children").finish().build()
    stale = Node(id=3, name="stale")
    target = Node(id=1, children=[stale])
    stale.parent = target

    mapper.map(tree("root", NodeDTO(name="fresh"), node_id=1), Node, target)

    assert [child.name for child in target.children] == ["stale", "fresh"]
    assert stale.parent is target


def test_missing_source_collection_leaves_target_untouched() -> None:
    mapper = node_builder().build()
    kept = Node(id=2)
    target = Node(id=1, children=[kept])
    source = NodeDTO(id=1, children=None)  # type: ignore[arg-type]

    mapper.map(source, Node, target)

    assert target.children == [kept]


def test_list_source_maps_into_set_target() -> None:
    mapper = MapperBuilder().register(GroupDTO, Group).build()

    group = mapper.map(
        GroupDTO(id=1, members=[MemberDTO(id=1, handle="a"), MemberDTO(id=2, handle="b")]),
        Group,
    )

    assert isinstance(group.members, set)
    assert sorted(member.handle for member in group.members) == ["a", "b"]


def test_scalar_converter_custom_mapper_and_exclusion() -> None:
    mapper = (
        MapperBuilder()
        .register_scalar_converter(str, Decimal, Decimal)
        .configure_type_pair(InvoiceDTO, Invoice)
        .map_property("currency", lambda source: source.currency.upper())
        .exclude_properties_by_name("internal")
        .finish()
        .register(InvoiceDTO, Invoice)
        .build()
    )
    source = InvoiceDTO(
        id=5,
        number="INV-5",
        currency="eur",
        total="12.50",
        issued=date(2024, 5, 1),
        internal="secret",
    )

    invoice = mapper.map(source, Invoice)

    assert invoice.total == Decimal("12.50")
    assert invoice.currency == "EUR"
    assert invoice.issued == date(2024, 5, 1)
    assert invoice.internal == "unset"


def test_converter_is_not_applied_to_none() -> None:
    mapper = (
        MapperBuilder()
        .register_scalar_converter(str, Decimal, Decimal)
        .register(InvoiceDTO, Invoice)
        .build()
    )

    invoice = mapper.map(InvoiceDTO(number="INV-6"), Invoice)

    assert invoice.total is None


def test_incompatible_scalars_are_skipped_without_converter() -> None:
    mapper = MapperBuilder().register(InvoiceDTO, Invoice).build()

    invoice = mapper.map(InvoiceDTO(number="INV-7", total="3"), Invoice)

    assert invoice.number == "INV-7"
    assert invoice.total is None


def test_storage_only_pair_cannot_be_mapped_in_memory() -> None:
    mapper = (
        node_builder()
        .configure_type_pair(NodeDTO, Node)
        .set_map_to_storage_mode(MapToStorageMode.UPSERT)
        .finish()
        .build()
    )

    with pytest.raises(UnregisteredMappingError, match="does not allow memory mapping"):
        mapper.map(NodeDTO(name="root"), Node)


def test_unregistered_runtime_type_is_rejected() -> None:
    mapper = node_builder().build()

    with pytest.raises(UnregisteredMappingError, match="InvoiceDTO -> Node"):
        mapper.map(InvoiceDTO(), Node)


def test_subclass_children_need_their_own_registration() -> None:
    mapper = node_builder().build()
    source = tree("root", SpecialNodeDTO(name="special"))

    with pytest.raises(UnregisteredMappingError, match="SpecialNodeDTO -> Node"):
        mapper.map(source, Node)
