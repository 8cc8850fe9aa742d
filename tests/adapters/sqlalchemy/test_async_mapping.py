from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002

from graphmapper import ConcurrencyTokenError
from graphmapper.adapters.sqlalchemy import SqlAlchemyAsyncStorageContext
from graphmapper.domain.ports import AsyncStorageContext
from tests.support.entities import Book, BookDTO, Library, LibraryDTO

if TYPE_CHECKING:
    from graphmapper import Mapper


async def seed_library(session: AsyncSession) -> Library:
    library = Library(name="Main", version=1)
    library.books.extend([Book(title="A", version=1), Book(title="B", version=1)])
    session.add(library)
    await session.commit()
    return library


async def test_map_async_reconciles_persisted_graph(
    library_mapper: Mapper, async_session: AsyncSession
) -> None:
    library = await seed_library(async_session)
    a, _ = library.books
    source = LibraryDTO(
        id=library.id,
        name="Renamed",
        version=1,
        books=[BookDTO(id=a.id, title="A", version=1), BookDTO(title="C")],
    )

    storage = SqlAlchemyAsyncStorageContext(async_session)
    assert isinstance(storage, AsyncStorageContext)

    result = await library_mapper.map_async(source, Library, storage)
    await async_session.commit()

    assert result is library
    assert library.name == "Renamed"
    assert await async_session.scalar(select(func.count()).select_from(Book)) == 2


async def test_map_async_inserts_new_graph(
    library_mapper: Mapper, async_session: AsyncSession
) -> None:
    library = await library_mapper.map_async(
        LibraryDTO(name="Branch", books=[BookDTO(title="X")]),
        Library,
        SqlAlchemyAsyncStorageContext(async_session),
    )
    await async_session.commit()

    assert library.id is not None
    assert await async_session.scalar(select(func.count()).select_from(Library)) == 1


async def test_map_async_surfaces_mapping_errors(
    library_mapper: Mapper, async_session: AsyncSession
) -> None:
    library = await seed_library(async_session)

    with pytest.raises(ConcurrencyTokenError):
        await library_mapper.map_async(
            LibraryDTO(id=library.id, name="Stale", version=7),
            Library,
            SqlAlchemyAsyncStorageContext(async_session),
        )

    assert library.name == "Main"
