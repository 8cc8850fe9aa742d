"""SQLAlchemy implementations of the storage-context ports."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import inspect

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import Session

    from graphmapper.domain.ports.storage import StorageContext

log = logging.getLogger(__name__)


class SqlAlchemyStorageContext:
    """Storage context backed by a synchronous :class:`~sqlalchemy.orm.Session`.

    Lookups run with autoflush disabled so that half-mapped targets are never
    flushed in the middle of a walk.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get[T](
        self, entity_type: type[T], identity: object, *, options: Sequence[Any] = ()
    ) -> T | None:
        with self.session.no_autoflush:
            return self.session.get(entity_type, identity, options=options)

    def add(self, entity: object) -> None:
        self.session.add(entity)

    def delete(self, entity: object) -> None:
        state = inspect(entity, raiseerr=False)
        if state is None or state.transient:
            return
        if state.pending:
            log.debug("Expunging pending %s instead of deleting it", type(entity).__qualname__)
            self.session.expunge(entity)
            return
        self.session.delete(entity)


class SqlAlchemyAsyncStorageContext:
    """Runs walks on the sync session underlying an :class:`AsyncSession`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def run[R](self, operation: Callable[[StorageContext], R]) -> R:
        return await self.session.run_sync(
            lambda sync_session: operation(SqlAlchemyStorageContext(sync_session))
        )

