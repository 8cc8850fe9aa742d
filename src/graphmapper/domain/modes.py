"""Map-to-storage modes."""

from __future__ import annotations

from enum import Flag


class MapToStorageMode(Flag):
    """Which kinds of mapping a type pair takes part in.

    ``MEMORY`` allows plain object-to-object mapping. ``INSERT`` and ``UPDATE``
    allow creating and updating persisted targets respectively; a pair without
    any storage flag is rejected by storage mapping, and a pair without
    ``MEMORY`` is rejected by memory mapping.
    """

    MEMORY = 1
    INSERT = 2
    UPDATE = 4
    UPSERT = INSERT | UPDATE
    MEMORY_AND_UPSERT = MEMORY | INSERT | UPDATE

    MEMORY_ONLY = MEMORY

    @property
    def allows_memory(self) -> bool:
        return bool(self & MapToStorageMode.MEMORY)

    @property
    def allows_storage(self) -> bool:
        return bool(self & MapToStorageMode.UPSERT)

    @property
    def allows_insert(self) -> bool:
        return bool(self & MapToStorageMode.INSERT)

    @property
    def allows_update(self) -> bool:
        return bool(self & MapToStorageMode.UPDATE)

    @classmethod
    def parse(cls, value: str) -> MapToStorageMode:
        """Parse names joined by ``|`` (case-insensitive), e.g. ``"memory|insert"``."""

        mode = cls(0)
        for part in value.split("|"):
            name = part.strip().upper()
            if not name:
                continue
            try:
                mode |= cls[name]
            except KeyError as exc:
                raise ValueError(f"Unknown map-to-storage mode: {part.strip()!r}") from exc
        if not mode:
            raise ValueError(f"Empty map-to-storage mode: {value!r}")
        return mode
