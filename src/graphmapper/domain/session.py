"""Per-invocation mapping state.

A :class:`MappingSession` records which targets have had their scalars copied
(so cyclic and diamond-shaped graphs are walked once per target) and which
target was created for which source node (so a shared source child converges on
a single target). It is not safe for concurrent use; create one per logical
mapping operation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class TargetTracker:
    """Visited targets of one target type.

    Targets with an identity are tracked by identity value. Targets without one
    are tracked per instance through ``id()``; the tracker keeps a reference so
    the id cannot be reused while the session is alive.
    """

    identities: set[object] = field(default_factory=set)
    instances: dict[int, object] = field(default_factory=dict)

    def is_visited(self, target: object, identity: object | None) -> bool:
        if identity is not None:
            return identity in self.identities
        return id(target) in self.instances

    def mark_visited(self, target: object, identity: object | None) -> None:
        if identity is not None:
            self.identities.add(identity)
        else:
            self.instances[id(target)] = target


class MappingSession:
    def __init__(self) -> None:
        self._trackers: dict[type[Any], TargetTracker] = {}
        self._new_targets: dict[tuple[type[Any], int], tuple[object, Any]] = {}
        self._identity_targets: dict[tuple[type[Any], object], Any] = {}

    def tracker(self, target_type: type[Any]) -> TargetTracker | None:
        return self._trackers.get(target_type)

    def get_or_create_tracker(self, target_type: type[Any]) -> TargetTracker:
        tracker = self._trackers.get(target_type)
        if tracker is None:
            tracker = self._trackers[target_type] = TargetTracker()
        return tracker

    def is_visited(self, target: object, identity: object | None) -> bool:
        tracker = self._trackers.get(type(target))
        return tracker is not None and tracker.is_visited(target, identity)

    def mark_visited(self, target: object, identity: object | None) -> None:
        self.get_or_create_tracker(type(target)).mark_visited(target, identity)

    def new_target_for(self, source: object, target_type: type[Any]) -> Any | None:
        """Return the target already created for this source instance, if any."""

        entry = self._new_targets.get((target_type, id(source)))
        return entry[1] if entry is not None else None

    def remember_new_target(self, source: object, target_type: type[Any], target: Any) -> None:
        self._new_targets[(target_type, id(source))] = (source, target)

    def target_for_identity(self, target_type: type[Any], identity: object) -> Any | None:
        return self._identity_targets.get((target_type, identity))

    def remember_identity(self, target_type: type[Any], identity: object, target: Any) -> None:
        self._identity_targets[(target_type, identity)] = target
