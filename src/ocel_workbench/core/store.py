from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from .entities import Entity
from .errors import EntityNotFound

T = TypeVar("T")


class StoreSession:
    """Read/write view over the store, valid only while the store lock is held."""

    def __init__(self, entities: dict[int, Entity]) -> None:
        self._entities = entities
        self._open = True

    def _check(self) -> None:
        if not self._open:
            raise RuntimeError("Store session used after release")

    def get(self, entity_id: int) -> Entity:
        self._check()
        entity = self._entities.get(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)
        return entity

    def find(self, entity_id: int) -> Entity | None:
        self._check()
        return self._entities.get(entity_id)

    def insert(self, entity_id: int, entity: Entity) -> bool:
        """File `entity` under `entity_id` unless the id is taken.

        Returns False (and leaves the existing value untouched) on a duplicate.
        """

        self._check()
        if entity.id != entity_id:
            raise ValueError(f"Entity {entity.id} cannot be filed under id {entity_id}")
        if entity_id in self._entities:
            return False
        self._entities[entity_id] = entity
        return True

    def ids(self) -> list[int]:
        self._check()
        return sorted(self._entities)


class EntityStore:
    """Process-wide id -> Entity map behind one coarse lock."""

    def __init__(self) -> None:
        self._entities: dict[int, Entity] = {}
        self._lock = threading.Lock()

    @contextmanager
    def session(self) -> Iterator[StoreSession]:
        with self._lock:
            session = StoreSession(self._entities)
            try:
                yield session
            finally:
                session._open = False

    def with_exclusive_access(self, fn: Callable[[StoreSession], T]) -> T:
        with self.session() as session:
            return fn(session)

    def insert(self, entity_id: int, entity: Entity) -> bool:
        with self.session() as session:
            return session.insert(entity_id, entity)

    def get(self, entity_id: int) -> Entity:
        with self.session() as session:
            return session.get(entity_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entities)

    def __contains__(self, entity_id: Any) -> bool:
        with self._lock:
            return entity_id in self._entities
