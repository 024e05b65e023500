"""Typed publish/subscribe channel for simulation events.

Events are frozen dataclasses; subscribers register per event class and are
called synchronously, in subscription order, from ``publish``.  Every event
is also mirrored into an optional :class:`EventLog` for the API feed.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, ClassVar, TypeVar

from eternity.utils.event_log import EventLog, FeedEntry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EntityDamaged:
    category: ClassVar[str] = "combat"
    entity_id: int
    attacker_id: int | None
    amount: float
    hp: float

    def describe(self) -> str:
        return f"#{self.entity_id} took {self.amount:.1f} damage ({self.hp:.1f} hp left)"

    def involved(self) -> tuple[int, ...]:
        if self.attacker_id is None:
            return (self.entity_id,)
        return (self.entity_id, self.attacker_id)


@dataclass(frozen=True, slots=True)
class EntityDied:
    category: ClassVar[str] = "death"
    entity_id: int
    owner: str | None
    killer_id: int | None = None

    def describe(self) -> str:
        return f"#{self.entity_id} ({self.owner}) was destroyed"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class WallBreached:
    category: ClassVar[str] = "wall"
    entity_id: int
    owner: str | None

    def describe(self) -> str:
        return f"Wall #{self.entity_id} ({self.owner}) was breached"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class WallCritical:
    category: ClassVar[str] = "wall"
    entity_id: int
    hp: float

    def describe(self) -> str:
        return f"Wall #{self.entity_id} critically damaged ({self.hp:.1f} hp)"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class WallRepaired:
    category: ClassVar[str] = "wall"
    entity_id: int
    hp: float

    def describe(self) -> str:
        return f"Wall #{self.entity_id} restored ({self.hp:.1f} hp)"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class GateToggled:
    category: ClassVar[str] = "wall"
    entity_id: int
    gate_state: str

    def describe(self) -> str:
        return f"Gate #{self.entity_id} is now {self.gate_state}"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class MoveStarted:
    category: ClassVar[str] = "movement"
    entity_id: int
    x: int
    y: int

    def describe(self) -> str:
        return f"#{self.entity_id} moving to ({self.x}, {self.y})"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class MoveFinished:
    category: ClassVar[str] = "movement"
    entity_id: int

    def describe(self) -> str:
        return f"#{self.entity_id} arrived"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class AttackPerformed:
    category: ClassVar[str] = "combat"
    attacker_id: int
    target_id: int
    amount: float
    damage_type: str | None

    def describe(self) -> str:
        kind = self.damage_type or "untyped"
        return f"#{self.attacker_id} hit #{self.target_id} for {self.amount:.1f} ({kind})"

    def involved(self) -> tuple[int, ...]:
        return (self.attacker_id, self.target_id)


@dataclass(frozen=True, slots=True)
class ResourcesDeposited:
    category: ClassVar[str] = "economy"
    entity_id: int
    owner: str | None
    resource: str
    amount: float

    def describe(self) -> str:
        return f"#{self.entity_id} deposited {self.amount:.1f} {self.resource}"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class ResourceDepleted:
    category: ClassVar[str] = "economy"
    entity_id: int

    def describe(self) -> str:
        return f"Resource #{self.entity_id} depleted"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class ConstructionCompleted:
    category: ClassVar[str] = "construction"
    entity_id: int
    builder_id: int | None

    def describe(self) -> str:
        return f"#{self.entity_id} construction complete"

    def involved(self) -> tuple[int, ...]:
        return (self.entity_id,)


@dataclass(frozen=True, slots=True)
class FormationCreated:
    category: ClassVar[str] = "formation"
    formation_id: str
    owner: str
    formation_type: str
    member_ids: tuple[int, ...]

    def describe(self) -> str:
        return f"Formation {self.formation_id} ({self.formation_type}) with {len(self.member_ids)} units"

    def involved(self) -> tuple[int, ...]:
        return self.member_ids


@dataclass(frozen=True, slots=True)
class FormationDisbanded:
    category: ClassVar[str] = "formation"
    formation_id: str

    def describe(self) -> str:
        return f"Formation {self.formation_id} disbanded"

    def involved(self) -> tuple[int, ...]:
        return ()


@dataclass(frozen=True, slots=True)
class Alert:
    """User-visible notice (e.g. insufficient resources)."""

    category: ClassVar[str] = "alert"
    owner: str | None
    message: str
    entity_id: int | None = None

    def describe(self) -> str:
        return self.message

    def involved(self) -> tuple[int, ...]:
        return () if self.entity_id is None else (self.entity_id,)


E = TypeVar("E")


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------

class EventBus:
    """Synchronous typed event channel.

    Handlers registered with ``subscribe_all`` see every event, after the
    type-specific handlers.
    """

    __slots__ = ("_subscribers", "_catch_all", "_log", "tick")

    def __init__(self, log: EventLog | None = None) -> None:
        self._subscribers: dict[type, list[Callable]] = defaultdict(list)
        self._catch_all: list[Callable[[object], None]] = []
        self._log = log
        self.tick: int = 0

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        self._subscribers[event_type].append(handler)

    def subscribe_all(self, handler: Callable[[object], None]) -> None:
        self._catch_all.append(handler)

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        handlers = self._subscribers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, event: object) -> None:
        if self._log is not None:
            self._log.append(FeedEntry(
                tick=self.tick,
                category=event.category,
                message=event.describe(),
                entity_ids=event.involved(),
                kind=type(event).__name__,
            ))
        for handler in list(self._subscribers.get(type(event), ())):
            handler(event)
        for handler in list(self._catch_all):
            handler(event)
