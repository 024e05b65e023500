"""Resource ledger interface consumed by construction, repair and gathering."""

from __future__ import annotations

from collections import defaultdict
from typing import Mapping, Protocol


class ResourceLedger(Protocol):
    """Affordability checks and deductions, per owner."""

    def can_afford(self, owner: str, cost: Mapping[str, float]) -> bool: ...

    def spend(self, owner: str, cost: Mapping[str, float]) -> bool: ...

    def deposit(self, owner: str, resource: str, amount: float) -> None: ...


class Stockpile:
    """In-memory ledger: owner -> resource -> amount."""

    __slots__ = ("_balances",)

    def __init__(self, initial: Mapping[str, Mapping[str, float]] | None = None) -> None:
        self._balances: dict[str, dict[str, float]] = defaultdict(dict)
        for owner, amounts in (initial or {}).items():
            self._balances[owner] = {k: float(v) for k, v in amounts.items()}

    def balance(self, owner: str) -> dict[str, float]:
        return dict(self._balances.get(owner, {}))

    def can_afford(self, owner: str, cost: Mapping[str, float]) -> bool:
        held = self._balances.get(owner, {})
        return all(held.get(res, 0.0) >= amount for res, amount in cost.items())

    def spend(self, owner: str, cost: Mapping[str, float]) -> bool:
        """Deduct *cost* atomically; returns False (and deducts nothing) if short."""
        if not self.can_afford(owner, cost):
            return False
        held = self._balances[owner]
        for res, amount in cost.items():
            held[res] = held.get(res, 0.0) - amount
        return True

    def deposit(self, owner: str, resource: str, amount: float) -> None:
        held = self._balances[owner]
        held[resource] = held.get(resource, 0.0) + amount
