"""Combat resolution: damage-type modifiers against defense bands.

Abstract DamageModifier with concrete subclasses for each damage type.
To add a new damage type:
  1. Create a new DamageModifier subclass.
  2. Register it in DAMAGE_MODIFIERS.

``resolve_damage`` is a pure function; applying the result is the state
machine's job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from eternity.core.enums import DamageType

BONUS = 1.25
PENALTY = 0.75


# ---------------------------------------------------------------------------
# Ephemeral damage record
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class DamageEvent:
    """Produced and consumed within a single combat step."""

    attacker_id: int
    target_id: int
    amount: float
    damage_type: DamageType | None


# ---------------------------------------------------------------------------
# Abstract modifier
# ---------------------------------------------------------------------------

class DamageModifier(ABC):
    """Base class for damage type modifiers.

    Subclass and implement:
      - damage_type: the DamageType enum value this handles
      - multiplier(): scale applied to attack rating for a given defense
    """

    @property
    @abstractmethod
    def damage_type(self) -> DamageType | None:
        """The DamageType this modifier handles."""

    @abstractmethod
    def multiplier(self, dp: float) -> float:
        """Return the attack-rating multiplier against defense *dp*."""


class SlashingModifier(DamageModifier):
    """Strong against light armor, weak against heavy."""

    @property
    def damage_type(self) -> DamageType:
        return DamageType.SLASHING

    def multiplier(self, dp: float) -> float:
        if dp < 15:
            return BONUS
        if dp > 25:
            return PENALTY
        return 1.0


class PiercingModifier(DamageModifier):
    """Strong against medium armor, weak against very heavy."""

    @property
    def damage_type(self) -> DamageType:
        return DamageType.PIERCING

    def multiplier(self, dp: float) -> float:
        if 15 <= dp <= 25:
            return BONUS
        if dp > 35:
            return PENALTY
        return 1.0


class BluntModifier(DamageModifier):
    """Strong against heavy armor, weak against light."""

    @property
    def damage_type(self) -> DamageType:
        return DamageType.BLUNT

    def multiplier(self, dp: float) -> float:
        if dp > 25:
            return BONUS
        if dp < 15:
            return PENALTY
        return 1.0


class NeutralModifier(DamageModifier):
    """Untyped attacks apply the base attack rating."""

    @property
    def damage_type(self) -> None:
        return None

    def multiplier(self, dp: float) -> float:
        return 1.0


# ---------------------------------------------------------------------------
# Registry: maps DamageType -> modifier instance
# ---------------------------------------------------------------------------

DAMAGE_MODIFIERS: dict[DamageType, DamageModifier] = {
    DamageType.SLASHING: SlashingModifier(),
    DamageType.PIERCING: PiercingModifier(),
    DamageType.BLUNT: BluntModifier(),
}

DEFAULT_MODIFIER: DamageModifier = NeutralModifier()


def get_damage_modifier(damage_type: DamageType | None) -> DamageModifier:
    """Look up the modifier for a damage type, falling back to neutral."""
    if damage_type is None:
        return DEFAULT_MODIFIER
    return DAMAGE_MODIFIERS.get(damage_type, DEFAULT_MODIFIER)


def resolve_damage(ar: float, dp: float, damage_type: DamageType | None) -> float:
    """Damage dealt by attack rating *ar* against defense *dp*; never negative."""
    amount = ar * get_damage_modifier(damage_type).multiplier(dp)
    return max(0.0, amount)
