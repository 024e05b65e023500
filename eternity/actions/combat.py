"""Combat action: build a DamageEvent from an attacker/target pair."""

from __future__ import annotations

from eternity.actions.damage import DamageEvent, resolve_damage
from eternity.core.models import Entity


class CombatAction:
    """Resolves a single strike.  Applying the damage is left to the caller."""

    @staticmethod
    def strike(attacker: Entity, target: Entity) -> DamageEvent:
        ar = attacker.effective_ar()
        if attacker.charge_ready:
            ar *= 1.0 + attacker.charge_bonus()
            attacker.charge_ready = False
        amount = resolve_damage(ar, target.effective_dp(), attacker.base.damage_type)
        return DamageEvent(
            attacker_id=attacker.id,
            target_id=target.id,
            amount=amount,
            damage_type=attacker.base.damage_type,
        )

    @staticmethod
    def in_range(attacker: Entity, target: Entity) -> bool:
        """Chebyshev tile distance to the target's footprint within attack range."""
        return attacker.tile_distance(target) <= attacker.effective_attack_range()

    @staticmethod
    def can_attack(attacker: Entity, target: Entity) -> bool:
        return (
            attacker.id != target.id
            and attacker.is_hostile(target)
            and attacker.effective_ar() > 0
        )
