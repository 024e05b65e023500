"""Action system: combat resolution and villager work."""

from eternity.actions.combat import CombatAction
from eternity.actions.damage import DamageEvent, resolve_damage
from eternity.actions.work import WorkAction

__all__ = ["CombatAction", "DamageEvent", "WorkAction", "resolve_damage"]
