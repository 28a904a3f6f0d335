#!/usr/bin/env python3
"""Upgrade catalog and purchase rules."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from world import DiplomacyRecord, GameSession, PlayerState, Resources, bot_ids, owned_territories

PURCHASE_POINTS = 5
IMMUNITY_TURNS = 3


class EffectKind(str, Enum):
    STAT_BOOST = "stat_boost"  # raise attack strength
    AREA_DEFENSE_BOOST = "area_defense_boost"  # raise strength of every owned territory
    AREA_RESOURCE_BOOST = "area_resource_boost"  # raise yield of every owned territory
    UNLOCK_CAPABILITY = "unlock_capability"  # flip a capability flag on the player
    GRANT_IMMUNITY = "grant_immunity"  # one bot stops attacking the buyer for a while


@dataclass(frozen=True)
class Upgrade:
    id: str
    name: str
    description: str
    cost: Resources
    kind: EffectKind
    amount: int = 0  # boost size or immunity turns
    min_level: int = 1
    min_territories: int = 0


@dataclass
class PurchaseResult:
    success: bool
    message: str
    upgrade_id: Optional[str] = None


UPGRADES: Dict[str, Upgrade] = {
    u.id: u
    for u in (
        Upgrade(
            id="military_training",
            name="Military Training",
            description="Increase attack strength by 10 points",
            cost=Resources(gold=15, steel=10, energy=5),
            kind=EffectKind.STAT_BOOST,
            amount=10,
        ),
        Upgrade(
            id="fortify_territories",
            name="Fortify Territories",
            description="Increase defense of all your territories by 5 points",
            cost=Resources(gold=10, steel=20, energy=5),
            kind=EffectKind.AREA_DEFENSE_BOOST,
            amount=5,
            min_territories=1,
        ),
        Upgrade(
            id="resource_optimization",
            name="Resource Optimization",
            description="Territories generate +1 of each resource per turn",
            cost=Resources(gold=20, steel=15, energy=25),
            kind=EffectKind.AREA_RESOURCE_BOOST,
            amount=1,
            min_territories=2,
        ),
        Upgrade(
            id="advanced_logistics",
            name="Advanced Logistics",
            description="Unlocks extended range logistics",
            cost=Resources(gold=30, steel=20, energy=40),
            kind=EffectKind.UNLOCK_CAPABILITY,
            min_level=2,
            min_territories=3,
        ),
        Upgrade(
            id="diplomatic_relations",
            name="Diplomatic Relations",
            description="One enemy faction will not attack you for 3 turns",
            cost=Resources(gold=50, steel=20, energy=30),
            kind=EffectKind.GRANT_IMMUNITY,
            amount=IMMUNITY_TURNS,
            min_level=3,
        ),
    )
}


def get_upgrade(upgrade_id: str) -> Optional[Upgrade]:
    return UPGRADES.get(upgrade_id)


def can_afford(player: PlayerState, upgrade: Upgrade) -> bool:
    return player.resources.covers(upgrade.cost)


def requirements_met(player: PlayerState, upgrade: Upgrade) -> bool:
    return player.level >= upgrade.min_level and len(player.conquered) >= upgrade.min_territories


def upgrade_status(player: PlayerState, upgrade: Upgrade) -> str:
    """One of: locked, unaffordable, available."""
    if not requirements_met(player, upgrade):
        return "locked"
    if not can_afford(player, upgrade):
        return "unaffordable"
    return "available"


def list_upgrades(player: PlayerState) -> List[dict]:
    return [
        {
            "id": u.id,
            "name": u.name,
            "description": u.description,
            "cost": {"gold": u.cost.gold, "steel": u.cost.steel, "energy": u.cost.energy},
            "status": upgrade_status(player, u),
        }
        for u in UPGRADES.values()
    ]


def apply_effect(session: GameSession, player_id: str, upgrade: Upgrade) -> None:
    player = session.players[player_id]
    kind = upgrade.kind

    if kind == EffectKind.STAT_BOOST:
        player.strength += upgrade.amount
    elif kind == EffectKind.AREA_DEFENSE_BOOST:
        for territory in owned_territories(session, player_id):
            territory.strength += upgrade.amount
    elif kind == EffectKind.AREA_RESOURCE_BOOST:
        boost = Resources(upgrade.amount, upgrade.amount, upgrade.amount)
        for territory in owned_territories(session, player_id):
            territory.resources.add(boost)
    elif kind == EffectKind.UNLOCK_CAPABILITY:
        player.extended_range = True
    elif kind == EffectKind.GRANT_IMMUNITY:
        enemies = [bid for bid in bot_ids(session) if bid != player_id]
        if enemies:
            session.diplomacy = DiplomacyRecord(
                protected_player=player_id,
                non_aggressor_player=session.rng.choice(enemies),
                turns_left=upgrade.amount,
            )
    else:
        raise ValueError(f"Unknown upgrade effect: {kind}")


def purchase_upgrade(session: GameSession, player_id: str, upgrade_id: str) -> PurchaseResult:
    """Check requirements and funds, pay, apply the effect and award points."""
    player = session.players.get(player_id)
    upgrade = UPGRADES.get(upgrade_id)
    if player is None or upgrade is None:
        return PurchaseResult(False, "Player or upgrade not found.", upgrade_id)
    if not requirements_met(player, upgrade):
        return PurchaseResult(False, f"{upgrade.name} is locked.", upgrade_id)
    if not can_afford(player, upgrade):
        return PurchaseResult(False, f"Not enough resources for {upgrade.name}.", upgrade_id)

    player.resources.subtract(upgrade.cost)
    apply_effect(session, player_id, upgrade)
    player.points += PURCHASE_POINTS
    return PurchaseResult(True, f"{upgrade.name} acquired!", upgrade_id)
