#!/usr/bin/env python3
from __future__ import annotations

from typing import Dict, List, Optional

from world import GameSession, Order, Territory, is_exempt, owned_territories

# Tier labels, in order of preference
TIER_NEUTRAL = "neutral"
TIER_HUMAN = "human"
TIER_RIVAL = "rival"
TIER_ORDER = (TIER_NEUTRAL, TIER_HUMAN, TIER_RIVAL)


# ---------- Candidates ----------


def get_candidates_for_participant(session: GameSession, player_id: str) -> List[Territory]:
    """
    Territories this participant could go for next.
    Unclaimed neighbors come first, owned neighbors after; a territory reachable
    from several owned ones appears once per route.
    """
    player = session.players.get(player_id)
    if player is None:
        return []

    if not player.conquered:
        return [t for t in session.territories.values() if t.owner is None]

    candidates: List[Territory] = []
    for owned_id in player.conquered:
        owned = session.territories.get(owned_id)
        if owned is None:
            continue
        for nid in owned.adjacent_to:
            neigh = session.territories.get(nid)
            if neigh is None or neigh.owner == player_id:
                continue
            if neigh.owner is None:
                candidates.insert(0, neigh)
            else:
                candidates.append(neigh)
    return candidates


def _dedupe(candidates: List[Territory]) -> List[Territory]:
    seen = set()
    unique = []
    for t in candidates:
        if t.id in seen:
            continue
        seen.add(t.id)
        unique.append(t)
    return unique


def _tier_of(session: GameSession, territory: Territory) -> str:
    if territory.owner is None:
        return TIER_NEUTRAL
    if territory.owner == session.human_id:
        return TIER_HUMAN
    return TIER_RIVAL


def split_by_tier(session: GameSession, candidates: List[Territory]) -> Dict[str, List[Territory]]:
    tiers: Dict[str, List[Territory]] = {tier: [] for tier in TIER_ORDER}
    for t in _dedupe(candidates):
        tiers[_tier_of(session, t)].append(t)
    return tiers


def choose_target(
    session: GameSession,
    candidates: List[Territory],
    spare_human: bool = False,
) -> Optional[Territory]:
    """
    Neutral land first, then the human's, then other bots'.
    Uniform pick inside the first non-empty tier.
    spare_human drops the human tier (diplomatic immunity).
    """
    tiers = split_by_tier(session, candidates)
    for tier in TIER_ORDER:
        if tier == TIER_HUMAN and spare_human:
            continue
        pool = tiers[tier]
        if pool:
            return session.rng.choice(pool)
    return None


def _origin_for(session: GameSession, bot_id: str, target: Territory) -> Optional[str]:
    for owned in owned_territories(session, bot_id):
        if target.id in owned.adjacent_to:
            return owned.id
    return None


# ---------- Decisions ----------


def decide_order(session: GameSession, bot_id: str) -> Optional[Order]:
    """Pick this bot's attack for the turn, or None if it has nothing to do."""
    spare_human = is_exempt(session, bot_id, session.human_id)
    target = choose_target(session, get_candidates_for_participant(session, bot_id), spare_human=spare_human)
    if target is None:
        return None

    tier = _tier_of(session, target)
    if tier == TIER_NEUTRAL:
        reason = "claim neutral territory"
    else:
        owner = session.players.get(target.owner)
        reason = f"attack {owner.name if owner else target.owner}"
    return Order(
        faction=bot_id,
        target_id=target.id,
        origin_id=_origin_for(session, bot_id, target),
        reason=reason,
    )


# ---------- Debug helper ----------


def get_ai_debug_state(session: GameSession) -> dict:
    """
    JSON-serializable snapshot of what each bot sees, for the debugging UI.
    """
    bots_debug = []
    for player in session.players.values():
        if not player.is_bot:
            continue
        tiers = split_by_tier(session, get_candidates_for_participant(session, player.id))
        bots_debug.append(
            {
                "id": player.id,
                "name": player.name,
                "territories_owned": len(player.conquered),
                "neutral_targets": [t.id for t in tiers[TIER_NEUTRAL]],
                "human_targets": [t.id for t in tiers[TIER_HUMAN]],
                "rival_targets": [t.id for t in tiers[TIER_RIVAL]],
                "spares_human": is_exempt(session, player.id, session.human_id),
            }
        )
    return {
        "turn": session.turn,
        "bots": bots_debug,
    }
