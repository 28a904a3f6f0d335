#!/usr/bin/env python3
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from config import SIM_CONFIG
from bots import decide_order
from world import (
    AttackResult,
    GameOutcome,
    GameSession,
    Order,
    bot_ids,
    collect_resources,
    conquer_territory,
    decrement_and_expire,
    owned_territories,
    record_event,
)

# Logical clock advanced per turn (fed to the resource gate)
TURN_CLOCK_STEP: int = int(SIM_CONFIG.get("turn_clock_step", SIM_CONFIG.get("resource_interval", 10000)))

# Win / lose thresholds
VICTORY_POINTS: int = int(SIM_CONFIG.get("victory_points", 200))
VICTORY_LEVEL: int = int(SIM_CONFIG.get("victory_level", 5))
DEFEAT_SHARE: float = float(SIM_CONFIG.get("defeat_share", 0.75))

PHASE_IDLE = "idle"
PHASE_AI_ACTING = "ai_acting"
PHASE_RESOLVING = "resolving"
PHASE_EVALUATING = "evaluating"


@dataclass
class TurnReport:
    """What happened during one advance_turn call."""

    turn: int  # turn number that was played
    moves: List[Tuple[Order, AttackResult]] = field(default_factory=list)
    resources_collected: bool = False
    diplomacy_expired: bool = False
    outcome: Optional[GameOutcome] = None


# ---------- Outcome ----------


def evaluate_outcome(session: GameSession) -> Optional[GameOutcome]:
    """
    Check win/lose for the human participant.
    Victory rules are checked in priority order before defeat.
    """
    human = session.players.get(session.human_id)
    if human is None:
        return None

    total = len(session.territories)
    human_owned = len(owned_territories(session, human.id))

    if total > 0 and human_owned == total:
        return GameOutcome(
            kind="victory",
            reason="all_territories",
            participant=human.id,
            text=f"{human.name} controls every territory.",
        )
    if human.points >= VICTORY_POINTS:
        return GameOutcome(
            kind="victory",
            reason="points",
            participant=human.id,
            text=f"{human.name} reached {human.points} points.",
        )
    if human.level >= VICTORY_LEVEL:
        return GameOutcome(
            kind="victory",
            reason="level",
            participant=human.id,
            text=f"{human.name} reached level {human.level}.",
        )

    if total > 0 and human_owned == 0:
        for bid in bot_ids(session):
            share = len(owned_territories(session, bid)) / total
            if share >= DEFEAT_SHARE:
                bot = session.players[bid]
                return GameOutcome(
                    kind="defeat",
                    reason="domination",
                    participant=bid,
                    text=f"{bot.name} holds {share:.0%} of the map; {human.name} has been wiped out.",
                )
    return None


# ---------- Turn cycle ----------


def _run_ai_moves(session: GameSession, report: TurnReport) -> None:
    for bid in bot_ids(session):
        order = decide_order(session, bid)
        if order is None:
            continue
        defender = session.territories[order.target_id].owner
        result = conquer_territory(session, bid, order.target_id)
        report.moves.append((order, result))

        name = session.players[bid].name
        if result.success:
            text = f"t={session.turn}: {name} took territory {order.target_id} ({order.reason})."
            kind = "conquest"
        else:
            text = f"t={session.turn}: {name} failed to take territory {order.target_id}: {result.message}"
            kind = "attack_failed"
        involved = [bid] if defender is None else [bid, defender]
        record_event(session, kind, [order.target_id], involved, text)


def advance_turn(session: GameSession) -> TurnReport:
    """
    Play one full turn: bots act, income is paid, diplomacy counts down,
    then victory/defeat is checked and the turn counter moves on.
    """
    if session.phase != PHASE_IDLE:
        raise RuntimeError(f"Turn already in progress (phase={session.phase}).")

    report = TurnReport(turn=session.turn)
    if session.outcome is not None:
        report.outcome = session.outcome
        return report

    try:
        session.phase = PHASE_AI_ACTING
        _run_ai_moves(session, report)

        session.phase = PHASE_RESOLVING
        clock = (session.turn + 1) * TURN_CLOCK_STEP
        report.resources_collected = collect_resources(session, clock)
        had_treaty = session.diplomacy is not None
        decrement_and_expire(session)
        report.diplomacy_expired = had_treaty and session.diplomacy is None

        session.phase = PHASE_EVALUATING
        outcome = evaluate_outcome(session)
        if outcome is not None:
            session.outcome = outcome
            record_event(session, outcome.kind, [], [outcome.participant], outcome.text)
        report.outcome = outcome
        session.turn += 1
    finally:
        session.phase = PHASE_IDLE
    return report
