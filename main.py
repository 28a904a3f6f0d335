#!/usr/bin/env python3
from __future__ import annotations

import asyncio
import os
import traceback
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from config import SIM_CONFIG
from bots import get_ai_debug_state, get_candidates_for_participant
from turns import advance_turn, evaluate_outcome
from upgrades import list_upgrades, purchase_upgrade
from world import (
    BOT_CONFIG,
    HUMAN_CFG,
    GameSession,
    conquer_territory,
    create_session,
    rankings,
    record_event,
    reset_session,
)

TICK_DELAY: float = float(SIM_CONFIG.get("tick_delay", 0.5))
TURN_DELAY: float = float(SIM_CONFIG.get("turn_delay", 5.0))
AUTO_ADVANCE: bool = bool(SIM_CONFIG.get("auto_advance", False))

_turn_task: asyncio.Task | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    await start_auto_advance()
    try:
        yield
    finally:
        if _turn_task:
            _turn_task.cancel()
            await asyncio.gather(_turn_task, return_exceptions=True)


app = FastAPI(lifespan=lifespan)

session: GameSession = create_session()
session_lock = asyncio.Lock()

COLORS = {HUMAN_CFG.get("id", "player1"): HUMAN_CFG.get("color", "#00ff00")}
COLORS.update({bid: bcfg.get("color", "#ff0000") for bid, bcfg in BOT_CONFIG.items()})


def _not_found() -> JSONResponse:
    return JSONResponse({"error": "not found"}, status_code=404)


def _event_payload(ev) -> dict:
    return {
        "turn": ev.turn,
        "kind": ev.kind,
        "territories": ev.territories,
        "participants": ev.participants,
        "text": ev.text,
    }


def _player_payload(player) -> dict:
    data = asdict(player)
    data["color"] = COLORS.get(player.id, "#ffffff")
    return data


def _state_payload(s: GameSession) -> dict:
    return {
        "turn": s.turn,
        "phase": s.phase,
        "human_id": s.human_id,
        "territories": [asdict(t) for t in s.territories.values()],
        "players": [_player_payload(p) for p in s.players.values()],
        "diplomacy": asdict(s.diplomacy) if s.diplomacy else None,
        "outcome": asdict(s.outcome) if s.outcome else None,
        "events": s.events[-30:],
        "ai_state": get_ai_debug_state(s),
    }


def _settle_outcome(s: GameSession) -> None:
    """Human moves can end the game between turns."""
    if s.outcome is not None:
        return
    outcome = evaluate_outcome(s)
    if outcome is not None:
        s.outcome = outcome
        record_event(s, outcome.kind, [], [outcome.participant], outcome.text)


@app.get("/")
async def index():
    """Lightweight health endpoint for the backend."""
    return JSONResponse({"status": "ok", "service": "siege-nations"})


@app.get("/state")
async def state_endpoint():
    async with session_lock:
        data = _state_payload(session)
    return JSONResponse(data)


@app.get("/territory/{territory_id}")
async def territory_detail(territory_id: str):
    """Territory stats plus its neighbors and who holds them."""
    async with session_lock:
        territory = session.territories.get(territory_id)
        if territory is None:
            return _not_found()
        owner = session.players.get(territory.owner) if territory.owner else None
        neighbors = []
        for nid in territory.adjacent_to:
            neigh = session.territories[nid]
            neigh_owner = session.players.get(neigh.owner) if neigh.owner else None
            neighbors.append(
                {
                    "id": nid,
                    "owner": neigh.owner,
                    "owner_name": neigh_owner.name if neigh_owner else None,
                }
            )
        data = {
            **asdict(territory),
            "owner_name": owner.name if owner else None,
            "neighbors": neighbors,
            "history": [_event_payload(ev) for ev in session.history if territory_id in ev.territories],
        }
    return JSONResponse(data)


@app.get("/player/{player_id}")
async def player_detail(player_id: str):
    async with session_lock:
        player = session.players.get(player_id)
        if player is None:
            return _not_found()
        data = _player_payload(player)
    return JSONResponse(data)


@app.get("/candidates/{player_id}")
async def candidates_endpoint(player_id: str):
    async with session_lock:
        if player_id not in session.players:
            return _not_found()
        data = [t.id for t in get_candidates_for_participant(session, player_id)]
    return JSONResponse(data)


@app.get("/rankings")
async def rankings_endpoint():
    async with session_lock:
        data = [
            {"id": p.id, "name": p.name, "points": p.points, "level": p.level, "is_bot": p.is_bot}
            for p in rankings(session)
        ]
    return JSONResponse(data)


@app.get("/history")
async def history_endpoint():
    """
    Dump the full structured history as JSON.
    """
    async with session_lock:
        data = [_event_payload(ev) for ev in session.history]
    return JSONResponse(data)


@app.get("/upgrades")
async def upgrades_endpoint():
    async with session_lock:
        human = session.players[session.human_id]
        data = list_upgrades(human)
    return JSONResponse(data)


@app.post("/conquer/{territory_id}")
async def conquer_endpoint(territory_id: str):
    async with session_lock:
        if session.outcome is not None:
            return JSONResponse({"error": "game over"}, status_code=409)
        human = session.players[session.human_id]
        result = conquer_territory(session, human.id, territory_id)
        kind = "conquest" if result.success else "attack_failed"
        record_event(
            session,
            kind,
            [territory_id],
            [human.id],
            f"t={session.turn}: {human.name}: {result.message}",
        )
        _settle_outcome(session)
        data = {
            "result": asdict(result),
            "outcome": asdict(session.outcome) if session.outcome else None,
        }
    return JSONResponse(data)


@app.post("/upgrade/{upgrade_id}")
async def upgrade_endpoint(upgrade_id: str):
    async with session_lock:
        if session.outcome is not None:
            return JSONResponse({"error": "game over"}, status_code=409)
        human = session.players[session.human_id]
        result = purchase_upgrade(session, human.id, upgrade_id)
        if result.success:
            record_event(session, "upgrade", [], [human.id], f"t={session.turn}: {human.name}: {result.message}")
            _settle_outcome(session)
        data = asdict(result)
    return JSONResponse(data)


@app.post("/turn")
async def turn_endpoint():
    async with session_lock:
        report = advance_turn(session)
        data = {
            "turn": report.turn,
            "moves": [
                {"order": asdict(order), "result": asdict(result)}
                for order, result in report.moves
            ],
            "resources_collected": report.resources_collected,
            "diplomacy_expired": report.diplomacy_expired,
            "outcome": asdict(report.outcome) if report.outcome else None,
        }
    return JSONResponse(data)


@app.post("/reset")
async def reset_endpoint():
    async with session_lock:
        reset_session(session)
        data = _state_payload(session)
    print("SIM: session reset")
    return JSONResponse(data)


@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    print("WS: incoming connection")
    await ws.accept()
    print("WS: client accepted")
    try:
        while True:
            async with session_lock:
                payload = _state_payload(session)
            payload["tick_delay_ms"] = int(TICK_DELAY * 1000)
            await ws.send_json(payload)
            await asyncio.sleep(TICK_DELAY)
    except WebSocketDisconnect:
        print("WS: client disconnected")
        return
    except Exception:
        print("WS: unexpected error in websocket handler:")
        traceback.print_exc()
        return


async def start_auto_advance() -> None:
    global _turn_task
    if not AUTO_ADVANCE:
        return
    print(f">>> startup: auto-advance every {TURN_DELAY}s")

    async def run():
        announced = None
        while True:
            try:
                async with session_lock:
                    report = advance_turn(session)
                # keep polling while the game is over; a reset clears the outcome
                if report.outcome is not None:
                    if report.outcome is not announced:
                        print(f"SIM: game over at turn {report.turn}: {report.outcome.text}")
                        announced = report.outcome
                elif report.turn % 10 == 0:
                    print(f"SIM: turn {report.turn}")
                await asyncio.sleep(TURN_DELAY)
            except Exception:
                print("SIM: error in turn loop:")
                traceback.print_exc()
                await asyncio.sleep(1.0)

    _turn_task = asyncio.create_task(run())


if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", SIM_CONFIG.get("port", 8000)))
    reload_flag = os.environ.get("RELOAD", "").lower() in {"1", "true", "yes", "on"}
    uvicorn.run("main:app", host=host, port=port, reload=reload_flag)
