#!/usr/bin/env python3
from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config import SIM_CONFIG

# Grid defaults from JSON
GRID_CFG = SIM_CONFIG.get("grid", {})
GRID_ROWS: int = int(GRID_CFG.get("rows", 3))
GRID_COLS: int = int(GRID_CFG.get("cols", 4))
GRID_ORIGIN: Tuple[float, float] = tuple(GRID_CFG.get("origin", (100, 150)))  # type: ignore[assignment]
GRID_SPACING_X: float = float(GRID_CFG.get("spacing_x", 150))
GRID_SPACING_Y: float = float(GRID_CFG.get("spacing_y", 130))

# Territory tuning
YIELD_MIN: int = int(SIM_CONFIG.get("yield_min", 1))
YIELD_MAX: int = int(SIM_CONFIG.get("yield_max", 5))
BASE_TERRITORY_STRENGTH: int = int(SIM_CONFIG.get("base_territory_strength", 10))

# Participant baseline
BASE_PLAYER_STRENGTH: int = int(SIM_CONFIG.get("base_player_strength", 20))
BASE_RESOURCES_CFG: Dict[str, int] = SIM_CONFIG.get(
    "base_player_resources", {"gold": 10, "steel": 10, "energy": 10}
)
LEVEL_POINTS_STEP: int = int(SIM_CONFIG.get("level_points_step", 50))
LEVEL_STRENGTH_BONUS: int = int(SIM_CONFIG.get("level_strength_bonus", 5))

# Combat scoring
NEUTRAL_CAPTURE_POINTS = 10
OWNED_CAPTURE_POINTS = 15
LOST_TERRITORY_PENALTY = 5
FAILED_ATTACK_PENALTY = 2
DEFENDER_STRENGTH_DIVISOR = 4

# Economy gate (logical time units)
RESOURCE_INTERVAL: int = int(SIM_CONFIG.get("resource_interval", 10000))

# Roster from JSON
HUMAN_CFG: Dict[str, str] = SIM_CONFIG.get("human", {"id": "player1", "name": "Player 1"})
BOT_CONFIG: Dict[str, dict] = SIM_CONFIG.get("bots", {})

MAX_EVENTS = 80

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


@dataclass
class Resources:
    gold: int = 0
    steel: int = 0
    energy: int = 0

    def copy(self) -> "Resources":
        return Resources(self.gold, self.steel, self.energy)

    def add(self, other: "Resources") -> None:
        self.gold += other.gold
        self.steel += other.steel
        self.energy += other.energy

    def subtract(self, other: "Resources") -> None:
        self.gold -= other.gold
        self.steel -= other.steel
        self.energy -= other.energy

    def covers(self, cost: "Resources") -> bool:
        return self.gold >= cost.gold and self.steel >= cost.steel and self.energy >= cost.energy


def _base_resources() -> Resources:
    return Resources(
        gold=int(BASE_RESOURCES_CFG.get("gold", 10)),
        steel=int(BASE_RESOURCES_CFG.get("steel", 10)),
        energy=int(BASE_RESOURCES_CFG.get("energy", 10)),
    )


@dataclass
class Territory:
    id: str
    x: float  # presentation only
    y: float
    owner: Optional[str] = None  # participant id or None
    resources: Resources = field(default_factory=Resources)  # yield per collection
    strength: int = BASE_TERRITORY_STRENGTH  # defense
    adjacent_to: List[str] = field(default_factory=list)


@dataclass
class PlayerState:
    id: str
    name: str
    points: int = 0
    strength: int = BASE_PLAYER_STRENGTH  # attack
    level: int = 1
    resources: Resources = field(default_factory=_base_resources)
    conquered: List[str] = field(default_factory=list)  # owned territory ids, in order taken
    is_bot: bool = False
    extended_range: bool = False  # unlocked by advanced logistics


@dataclass
class AttackResult:
    success: bool
    points_gained: int
    resources_gained: Resources
    message: str


@dataclass
class Order:
    """A single attack a scripted participant wants to make this turn."""

    faction: str  # bot id
    target_id: str  # territory being attacked or claimed
    origin_id: Optional[str] = None  # owned neighbor launching it; None for a first claim
    reason: Optional[str] = None  # why this target was chosen (for history logging)


@dataclass
class DiplomacyRecord:
    protected_player: str
    non_aggressor_player: str
    turns_left: int


@dataclass
class HistoricalEvent:
    turn: int
    kind: str  # "conquest", "attack_failed", "upgrade", "victory", ...
    territories: List[str]
    participants: List[str]
    text: str


@dataclass
class GameOutcome:
    kind: str  # "victory" | "defeat"
    reason: str  # "all_territories" | "points" | "level" | "domination"
    participant: str  # human for victory, dominating bot for defeat
    text: str


@dataclass
class GameSession:
    """
    Sole owner of every territory and participant record.
    Passed explicitly to all operations; nothing else holds authoritative copies.
    """

    human_id: str
    turn: int = 0
    territories: Dict[str, Territory] = field(default_factory=dict)
    players: Dict[str, PlayerState] = field(default_factory=dict)
    diplomacy: Optional[DiplomacyRecord] = None
    last_resource_collection: int = 0
    resource_interval: int = RESOURCE_INTERVAL
    phase: str = "idle"  # "idle" | "ai_acting" | "resolving" | "evaluating"
    outcome: Optional[GameOutcome] = None
    events: List[str] = field(default_factory=list)
    history: List[HistoricalEvent] = field(default_factory=list)
    rng: random.Random = field(default_factory=random.Random)


def _failure(message: str, points: int = 0) -> AttackResult:
    return AttackResult(
        success=False,
        points_gained=points,
        resources_gained=Resources(),
        message=message,
    )


# ---------- Grid generation ----------


def territory_label(index: int) -> str:
    """Row-major label: A..Z, then AA, AB, ... for larger grids."""
    label = ""
    n = index
    while True:
        n, rem = divmod(n, len(_ALPHABET))
        label = _ALPHABET[rem] + label
        if n == 0:
            return label
        n -= 1


def generate_grid(
    session: GameSession,
    rows: int = GRID_ROWS,
    cols: int = GRID_COLS,
    origin: Tuple[float, float] = GRID_ORIGIN,
    spacing_x: float = GRID_SPACING_X,
    spacing_y: float = GRID_SPACING_Y,
) -> List[Territory]:
    """
    Replace the session's territories with a rows x cols grid.
    Adjacency is 4-connected (no diagonals, no wraparound).
    """
    if rows < 1 or cols < 1:
        raise ValueError(f"Grid must be at least 1x1, got {rows}x{cols}.")

    ox, oy = origin
    ordered: List[Territory] = []
    for row in range(rows):
        for col in range(cols):
            ordered.append(
                Territory(
                    id=territory_label(row * cols + col),
                    x=ox + col * spacing_x,
                    y=oy + row * spacing_y,
                    resources=Resources(
                        gold=session.rng.randint(YIELD_MIN, YIELD_MAX),
                        steel=session.rng.randint(YIELD_MIN, YIELD_MAX),
                        energy=session.rng.randint(YIELD_MIN, YIELD_MAX),
                    ),
                    strength=BASE_TERRITORY_STRENGTH,
                )
            )

    for row in range(rows):
        for col in range(cols):
            neighbors = []
            if row > 0:
                neighbors.append((row - 1) * cols + col)
            if row < rows - 1:
                neighbors.append((row + 1) * cols + col)
            if col > 0:
                neighbors.append(row * cols + col - 1)
            if col < cols - 1:
                neighbors.append(row * cols + col + 1)
            ordered[row * cols + col].adjacent_to = [ordered[i].id for i in neighbors]

    session.territories = {t.id: t for t in ordered}
    # Old ownership refers to the previous map
    for player in session.players.values():
        player.conquered = []
    return ordered


# ---------- Participants ----------


def register_participant(session: GameSession, player_id: str, name: str, is_bot: bool = False) -> PlayerState:
    """Idempotent: an existing record is returned untouched."""
    existing = session.players.get(player_id)
    if existing is not None:
        return existing
    player = PlayerState(id=player_id, name=name, is_bot=is_bot)
    session.players[player_id] = player
    return player


def get_participant_state(session: GameSession, player_id: str) -> Optional[PlayerState]:
    return session.players.get(player_id)


def bot_ids(session: GameSession) -> List[str]:
    """Scripted participants in registration order."""
    return [p.id for p in session.players.values() if p.is_bot]


def owned_territories(session: GameSession, player_id: str) -> List[Territory]:
    return [t for t in session.territories.values() if t.owner == player_id]


def territory_list(session: GameSession) -> List[Territory]:
    return list(session.territories.values())


def participant_map(session: GameSession) -> Dict[str, PlayerState]:
    return dict(session.players)


def rankings(session: GameSession) -> List[PlayerState]:
    """Participants by points, highest first (ties keep registration order)."""
    return sorted(session.players.values(), key=lambda p: p.points, reverse=True)


def create_session(seed: Optional[int] = None) -> GameSession:
    """Build a session from config: grid, human participant and the bot roster."""
    human_id = str(HUMAN_CFG.get("id", "player1"))
    session = GameSession(human_id=human_id, rng=random.Random(seed))
    generate_grid(session)
    register_participant(session, human_id, str(HUMAN_CFG.get("name", human_id)))
    for bid, bcfg in BOT_CONFIG.items():
        register_participant(session, bid, str(bcfg.get("name", bid)), is_bot=True)
    return session


# ---------- Event log ----------


def record_event(
    session: GameSession,
    kind: str,
    territories: List[str],
    participants: List[str],
    text: str,
) -> None:
    session.events.append(text)
    if len(session.events) > MAX_EVENTS:
        session.events = session.events[-MAX_EVENTS:]
    session.history.append(
        HistoricalEvent(
            turn=session.turn,
            kind=kind,
            territories=territories,
            participants=participants,
            text=text,
        )
    )


# ---------- Combat ----------


def level_for_points(points: int) -> int:
    return points // LEVEL_POINTS_STEP + 1


def defense_strength(session: GameSession, territory: Territory) -> int:
    defense = territory.strength
    if territory.owner is not None:
        defender = session.players.get(territory.owner)
        if defender is not None:
            defense += defender.strength // DEFENDER_STRENGTH_DIVISOR
    return defense


def can_attack(session: GameSession, player: PlayerState, territory: Territory) -> bool:
    """Adjacent to an owned territory, or a first claim of a neutral one."""
    for owned_id in player.conquered:
        owned = session.territories.get(owned_id)
        if owned is not None and territory.id in owned.adjacent_to:
            return True
    return not player.conquered and territory.owner is None


def conquer_territory(session: GameSession, attacker_id: str, territory_id: str) -> AttackResult:
    """
    Resolve one attack. Only the attacker, the previous owner and the
    territory are touched; inapplicable attempts come back as failures.
    """
    player = session.players.get(attacker_id)
    territory = session.territories.get(territory_id)

    if player is None or territory is None:
        return _failure("Player or territory not found.")

    if territory.owner == attacker_id:
        return _failure("You already own this territory.")

    if not can_attack(session, player, territory):
        return _failure(
            "You can only attack adjacent territories or neutral territories for your first conquest."
        )

    # Neutral territories fall without a strength check
    if territory.owner is not None and player.strength < defense_strength(session, territory):
        player.points = max(0, player.points - FAILED_ATTACK_PENALTY)
        return _failure(
            "Attack failed! The territory's defenses were too strong.",
            points=-FAILED_ATTACK_PENALTY,
        )

    gained = territory.resources.copy()
    if territory.owner is not None:
        prev_owner = session.players.get(territory.owner)
        if prev_owner is not None:
            prev_owner.conquered = [tid for tid in prev_owner.conquered if tid != territory_id]
            prev_owner.points -= LOST_TERRITORY_PENALTY
        points = OWNED_CAPTURE_POINTS
    else:
        points = NEUTRAL_CAPTURE_POINTS

    territory.owner = attacker_id
    if territory_id not in player.conquered:
        player.conquered.append(territory_id)
    player.resources.add(gained)
    player.points += points

    new_level = level_for_points(player.points)
    if new_level > player.level:
        player.level = new_level
        player.strength += LEVEL_STRENGTH_BONUS

    return AttackResult(
        success=True,
        points_gained=points,
        resources_gained=gained,
        message=f"Conquered territory {territory_id}! +{points} points",
    )


# ---------- Economy ----------


def collect_resources(session: GameSession, current_time: int) -> bool:
    """
    Pay every participant the summed yield of the territories it owns.
    Gated: returns False (no change) until resource_interval has elapsed.
    """
    if current_time - session.last_resource_collection < session.resource_interval:
        return False
    session.last_resource_collection = current_time

    for player in session.players.values():
        income = Resources()
        for territory in owned_territories(session, player.id):
            income.add(territory.resources)
        player.resources.add(income)
    return True


# ---------- Diplomacy ----------


def decrement_and_expire(session: GameSession) -> None:
    record = session.diplomacy
    if record is None:
        return
    record.turns_left -= 1
    if record.turns_left <= 0:
        session.diplomacy = None


def is_exempt(session: GameSession, aggressor_id: str, target_id: str) -> bool:
    record = session.diplomacy
    if record is None or record.turns_left <= 0:
        return False
    return record.non_aggressor_player == aggressor_id and record.protected_player == target_id


# ---------- Reset ----------


def reset_session(session: GameSession) -> None:
    """
    Clear ownership and player progress, keeping the grid and registrations.
    """
    for territory in session.territories.values():
        territory.owner = None

    for player in session.players.values():
        player.points = 0
        player.level = 1
        player.strength = BASE_PLAYER_STRENGTH
        player.resources = _base_resources()
        player.conquered = []
        player.extended_range = False

    session.diplomacy = None
    session.last_resource_collection = 0
    session.turn = 0
    session.phase = "idle"
    session.outcome = None
    session.events = []
    session.history = []
