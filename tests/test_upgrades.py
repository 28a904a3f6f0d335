"""Tests for upgrades.py — requirements, costs and effect dispatch."""

import random

import pytest

from upgrades import (
    PURCHASE_POINTS,
    UPGRADES,
    EffectKind,
    Upgrade,
    apply_effect,
    get_upgrade,
    list_upgrades,
    purchase_upgrade,
    upgrade_status,
)
from world import GameSession, Resources, generate_grid, register_participant


def make_session(seed=2):
    session = GameSession(human_id="player1", rng=random.Random(seed))
    generate_grid(session, 3, 4, (0, 0), 100, 100)
    register_participant(session, "player1", "Human")
    register_participant(session, "bot1", "BOT1", is_bot=True)
    register_participant(session, "bot2", "BOT2", is_bot=True)
    return session


def give(session, player_id, *territory_ids):
    for tid in territory_ids:
        session.territories[tid].owner = player_id
        session.players[player_id].conquered.append(tid)


def rich(session, player_id="player1", amount=100):
    session.players[player_id].resources = Resources(amount, amount, amount)
    return session.players[player_id]


class TestCatalog:

    def test_five_upgrades(self):
        assert list(UPGRADES) == [
            "military_training",
            "fortify_territories",
            "resource_optimization",
            "advanced_logistics",
            "diplomatic_relations",
        ]
        assert get_upgrade("nope") is None

    def test_status(self):
        session = make_session()
        human = session.players["player1"]
        assert upgrade_status(human, UPGRADES["military_training"]) == "unaffordable"
        assert upgrade_status(human, UPGRADES["fortify_territories"]) == "locked"
        rich(session)
        assert upgrade_status(human, UPGRADES["military_training"]) == "available"

    def test_list_for_display(self):
        session = make_session()
        listing = list_upgrades(session.players["player1"])
        first = listing[0]
        assert first["id"] == "military_training"
        assert first["cost"] == {"gold": 15, "steel": 10, "energy": 5}
        assert first["status"] == "unaffordable"


class TestPurchase:

    def test_military_training(self):
        session = make_session()
        human = rich(session)
        result = purchase_upgrade(session, "player1", "military_training")
        assert result.success is True
        assert human.strength == 30
        assert human.points == PURCHASE_POINTS
        assert human.resources == Resources(85, 90, 95)

    def test_cannot_afford(self):
        session = make_session()
        human = session.players["player1"]
        result = purchase_upgrade(session, "player1", "military_training")
        assert result.success is False
        assert human.resources == Resources(10, 10, 10)
        assert human.strength == 20
        assert human.points == 0

    def test_locked(self):
        session = make_session()
        human = rich(session)
        result = purchase_upgrade(session, "player1", "fortify_territories")
        assert result.success is False
        assert "locked" in result.message
        assert human.resources == Resources(100, 100, 100)

    def test_unknown(self):
        session = make_session()
        assert purchase_upgrade(session, "player1", "warp_drive").success is False
        assert purchase_upgrade(session, "ghost", "military_training").success is False

    def test_fortify_only_own_territories(self):
        session = make_session()
        rich(session)
        give(session, "player1", "A", "B")
        give(session, "bot1", "L")
        purchase_upgrade(session, "player1", "fortify_territories")
        assert session.territories["A"].strength == 15
        assert session.territories["B"].strength == 15
        assert session.territories["L"].strength == 10
        assert session.territories["C"].strength == 10

    def test_resource_optimization(self):
        session = make_session()
        rich(session)
        give(session, "player1", "A")
        assert purchase_upgrade(session, "player1", "resource_optimization").success is False
        give(session, "player1", "B")
        before = session.territories["A"].resources.copy()
        other = session.territories["C"].resources.copy()
        assert purchase_upgrade(session, "player1", "resource_optimization").success is True
        assert session.territories["A"].resources == Resources(
            before.gold + 1, before.steel + 1, before.energy + 1
        )
        assert session.territories["C"].resources == other

    def test_advanced_logistics(self):
        session = make_session()
        human = rich(session)
        give(session, "player1", "A", "B", "C")
        assert purchase_upgrade(session, "player1", "advanced_logistics").success is False
        human.level = 2
        assert purchase_upgrade(session, "player1", "advanced_logistics").success is True
        assert human.extended_range is True

    def test_diplomatic_relations(self):
        session = make_session()
        human = rich(session)
        human.level = 3
        result = purchase_upgrade(session, "player1", "diplomatic_relations")
        assert result.success is True
        record = session.diplomacy
        assert record.protected_player == "player1"
        assert record.non_aggressor_player in ("bot1", "bot2")
        assert record.turns_left == 3

    def test_immunity_never_names_buyer(self):
        session = make_session()
        bot = rich(session, "bot1")
        bot.level = 3
        purchase_upgrade(session, "bot1", "diplomatic_relations")
        assert session.diplomacy.non_aggressor_player == "bot2"


class TestApplyEffect:

    def test_dispatch_by_kind(self):
        session = make_session()
        boost = Upgrade(
            id="drill",
            name="Drill",
            description="",
            cost=Resources(),
            kind=EffectKind.STAT_BOOST,
            amount=3,
        )
        apply_effect(session, "player1", boost)
        assert session.players["player1"].strength == 23

    def test_unknown_kind(self):
        session = make_session()
        bogus = Upgrade(id="x", name="X", description="", cost=Resources(), kind="teleport")
        with pytest.raises(ValueError):
            apply_effect(session, "player1", bogus)
