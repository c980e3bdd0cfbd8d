"""
Game Log Test Suite

Tests for the game log recording system.

Sections:
    1. Individual logging — roll, lock, score field verification
    2. Filtering — get_turn_entries, get_score_entries
    3. Clear — empties all entries
    4. Ordering — both seats across rounds stay in order
"""

from game_engine import Category, Player
from game_log import GameLog

# ── 1. Individual logging ────────────────────────────────────────────────────


def test_log_roll():
    """log_roll creates an entry with correct fields."""
    log = GameLog()
    log.log_roll(round=1, player=Player.HUMAN, roll_number=1, dice_values=[1, 2, 3, 4, 5])
    assert len(log.entries) == 1
    e = log.entries[0]
    assert e.round == 1
    assert e.player == Player.HUMAN
    assert e.event_type == "roll"
    assert e.dice_values == (1, 2, 3, 4, 5)
    assert e.roll_number == 1
    assert e.category is None
    assert e.score is None


def test_log_lock_change():
    """log_lock_change records the locked indices as a tuple."""
    log = GameLog()
    log.log_lock_change(round=2, player=Player.AI, locked_indices=[0, 3],
                        dice_values=[6, 2, 5, 6, 1])
    e = log.entries[0]
    assert e.event_type == "lock"
    assert e.player == Player.AI
    assert e.locked_indices == (0, 3)
    assert e.dice_values == (6, 2, 5, 6, 1)


def test_log_score():
    """log_score creates an entry with category and score."""
    log = GameLog()
    log.log_score(round=3, player=Player.HUMAN, category=Category.FULL_HOUSE,
                  score=25, dice_values=[2, 2, 3, 3, 3])
    e = log.entries[0]
    assert e.event_type == "score"
    assert e.category == Category.FULL_HOUSE
    assert e.score == 25
    assert e.round == 3


# ── 2. Filtering ─────────────────────────────────────────────────────────────


def _sample_log():
    log = GameLog()
    log.log_roll(1, Player.HUMAN, 1, [1, 1, 2, 3, 4])
    log.log_score(1, Player.HUMAN, Category.ACES, 2, [1, 1, 2, 3, 4])
    log.log_roll(1, Player.AI, 1, [6, 6, 6, 2, 3])
    log.log_lock_change(1, Player.AI, [0, 1, 2], [6, 6, 6, 2, 3])
    log.log_roll(1, Player.AI, 2, [6, 6, 6, 6, 3])
    log.log_score(1, Player.AI, Category.FOUR_OF_KIND, 27, [6, 6, 6, 6, 3])
    log.log_roll(2, Player.HUMAN, 1, [5, 5, 5, 5, 5])
    log.log_score(2, Player.HUMAN, Category.YAHTZEE, 50, [5, 5, 5, 5, 5])
    return log


def test_get_turn_entries_filters_by_round_and_player():
    entries = _sample_log().get_turn_entries(1, Player.AI)
    assert [e.event_type for e in entries] == ["roll", "lock", "roll", "score"]


def test_get_turn_entries_empty_for_unplayed_turn():
    assert _sample_log().get_turn_entries(2, Player.AI) == []


def test_get_score_entries_all_players():
    scores = _sample_log().get_score_entries()
    assert [e.category for e in scores] == [
        Category.ACES, Category.FOUR_OF_KIND, Category.YAHTZEE]


def test_get_score_entries_one_player():
    scores = _sample_log().get_score_entries(Player.HUMAN)
    assert [e.score for e in scores] == [2, 50]


# ── 3. Clear ─────────────────────────────────────────────────────────────────


def test_clear():
    log = _sample_log()
    log.clear()
    assert log.entries == []
    assert log.get_score_entries() == []


# ── 4. Ordering ──────────────────────────────────────────────────────────────


def test_entries_keep_insertion_order():
    log = _sample_log()
    rounds = [(e.round, e.player) for e in log.entries]
    assert rounds == [
        (1, Player.HUMAN), (1, Player.HUMAN),
        (1, Player.AI), (1, Player.AI), (1, Player.AI), (1, Player.AI),
        (2, Player.HUMAN), (2, Player.HUMAN),
    ]
