"""
Yahtzee AI — Strategy tiers, continue/finalize policy, turn drivers, and the
stateless decide() boundary.

Contains:
- Pattern helpers (straight runs, most frequent face)
- should_finalize(): shared "keep rolling or score now" policy
- YahtzeeStrategy abstract base class
- BeginnerStrategy, IntermediateStrategy, ExpertStrategy
- play_ai_turn() and play_match() turn drivers
- ScoreState, DecisionRequest, Decision and decide() for replayable requests
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import logging

from game_engine import (
    Category, GameState, Player, ScoreSheet,
    MAX_ROLLS, NUM_ROUNDS, UPPER_BONUS, UPPER_BONUS_THRESHOLD,
    UPPER_CATEGORIES,
    DiceHand, NoCategoryAvailableError,
    count_values, has_large_straight, has_small_straight,
    score, preview_score,
    active_sheet, create_game, start_game, roll_dice, lock_dice,
    record_score, end_turn,
)

logger = logging.getLogger(__name__)


class AILevel(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


# ── Pattern helpers ─────────────────────────────────────────────────────────

_LARGE_RUNS = ((1, 2, 3, 4, 5), (2, 3, 4, 5, 6))
_SMALL_RUNS = ((1, 2, 3, 4), (2, 3, 4, 5), (3, 4, 5, 6))


@dataclass(frozen=True)
class StraightPattern:
    """Best straight run found among the distinct faces."""
    kind: str                 # "large", "small", "partial" or "none"
    faces: Tuple[int, ...] = ()


def detect_straight(values: Sequence[int]) -> StraightPattern:
    """Find a large straight, a 4-run, or the lowest 3-run of distinct faces."""
    unique = sorted(set(values))
    for run in _LARGE_RUNS:
        if tuple(unique) == run:
            return StraightPattern("large", run)
    for run in _SMALL_RUNS:
        if set(run).issubset(unique):
            return StraightPattern("small", run)
    for i in range(len(unique) - 2):
        if unique[i + 1] == unique[i] + 1 and unique[i + 2] == unique[i] + 2:
            return StraightPattern("partial", tuple(unique[i:i + 3]))
    return StraightPattern("none")


def _one_die_per_face(values: Sequence[int], faces: Sequence[int]) -> Tuple[int, ...]:
    """Indices of the first die showing each of faces."""
    keep = []
    seen = set()
    for i, v in enumerate(values):
        if v in faces and v not in seen:
            keep.append(i)
            seen.add(v)
    return tuple(keep)


def _all_of_faces(values: Sequence[int], faces) -> Tuple[int, ...]:
    return tuple(i for i, v in enumerate(values) if v in faces)


def _most_frequent_face(values: Sequence[int]) -> int:
    """Face with the highest count; ties go to the higher face."""
    counts = count_values(values)
    return max(counts.items(), key=lambda item: (item[1], item[0]))[0]


# ── Continue / finalize policy ──────────────────────────────────────────────

def should_finalize(values: Sequence[int], rolls_left: int, available: Sequence[Category]) -> bool:
    """Decide whether the AI stops rolling and scores now.

    Shared by every strategy tier. Complete Yahtzees and large straights are
    banked at once; near-misses are chased while rolls remain.

    Args:
        values: The 5 current die faces
        rolls_left: Rolls still available this turn (0-2 after the first roll)
        available: Open categories for the AI

    Returns:
        True to score now, False to keep rolling
    """
    if rolls_left <= 0:
        return True

    open_cats = set(available)
    counts = count_values(values)
    shape = sorted(counts.values(), reverse=True)
    best_count = shape[0]
    best_face = _most_frequent_face(values)

    # Cannot be improved
    if best_count == 5 and Category.YAHTZEE in open_cats:
        return True
    if has_large_straight(values) and Category.LARGE_STRAIGHT in open_cats:
        return True

    if best_count >= 4:
        if best_face >= 5 and Category.YAHTZEE in open_cats:
            return False
        if Category.FOUR_OF_KIND in open_cats:
            return True

    if has_small_straight(values):
        if Category.LARGE_STRAIGHT in open_cats:
            return False
        if Category.SMALL_STRAIGHT in open_cats:
            return True

    if shape == [3, 2] and Category.FULL_HOUSE in open_cats:
        return True

    if best_count == 3:
        if rolls_left >= 2:
            return False
        if best_face >= 5 or shape[1] == 2:
            return False
        if Category.THREE_OF_KIND in open_cats:
            return True

    # Two pairs: chase the full house
    if shape[:2] == [2, 2]:
        return False

    if rolls_left >= 2:
        return False
    return best_count > 2


# ── Strategy Interface ──────────────────────────────────────────────────────

# Sacrifice order when nothing on the board is eligible, least valuable first
_WASTE_ORDER = (
    Category.YAHTZEE,
    Category.LARGE_STRAIGHT,
    Category.FULL_HOUSE,
    Category.SMALL_STRAIGHT,
    Category.ACES,
    Category.TWOS,
    Category.THREES,
    Category.FOUR_OF_KIND,
    Category.THREE_OF_KIND,
    Category.FOURS,
    Category.FIVES,
    Category.SIXES,
    Category.CHANCE,
)

# Average score a category yields (fixed published values)
CATEGORY_AVERAGES = {
    Category.ACES: 1.9,
    Category.TWOS: 3.8,
    Category.THREES: 5.7,
    Category.FOURS: 7.6,
    Category.FIVES: 9.5,
    Category.SIXES: 11.4,
    Category.THREE_OF_KIND: 15.0,
    Category.FOUR_OF_KIND: 18.0,
    Category.FULL_HOUSE: 25.0,
    Category.SMALL_STRAIGHT: 30.0,
    Category.LARGE_STRAIGHT: 40.0,
    Category.YAHTZEE: 50.0,
    Category.CHANCE: 21.0,
}


def efficiency(category: Category, points: int) -> float:
    """Ratio of points to the category's average score."""
    return points / max(CATEGORY_AVERAGES[category], 1.0)


def sacrifice_category(available: Sequence[Category]) -> Category:
    """Pick the least damaging open category to fill with a zero."""
    for cat in _WASTE_ORDER:
        if cat in available:
            return cat
    return available[0]


class YahtzeeStrategy(ABC):
    """Abstract base class for the AI tiers.

    Subclasses decide which dice to keep and how much each eligible category
    is worth; choose_category() handles candidate filtering and ties.
    """

    level: AILevel

    @abstractmethod
    def choose_dice_to_keep(self, values: Sequence[int], round: int = 1) -> Tuple[int, ...]:
        """Return indices (0-4) of the dice to keep for the next roll."""
        ...

    @abstractmethod
    def category_value(self, category: Category, points: int,
                       available: Sequence[Category], upper_sum: int, round: int) -> float:
        """Heuristic value of scoring points in category."""
        ...

    def choose_category(self, values: Sequence[int], available: Sequence[Category],
                        upper_sum: int = 0, round: int = 1) -> Category:
        """Pick the category to score the current dice in.

        Args:
            values: The 5 die faces
            available: Open categories for this player
            upper_sum: Player's recorded upper-section total
            round: Current round (1-13)

        Raises:
            NoCategoryAvailableError: available is empty
        """
        if not available:
            raise NoCategoryAvailableError("No open category to score in")

        candidates = [cat for cat in available if score(values, cat).eligible]
        if not candidates:
            return sacrifice_category(available)

        best_cat = candidates[0]
        best_value = None
        for cat in candidates:
            value = self.category_value(cat, preview_score(values, cat),
                                        available, upper_sum, round)
            if best_value is None or value > best_value:
                best_value = value
                best_cat = cat
        return best_cat


# ── BeginnerStrategy ───────────────────────────────────────────────────────

_BEGINNER_WEIGHTS = {
    Category.YAHTZEE: 1.0,
    Category.LARGE_STRAIGHT: 0.9,
    Category.FULL_HOUSE: 0.85,
    Category.SMALL_STRAIGHT: 0.8,
    Category.FOUR_OF_KIND: 0.75,
    Category.SIXES: 0.65,
    Category.FIVES: 0.6,
    Category.THREE_OF_KIND: 0.55,
    Category.FOURS: 0.5,
    Category.THREES: 0.4,
    Category.TWOS: 0.35,
    Category.ACES: 0.3,
    Category.CHANCE: 0.25,
}


class BeginnerStrategy(YahtzeeStrategy):
    """Greedy play: chase any straight, else the most common face.

    Categories are ranked by raw score times a fixed weight favouring the
    rare, high-value boxes.
    """

    level = AILevel.BEGINNER

    def choose_dice_to_keep(self, values, round=1):
        pattern = detect_straight(values)
        if pattern.kind != "none":
            return _all_of_faces(values, pattern.faces)
        return _all_of_faces(values, {_most_frequent_face(values)})

    def category_value(self, category, points, available, upper_sum, round):
        return points * _BEGINNER_WEIGHTS[category]


# ── IntermediateStrategy ───────────────────────────────────────────────────

_INTERMEDIATE_RARITY = {
    Category.YAHTZEE: 25,
    Category.LARGE_STRAIGHT: 20,
    Category.FULL_HOUSE: 15,
    Category.SMALL_STRAIGHT: 12,
    Category.FOUR_OF_KIND: 10,
    Category.THREE_OF_KIND: 5,
    Category.CHANCE: -5,
}


def _open_upper(available: Sequence[Category]) -> List[Category]:
    return [cat for cat in available if cat in UPPER_CATEGORIES]


class IntermediateStrategy(YahtzeeStrategy):
    """Pattern-driven holds plus upper-bonus management.

    Hold priority: large straight, three or more of a kind, small straight,
    two pairs, a 3-run, a pair of 4s or better, then Beginner play. A full
    house or a triple with a pair always contains a triple, so those hands
    keep the triple.
    """

    level = AILevel.INTERMEDIATE

    def choose_dice_to_keep(self, values, round=1):
        pattern = detect_straight(values)
        counts = count_values(values)

        if pattern.kind == "large":
            return _one_die_per_face(values, pattern.faces)

        for face, count in sorted(counts.items()):
            if count >= 3:
                return _all_of_faces(values, {face})

        if pattern.kind == "small":
            return _one_die_per_face(values, pattern.faces)

        pairs = {face for face, count in counts.items() if count == 2}
        if len(pairs) == 2:
            return _all_of_faces(values, pairs)

        if pattern.kind == "partial":
            return _one_die_per_face(values, pattern.faces)

        high_pairs = sorted(face for face, count in counts.items() if count >= 2 and face >= 4)
        if high_pairs:
            return _all_of_faces(values, {high_pairs[0]})

        return BeginnerStrategy().choose_dice_to_keep(values, round)

    def category_value(self, category, points, available, upper_sum, round):
        value = float(points)

        if category in UPPER_CATEGORIES:
            needed = UPPER_BONUS_THRESHOLD - upper_sum
            open_upper = _open_upper(available)
            if needed > 0 and open_upper:
                avg_needed = needed / len(open_upper)
                if points >= avg_needed * 0.8:
                    value += UPPER_BONUS * (points / avg_needed) * 0.5
            if upper_sum >= UPPER_BONUS_THRESHOLD:
                value *= 0.7

        value += _INTERMEDIATE_RARITY.get(category, 0)
        value *= 0.5 + efficiency(category, points) * 0.5
        return value


# ── ExpertStrategy ─────────────────────────────────────────────────────────

_EXPERT_RARITY = {
    Category.YAHTZEE: 30,
    Category.LARGE_STRAIGHT: 25,
    Category.FULL_HOUSE: 18,
    Category.SMALL_STRAIGHT: 15,
    Category.FOUR_OF_KIND: 12,
    Category.THREE_OF_KIND: 6,
    Category.CHANCE: -8,
}

# (last round, share of avg needed to qualify, share of the 35 bonus), tried in order
_BONUS_PHASES = ((6, 0.7, 0.8), (10, 0.6, 0.6), (NUM_ROUNDS, 0.9, 0.4))
# (last round, minimum efficiency, penalty multiplier below it), tried in order
_EFFICIENCY_PHASES = ((5, 0.7, 0.7), (10, 0.6, 0.8), (NUM_ROUNDS, 0.5, 0.9))


def _first_band(bands, round, hit):
    """Factor of the first band whose round limit and bar both hold, else None.

    A hand that misses an early bar still gets checked against the later ones.
    """
    for last_round, bar, factor in bands:
        if round <= last_round and hit(bar):
            return factor
    return None


def bonus_probability(upper_sum: int, available: Sequence[Category]) -> float:
    """Rough chance of still reaching the 63-point upper bonus.

    Assumes 3.5 points per open upper box, clamped to [0, 1].
    """
    if upper_sum >= UPPER_BONUS_THRESHOLD:
        return 1.0
    open_upper = _open_upper(available)
    if not open_upper:
        return 0.0
    needed = UPPER_BONUS_THRESHOLD - upper_sum
    expected = len(open_upper) * 3.5
    return min(1.0, max(0.0, (expected - needed) / UPPER_BONUS))


class ExpertStrategy(YahtzeeStrategy):
    """Round-aware play.

    Early rounds chase Yahtzees from four of a kind or a high triple. Category
    values weigh the bonus probability by game phase, raise rarity premiums
    late, penalize inefficient scores, and favour bankable points when three
    or fewer rounds remain.
    """

    level = AILevel.EXPERT

    def choose_dice_to_keep(self, values, round=1):
        if round <= 5:
            counts = count_values(values)
            for face, count in counts.items():
                if count == 4:
                    return _all_of_faces(values, {face})
            for face, count in counts.items():
                if count == 3 and face >= 5:
                    return _all_of_faces(values, {face})
        return IntermediateStrategy().choose_dice_to_keep(values, round)

    def category_value(self, category, points, available, upper_sum, round):
        value = float(points)
        rounds_left = NUM_ROUNDS - round

        if category in UPPER_CATEGORIES:
            needed = UPPER_BONUS_THRESHOLD - upper_sum
            open_upper = _open_upper(available)
            if needed > 0 and open_upper:
                avg_needed = needed / len(open_upper)
                weight = _first_band(_BONUS_PHASES, round, lambda bar: points >= avg_needed * bar)
                if weight is not None:
                    value += UPPER_BONUS * bonus_probability(upper_sum, available) * weight
            if upper_sum >= UPPER_BONUS_THRESHOLD:
                value *= 0.6

        rarity_multiplier = 1.5 if round >= 10 else 1.0
        value += _EXPERT_RARITY.get(category, 0) * rarity_multiplier

        ratio = efficiency(category, points)
        penalty = _first_band(_EFFICIENCY_PHASES, round, lambda floor: ratio < floor)
        if penalty is not None:
            value *= penalty

        if rounds_left <= 3:
            value *= 1.2
        return value


_STRATEGIES = {
    AILevel.BEGINNER: BeginnerStrategy,
    AILevel.INTERMEDIATE: IntermediateStrategy,
    AILevel.EXPERT: ExpertStrategy,
}


def make_strategy(level) -> YahtzeeStrategy:
    """Create the strategy for an AILevel or its string value ("expert")."""
    return _STRATEGIES[AILevel(level)]()


# ── Turn drivers ────────────────────────────────────────────────────────────

def apply_keep(state: GameState, keep: Sequence[int], player: Optional[Player] = None) -> GameState:
    """Lock exactly the dice in keep, unlocking the rest."""
    return lock_dice(state, keep, player)


def play_ai_turn(state: GameState, strategy: YahtzeeStrategy, rng=None) -> GameState:
    """Play the active player's whole turn with strategy.

    Mandatory first roll, then keep/reroll until should_finalize() says stop,
    then score and end the turn.

    Args:
        state: Playing state at the start of a turn (rolls_left == 3)
        strategy: Decision maker for this seat
        rng: Random source for the dice

    Returns:
        State after end_turn()
    """
    player = state.active_player
    state = roll_dice(state, player, rng)
    sheet = active_sheet(state)
    available = sheet.available_categories()

    while not should_finalize(state.dice.values, state.rolls_left, available):
        keep = strategy.choose_dice_to_keep(state.dice.values, state.round)
        logger.debug("%s keeps %s from %s", player.value, keep, state.dice.values)
        state = apply_keep(state, keep, player)
        state = roll_dice(state, player, rng)

    category = strategy.choose_category(state.dice.values, available,
                                        sheet.upper_total(), state.round)
    logger.debug("%s scores %s with %s", player.value, category.value, state.dice.values)
    state = record_score(state, category, player)
    return end_turn(state)


def play_match(human_strategy: YahtzeeStrategy, ai_strategy: YahtzeeStrategy, rng=None) -> GameState:
    """Play a complete 13-round match with a strategy in each seat.

    Returns:
        Finished GameState
    """
    state = start_game(create_game())
    while not state.is_finished:
        strategy = human_strategy if state.active_player == Player.HUMAN else ai_strategy
        state = play_ai_turn(state, strategy, rng)
    return state


# ── decide() boundary ──────────────────────────────────────────────────────

_ALL_CATEGORIES = list(Category)
_CATEGORY_BY_NAME = {cat.name: cat for cat in Category}


@dataclass(frozen=True)
class ScoreState:
    """Compact, replayable view of one player's score sheet."""
    used_mask: int = 0               # bit i set = list(Category)[i] is filled
    upper_sum: int = 0
    yahtzee_scored: bool = False
    yahtzee_bonus_count: int = 0

    @classmethod
    def from_sheet(cls, sheet: ScoreSheet) -> 'ScoreState':
        mask = 0
        for i, cat in enumerate(_ALL_CATEGORIES):
            if sheet.is_filled(cat):
                mask |= 1 << i
        return cls(
            used_mask=mask,
            upper_sum=sheet.upper_total(),
            yahtzee_scored=sheet.is_filled(Category.YAHTZEE),
            yahtzee_bonus_count=sheet.yahtzee_bonus_count,
        )

    @property
    def available_categories(self) -> List[Category]:
        return [cat for i, cat in enumerate(_ALL_CATEGORIES) if not self.used_mask & (1 << i)]

    @property
    def round(self) -> int:
        """Each round fills exactly one box, so the round follows from the mask."""
        return min(NUM_ROUNDS, bin(self.used_mask).count("1") + 1)

    def to_dict(self) -> dict:
        return {
            "used_mask": self.used_mask,
            "upper_sum": self.upper_sum,
            "yahtzee_scored": self.yahtzee_scored,
            "yahtzee_bonus_count": self.yahtzee_bonus_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ScoreState':
        return cls(
            used_mask=int(data.get("used_mask", 0)),
            upper_sum=int(data.get("upper_sum", 0)),
            yahtzee_scored=bool(data.get("yahtzee_scored", False)),
            yahtzee_bonus_count=int(data.get("yahtzee_bonus_count", 0)),
        )


@dataclass(frozen=True)
class DecisionRequest:
    """Everything an AI tier needs for one decision, with no game object."""
    level: AILevel
    dice: Tuple[int, ...]
    roll_number: int                 # 1-3 rolls made so far this turn
    score_state: ScoreState = field(default_factory=ScoreState)
    finalize: bool = False           # True forces a category choice

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "dice": list(self.dice),
            "roll_number": self.roll_number,
            "score_state": self.score_state.to_dict(),
            "finalize": self.finalize,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'DecisionRequest':
        return cls(
            level=AILevel(data["level"]),
            dice=tuple(data["dice"]),
            roll_number=int(data["roll_number"]),
            score_state=ScoreState.from_dict(data.get("score_state", {})),
            finalize=bool(data.get("finalize", False)),
        )


@dataclass(frozen=True)
class Decision:
    """Either dice to keep for another roll, or the category to score."""
    keep_indices: Optional[Tuple[int, ...]] = None
    category: Optional[Category] = None
    score: Optional[int] = None

    @property
    def is_final(self) -> bool:
        return self.category is not None

    def to_dict(self) -> dict:
        if self.is_final:
            return {"category": self.category.name, "score": self.score}
        return {"keep_indices": list(self.keep_indices)}

    @classmethod
    def from_dict(cls, data: dict) -> 'Decision':
        if "category" in data:
            return cls(category=_CATEGORY_BY_NAME[data["category"]], score=data.get("score"))
        return cls(keep_indices=tuple(data["keep_indices"]))


def decide(request: DecisionRequest) -> Decision:
    """Answer one AI request: keep dice and roll again, or score now.

    The third roll always ends in a category choice; earlier rolls follow
    should_finalize() unless the request forces the choice.

    Raises:
        ValueError: malformed dice or roll number
        NoCategoryAvailableError: every category is already used
    """
    if not 1 <= request.roll_number <= MAX_ROLLS:
        raise ValueError(f"roll_number must be between 1 and {MAX_ROLLS}, got {request.roll_number}")
    values = DiceHand(values=tuple(request.dice)).values
    strategy = make_strategy(request.level)
    state = request.score_state
    available = state.available_categories
    rolls_left = MAX_ROLLS - request.roll_number

    if request.finalize or should_finalize(values, rolls_left, available):
        category = strategy.choose_category(values, available, state.upper_sum, state.round)
        decision = Decision(category=category, score=preview_score(values, category))
    else:
        decision = Decision(keep_indices=strategy.choose_dice_to_keep(values, state.round))
    logger.debug("decide(%s, %s, roll %d) -> %s", request.level.value, values,
                 request.roll_number, decision)
    return decision
