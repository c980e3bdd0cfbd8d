"""
Yahtzee Game Engine - Pure game logic for a human-vs-AI match

Scoring, dice and the turn/round state machine, with no UI dependencies.
Every game operation takes an immutable GameState and returns a new one;
precondition violations raise a YahtzeeError subclass and leave the input
state untouched.
"""
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple
import random


NUM_DICE = 5
MAX_ROLLS = 3
NUM_ROUNDS = 13
UPPER_BONUS_THRESHOLD = 63
UPPER_BONUS = 35
YAHTZEE_BONUS = 100


class Category(Enum):
    """Yahtzee score categories"""
    ACES = "Aces"
    TWOS = "Twos"
    THREES = "Threes"
    FOURS = "Fours"
    FIVES = "Fives"
    SIXES = "Sixes"
    THREE_OF_KIND = "3 of a Kind"
    FOUR_OF_KIND = "4 of a Kind"
    FULL_HOUSE = "Full House"
    SMALL_STRAIGHT = "Small Straight"
    LARGE_STRAIGHT = "Large Straight"
    YAHTZEE = "Yahtzee"
    CHANCE = "Chance"


UPPER_CATEGORIES = (Category.ACES, Category.TWOS, Category.THREES,
                    Category.FOURS, Category.FIVES, Category.SIXES)
LOWER_CATEGORIES = (Category.THREE_OF_KIND, Category.FOUR_OF_KIND,
                    Category.FULL_HOUSE, Category.SMALL_STRAIGHT,
                    Category.LARGE_STRAIGHT, Category.YAHTZEE, Category.CHANCE)

FACE_VALUES = {cat: face for face, cat in enumerate(UPPER_CATEGORIES, start=1)}


class Player(Enum):
    HUMAN = "human"
    AI = "ai"


class Winner(Enum):
    HUMAN = "human"
    AI = "ai"
    TIE = "tie"


class GameStatus(Enum):
    SETUP = "setup"
    PLAYING = "playing"
    FINISHED = "finished"


class TurnPhase(Enum):
    """Per-turn sub-state, derived from rolls_left and the scored flag."""
    AWAITING_ROLL = "awaiting_roll"   # no roll yet this turn
    CAN_ACT = "can_act"               # may reroll, lock or score
    MUST_SCORE = "must_score"         # out of rolls
    SCORED = "scored"                 # category recorded, turn must end


# ══════════════════════════════════════════════════════════════════════════════
# Errors
# ══════════════════════════════════════════════════════════════════════════════

class YahtzeeError(Exception):
    """Base class for every rule violation reported by the engine."""


class InvalidActionError(YahtzeeError):
    """Operation attempted out of turn or in the wrong phase."""


class IndexOutOfRangeError(YahtzeeError, IndexError):
    """Die index outside 0-4."""


class CategoryAlreadyUsedError(YahtzeeError):
    """Category already holds a score for this player."""


class NoRollYetError(YahtzeeError):
    """Scoring attempted before the first roll of the turn."""


class NoCategoryAvailableError(YahtzeeError):
    """No open category left to choose from (internal invariant violation)."""


class GameNotFinishedError(YahtzeeError):
    """Winner requested before the game finished."""


# ══════════════════════════════════════════════════════════════════════════════
# Scoring
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ScoreResult:
    """Outcome of scoring a hand in one category."""
    eligible: bool
    value: int


_SMALL_STRAIGHTS = ({1, 2, 3, 4}, {2, 3, 4, 5}, {3, 4, 5, 6})
_LARGE_STRAIGHTS = ({1, 2, 3, 4, 5}, {2, 3, 4, 5, 6})


def dice_values(dice) -> Tuple[int, ...]:
    """Normalize a DiceHand or a plain sequence of ints to a tuple of ints."""
    if isinstance(dice, DiceHand):
        return dice.values
    return tuple(dice)


def count_values(dice) -> Counter:
    """
    Count occurrences of each die value

    Args:
        dice: DiceHand or sequence of 5 ints

    Returns:
        Counter object with die values as keys
    """
    return Counter(dice_values(dice))


def has_n_of_kind(dice, n: int) -> bool:
    """True if at least n dice show the same value."""
    return max(count_values(dice).values()) >= n


def has_full_house(dice) -> bool:
    """
    Check if dice form a full house (3 of one value, 2 of another)

    Five of a kind is not a full house: the counts must be exactly [3, 2].
    """
    counts = count_values(dice)
    return sorted(counts.values(), reverse=True) == [3, 2]


def has_small_straight(dice) -> bool:
    """True if the distinct faces contain 4 consecutive values."""
    faces = set(dice_values(dice))
    return any(straight.issubset(faces) for straight in _SMALL_STRAIGHTS)


def has_large_straight(dice) -> bool:
    """True if the distinct faces are exactly 1-5 or 2-6."""
    faces = set(dice_values(dice))
    return any(straight == faces for straight in _LARGE_STRAIGHTS)


def has_yahtzee(dice) -> bool:
    """True if all five dice match."""
    return has_n_of_kind(dice, 5)


def score(dice, category: Category) -> ScoreResult:
    """
    Score a hand in a category.

    Pure and total over valid 5-die hands; the input is never modified.

    Args:
        dice: DiceHand or sequence of 5 ints
        category: Category enum value

    Returns:
        ScoreResult with the eligibility flag and the points (0 if not eligible)
    """
    values = dice_values(dice)
    total = sum(values)

    if category in FACE_VALUES:
        face = FACE_VALUES[category]
        return ScoreResult(True, sum(v for v in values if v == face))

    if category == Category.THREE_OF_KIND:
        eligible = has_n_of_kind(values, 3)
        return ScoreResult(eligible, total if eligible else 0)

    if category == Category.FOUR_OF_KIND:
        eligible = has_n_of_kind(values, 4)
        return ScoreResult(eligible, total if eligible else 0)

    if category == Category.FULL_HOUSE:
        eligible = has_full_house(values)
        return ScoreResult(eligible, 25 if eligible else 0)

    if category == Category.SMALL_STRAIGHT:
        eligible = has_small_straight(values)
        return ScoreResult(eligible, 30 if eligible else 0)

    if category == Category.LARGE_STRAIGHT:
        eligible = has_large_straight(values)
        return ScoreResult(eligible, 40 if eligible else 0)

    if category == Category.YAHTZEE:
        eligible = has_yahtzee(values)
        return ScoreResult(eligible, 50 if eligible else 0)

    # Chance
    return ScoreResult(True, total)


def preview_score(dice, category: Category) -> int:
    """Points the hand would earn in category (UI hinting)."""
    return score(dice, category).value


def score_previews(dice) -> Dict[Category, int]:
    """Preview points for every category at once."""
    return {cat: preview_score(dice, cat) for cat in Category}


def upper_bonus(scores: Dict[Category, Optional[int]]) -> int:
    """35 if the recorded upper-section scores sum to 63 or more, else 0."""
    upper_sum = sum(scores.get(cat) or 0 for cat in UPPER_CATEGORIES)
    return UPPER_BONUS if upper_sum >= UPPER_BONUS_THRESHOLD else 0


def grand_total(scores: Dict[Category, Optional[int]], yahtzee_bonus_count: int = 0) -> int:
    """Recorded scores + upper bonus + 100 per bonus Yahtzee."""
    base = sum(value for value in scores.values() if value is not None)
    return base + upper_bonus(scores) + YAHTZEE_BONUS * yahtzee_bonus_count


# ══════════════════════════════════════════════════════════════════════════════
# Score sheet
# ══════════════════════════════════════════════════════════════════════════════

def _empty_scores() -> Dict[Category, Optional[int]]:
    return {category: None for category in Category}


@dataclass(frozen=True)
class ScoreSheet:
    """One player's scorecard. Totals are always derived, never stored."""
    scores: Dict[Category, Optional[int]] = field(default_factory=_empty_scores)
    yahtzee_bonus_count: int = 0

    def is_filled(self, category: Category) -> bool:
        """Check if a category has been filled"""
        return self.scores.get(category) is not None

    def is_complete(self) -> bool:
        return all(value is not None for value in self.scores.values())

    def available_categories(self) -> List[Category]:
        """Unfilled categories, in scorecard order."""
        return [cat for cat in Category if not self.is_filled(cat)]

    def upper_total(self) -> int:
        return sum(self.scores.get(cat) or 0 for cat in UPPER_CATEGORIES)

    def upper_bonus(self) -> int:
        return upper_bonus(self.scores)

    def lower_total(self) -> int:
        return sum(self.scores.get(cat) or 0 for cat in LOWER_CATEGORIES)

    def yahtzee_bonuses(self) -> int:
        """Total bonus-Yahtzee points (+100 per additional Yahtzee)."""
        return YAHTZEE_BONUS * self.yahtzee_bonus_count

    def grand_total(self) -> int:
        return grand_total(self.scores, self.yahtzee_bonus_count)

    def with_score(self, category: Category, value: int) -> 'ScoreSheet':
        """Return a new ScoreSheet with value recorded in category.

        Raises:
            CategoryAlreadyUsedError: category already holds a score
        """
        if self.is_filled(category):
            raise CategoryAlreadyUsedError(f"{category.value} has already been scored")
        new_scores = dict(self.scores)
        new_scores[category] = value
        return replace(self, scores=new_scores)

    def with_yahtzee_bonus(self) -> 'ScoreSheet':
        return replace(self, yahtzee_bonus_count=self.yahtzee_bonus_count + 1)


# ══════════════════════════════════════════════════════════════════════════════
# Dice
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DiceHand:
    """Five die faces plus their lock flags - immutable"""
    values: Tuple[int, ...] = (1, 1, 1, 1, 1)
    locked: Tuple[bool, ...] = (False, False, False, False, False)

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))
        object.__setattr__(self, "locked", tuple(bool(flag) for flag in self.locked))
        if len(self.values) != NUM_DICE or len(self.locked) != NUM_DICE:
            raise ValueError(f"A hand has exactly {NUM_DICE} dice")
        for i, value in enumerate(self.values):
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"Die {i} has value {value!r}, must be a whole number")
            if not 1 <= value <= 6:
                raise ValueError(f"Die {i} has value {value}, must be between 1 and 6")

    @property
    def locked_indices(self) -> Tuple[int, ...]:
        return tuple(i for i, is_locked in enumerate(self.locked) if is_locked)

    def unlocked(self) -> 'DiceHand':
        """Return a copy with every lock cleared."""
        return replace(self, locked=(False,) * NUM_DICE)


DEFAULT_HAND = DiceHand()


def _check_index(index) -> None:
    if not isinstance(index, int) or isinstance(index, bool) or not 0 <= index < NUM_DICE:
        raise IndexOutOfRangeError(f"Die index {index!r} is out of range (0-{NUM_DICE - 1})")


def reroll(hand: DiceHand, rng=None) -> DiceHand:
    """
    Re-roll every unlocked die.

    Args:
        hand: Current hand
        rng: Object with randint(a, b) - a random.Random or the random module.
             Defaults to the module-level generator.

    Returns:
        New DiceHand; locked dice keep their value and stay locked
    """
    rng = rng or random
    values = tuple(
        value if is_locked else rng.randint(1, 6)
        for value, is_locked in zip(hand.values, hand.locked)
    )
    return replace(hand, values=values)


def toggle_lock(hand: DiceHand, index: int) -> DiceHand:
    """
    Flip the lock flag of one die.

    Raises:
        IndexOutOfRangeError: index not in 0-4
    """
    _check_index(index)
    locked = list(hand.locked)
    locked[index] = not locked[index]
    return replace(hand, locked=tuple(locked))


def with_locks(hand: DiceHand, indices: Sequence[int]) -> DiceHand:
    """Return a hand whose locked set is exactly indices."""
    for index in indices:
        _check_index(index)
    keep = set(indices)
    return replace(hand, locked=tuple(i in keep for i in range(NUM_DICE)))


# ══════════════════════════════════════════════════════════════════════════════
# Game state and turn/round state machine
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class GameState:
    """Immutable game state - complete match at a point in time"""
    round: int = 1                       # 1-13, 14 once finished
    rolls_left: int = MAX_ROLLS          # 3 at turn start
    active_player: Player = Player.HUMAN
    human: ScoreSheet = field(default_factory=ScoreSheet)
    ai: ScoreSheet = field(default_factory=ScoreSheet)
    dice: DiceHand = DEFAULT_HAND
    status: GameStatus = GameStatus.SETUP
    scored_this_turn: bool = False

    @property
    def phase(self) -> TurnPhase:
        if self.scored_this_turn:
            return TurnPhase.SCORED
        if self.rolls_left == MAX_ROLLS:
            return TurnPhase.AWAITING_ROLL
        if self.rolls_left == 0:
            return TurnPhase.MUST_SCORE
        return TurnPhase.CAN_ACT

    @property
    def rolls_used(self) -> int:
        return MAX_ROLLS - self.rolls_left

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.FINISHED

    def sheet_for(self, player: Player) -> ScoreSheet:
        return self.human if player == Player.HUMAN else self.ai


def create_game() -> GameState:
    """Create a fresh match in the SETUP state: round 1, human to move."""
    return GameState()


def active_sheet(state: GameState) -> ScoreSheet:
    """Score sheet of the player whose turn it is."""
    return state.sheet_for(state.active_player)


def _require_playing(state: GameState, player: Optional[Player]) -> None:
    if state.status != GameStatus.PLAYING:
        raise InvalidActionError(f"Game is {state.status.value}, not playing")
    if player is not None and player != state.active_player:
        raise InvalidActionError(f"It is not the {player.value} player's turn")


def start_game(state: GameState) -> GameState:
    """
    Move a new game from SETUP to PLAYING.

    Raises:
        InvalidActionError: game already started
    """
    if state.status != GameStatus.SETUP:
        raise InvalidActionError("Game has already been started")
    return replace(state,
                   status=GameStatus.PLAYING,
                   rolls_left=MAX_ROLLS,
                   active_player=Player.HUMAN)


def roll_dice(state: GameState, player: Optional[Player] = None, rng=None) -> GameState:
    """
    Roll all unlocked dice and use up one roll.

    Args:
        state: Current game state
        player: Player asking to roll; must be the active player if given
        rng: Random source with randint(a, b)

    Returns:
        New GameState with rerolled dice and rolls_left decremented

    Raises:
        InvalidActionError: not playing, wrong player, no rolls left, or turn already scored
    """
    _require_playing(state, player)
    if state.scored_this_turn:
        raise InvalidActionError("A category was already scored this turn")
    if state.rolls_left <= 0:
        raise InvalidActionError("No rolls left this turn")
    return replace(state,
                   dice=reroll(state.dice, rng),
                   rolls_left=max(0, state.rolls_left - 1))


def toggle_dice_lock(state: GameState, index: int, player: Optional[Player] = None) -> GameState:
    """
    Toggle the lock on one die.

    Locking only makes sense once the dice have been rolled this turn.

    Raises:
        InvalidActionError: before the first roll, after scoring, or out of turn
        IndexOutOfRangeError: index not in 0-4
    """
    _require_lockable(state, player)
    return replace(state, dice=toggle_lock(state.dice, index))


def lock_dice(state: GameState, indices: Sequence[int], player: Optional[Player] = None) -> GameState:
    """
    Lock exactly the dice at indices and unlock the rest, in one step.

    Raises:
        InvalidActionError: before the first roll, after scoring, or out of turn
        IndexOutOfRangeError: any index not in 0-4
    """
    _require_lockable(state, player)
    return replace(state, dice=with_locks(state.dice, indices))


def _require_lockable(state: GameState, player: Optional[Player]) -> None:
    _require_playing(state, player)
    if state.rolls_left == MAX_ROLLS:
        raise InvalidActionError("Roll the dice before locking any")
    if state.scored_this_turn:
        raise InvalidActionError("A category was already scored this turn")


def record_score(state: GameState, category: Category, player: Optional[Player] = None) -> GameState:
    """
    Score the current dice in a category for the active player.

    A Yahtzee rolled while the player's Yahtzee box already holds 50 also
    earns a bonus Yahtzee (+100). The joker rule is not applied: the category
    is scored with its normal formula.

    Raises:
        InvalidActionError: not playing, out of turn, or already scored this turn
        NoRollYetError: no roll yet this turn
        CategoryAlreadyUsedError: category already filled for this player
    """
    _require_playing(state, player)
    if state.scored_this_turn:
        raise InvalidActionError("A category was already scored this turn")
    if state.rolls_left == MAX_ROLLS:
        raise NoRollYetError("Roll the dice at least once before scoring")

    sheet = active_sheet(state)
    new_sheet = sheet.with_score(category, score(state.dice, category).value)
    if has_yahtzee(state.dice) and sheet.scores.get(Category.YAHTZEE) == 50:
        new_sheet = new_sheet.with_yahtzee_bonus()

    if state.active_player == Player.HUMAN:
        return replace(state, human=new_sheet, scored_this_turn=True)
    return replace(state, ai=new_sheet, scored_this_turn=True)


def end_turn(state: GameState) -> GameState:
    """
    Pass the dice to the other player.

    After the human's turn the AI moves in the same round. After the AI's
    turn the round advances; past round 13 the game is finished. Dice and
    rolls are reset in both cases.

    Raises:
        InvalidActionError: not playing, or no category scored this turn
    """
    _require_playing(state, None)
    if not state.scored_this_turn:
        raise InvalidActionError("Score a category before ending the turn")

    reset = dict(dice=DEFAULT_HAND, rolls_left=MAX_ROLLS, scored_this_turn=False)
    if state.active_player == Player.HUMAN:
        return replace(state, active_player=Player.AI, **reset)

    next_round = state.round + 1
    status = GameStatus.FINISHED if next_round > NUM_ROUNDS else GameStatus.PLAYING
    return replace(state,
                   round=next_round,
                   active_player=Player.HUMAN,
                   status=status,
                   **reset)


def get_winner(state: GameState) -> Winner:
    """
    Compare grand totals of a finished game.

    Raises:
        GameNotFinishedError: game still in setup or playing
    """
    if state.status != GameStatus.FINISHED:
        raise GameNotFinishedError("The game is not finished yet")
    human_total = state.human.grand_total()
    ai_total = state.ai.grand_total()
    if human_total > ai_total:
        return Winner.HUMAN
    if ai_total > human_total:
        return Winner.AI
    return Winner.TIE


def get_available_categories(state: GameState) -> List[Category]:
    """Open categories for the active player."""
    return active_sheet(state).available_categories()


def can_roll(state: GameState) -> bool:
    """Whether the active player may roll right now."""
    return (state.status == GameStatus.PLAYING and not state.scored_this_turn
            and state.rolls_left > 0)


def can_toggle_lock(state: GameState) -> bool:
    """Whether dice locks may be toggled right now."""
    return (state.status == GameStatus.PLAYING and not state.scored_this_turn
            and state.rolls_left < MAX_ROLLS)


def can_select_category(state: GameState, category: Category) -> bool:
    """Whether the active player may score category right now."""
    return (state.status == GameStatus.PLAYING and not state.scored_this_turn
            and state.rolls_left < MAX_ROLLS
            and not active_sheet(state).is_filled(category))
