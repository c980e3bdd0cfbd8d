"""
GameCoordinator — All non-UI match coordination logic.

Owns the game state, the AI seat's strategy, frame-based pacing for rolls and
AI decisions, and the game log. A frontend reads coordinator properties to
decide what to render and calls the action methods in response to user input.
"""
from __future__ import annotations

import argparse
import logging
import random

from ai import AILevel, YahtzeeStrategy, apply_keep, make_strategy, should_finalize
from game_engine import (
    Category,
    DiceHand,
    GameState,
    Player,
    ScoreSheet,
    TurnPhase,
    Winner,
    YahtzeeError,
    can_roll,
    can_select_category,
    can_toggle_lock,
    create_game,
    end_turn,
    get_available_categories,
    get_winner,
    preview_score,
    record_score,
    start_game,
)
from game_engine import roll_dice as engine_roll_dice
from game_engine import toggle_dice_lock as engine_toggle_lock
from game_log import GameLog
from settings import AI_LEVELS, SPEEDS

logger = logging.getLogger(__name__)

# Speed presets for AI playback: (ai_delay, roll_duration, hold_show_duration) in frames
SPEED_PRESETS = {
    "slow":    (60, 90, 30),
    "normal":  (30, 60, 20),
    "fast":    (10, 20, 8),
    "instant": (0, 0, 0),
}
SPEED_NAMES = list(SPEEDS)


class GameCoordinator:
    """Coordinates a human-vs-AI match: human commands, AI pacing, turn hand-off.

    Human commands return True on success. A rejected command returns False,
    leaves the state untouched and stores the reason in last_error.
    """

    def __init__(self, ai_level: AILevel | str = AILevel.INTERMEDIATE,
                 speed: str = "normal", rng=None) -> None:
        """Initialize the coordinator and start a new match.

        Args:
            ai_level: Strategy tier of the AI seat.
            speed: Speed preset name ("slow", "normal", "fast", "instant").
            rng: Random source for the dice; defaults to the random module.
        """
        self.ai_level = AILevel(ai_level)
        self.ai_strategy: YahtzeeStrategy = make_strategy(self.ai_level)
        self.rng = rng or random
        self.speed_name = speed
        self.ai_delay, self.roll_duration, self.ai_hold_show_duration = SPEED_PRESETS[speed]

        self.state: GameState = start_game(create_game())
        self.game_log = GameLog()
        self.last_error: str | None = None

        # Score animation signal: set when a category is scored, consumed by the UI
        self.last_scored_category: Category | None = None

        self._reset_turn_flags()

    def _reset_turn_flags(self) -> None:
        """Clear roll animation and AI pacing state for a new turn."""
        self.ai_timer = 0
        self.ai_needs_first_roll = True
        self.ai_reason = ""
        self.ai_showing_holds = False
        self.ai_hold_timer = 0

        # AI score choice preview: the chosen category is highlighted before committing
        self.ai_showing_score_choice = False
        self.ai_score_choice_category: Category | None = None
        self.ai_score_choice_timer = 0

        # Roll animation lifecycle (coordinator owns timing; UI owns display randomization)
        self.is_rolling = False
        self.roll_timer = 0
        self.final_values: list[int] = []
        self._pending_state: GameState | None = None

    # ── Properties ────────────────────────────────────────────────────────

    @property
    def dice(self) -> DiceHand:
        return self.state.dice

    @property
    def rolls_left(self) -> int:
        return self.state.rolls_left

    @property
    def rolls_used(self) -> int:
        return self.state.rolls_used

    @property
    def current_round(self) -> int:
        """Current round number (1-13), capped once the game is over."""
        return min(self.state.round, 13)

    @property
    def game_over(self) -> bool:
        return self.state.is_finished

    @property
    def phase(self) -> TurnPhase:
        return self.state.phase

    @property
    def active_player(self) -> Player:
        return self.state.active_player

    @property
    def is_human_turn(self) -> bool:
        return not self.game_over and self.state.active_player == Player.HUMAN

    @property
    def human_sheet(self) -> ScoreSheet:
        return self.state.human

    @property
    def ai_sheet(self) -> ScoreSheet:
        return self.state.ai

    @property
    def scorecard(self) -> ScoreSheet:
        """Score sheet of the player whose turn it is."""
        return self.state.sheet_for(self.state.active_player)

    @property
    def available_categories(self) -> list[Category]:
        return get_available_categories(self.state)

    @property
    def winner(self) -> Winner | None:
        """Winner once the game is over, else None."""
        if not self.game_over:
            return None
        return get_winner(self.state)

    @property
    def can_roll_now(self) -> bool:
        """Whether the human may roll right now."""
        return self.is_human_turn and not self.is_rolling and can_roll(self.state)

    @property
    def can_toggle_now(self) -> bool:
        return self.is_human_turn and not self.is_rolling and can_toggle_lock(self.state)

    def can_select_now(self, category: Category) -> bool:
        return (self.is_human_turn and not self.is_rolling
                and can_select_category(self.state, category))

    # ── Action methods (called by the UI on human input) ─────────────────

    def _reject(self, reason) -> bool:
        self.last_error = str(reason)
        logger.info("Rejected human action: %s", reason)
        return False

    def _begin_roll(self, new_state: GameState) -> None:
        """Start the roll animation; the new state is committed during tick()."""
        self.is_rolling = True
        self.roll_timer = 0
        self.final_values = list(new_state.dice.values)
        self._pending_state = new_state

    def roll_dice(self) -> bool:
        """Start a human dice roll. Completes after roll_duration ticks."""
        if self.is_rolling:
            return self._reject("The dice are still rolling")
        try:
            new_state = engine_roll_dice(self.state, Player.HUMAN, self.rng)
        except YahtzeeError as exc:
            return self._reject(exc)
        self.last_error = None
        self._begin_roll(new_state)
        return True

    def toggle_lock(self, die_index: int) -> bool:
        """Toggle the lock on one of the human's dice."""
        if self.is_rolling:
            return self._reject("The dice are still rolling")
        try:
            self.state = engine_toggle_lock(self.state, die_index, Player.HUMAN)
        except YahtzeeError as exc:
            return self._reject(exc)
        self.last_error = None
        self.game_log.log_lock_change(self.current_round, Player.HUMAN,
                                      self.dice.locked_indices, self.dice.values)
        return True

    def select_category(self, category: Category) -> bool:
        """Score a category for the human and hand the dice to the AI."""
        if self.is_rolling:
            return self._reject("The dice are still rolling")
        points = preview_score(self.dice, category)
        dice_vals = self.dice.values
        turn = self.current_round
        try:
            scored = record_score(self.state, category, Player.HUMAN)
        except YahtzeeError as exc:
            return self._reject(exc)
        self.last_error = None
        self.state = end_turn(scored)
        self.last_scored_category = category
        self.game_log.log_score(turn, Player.HUMAN, category, points, dice_vals)
        self._reset_turn_flags()
        return True

    def reset_game(self, ai_level: AILevel | str | None = None) -> None:
        """Start a new match, optionally with a different AI level."""
        if ai_level is not None:
            self.ai_level = AILevel(ai_level)
            self.ai_strategy = make_strategy(self.ai_level)
        self.state = start_game(create_game())
        self.game_log.clear()
        self.last_error = None
        self.last_scored_category = None
        self._reset_turn_flags()

    def change_speed(self, direction: int) -> bool:
        """Change AI speed. direction=+1 for faster, -1 for slower.

        Returns True if speed actually changed, False if already at limit.
        """
        idx = SPEED_NAMES.index(self.speed_name)
        new_idx = idx + direction
        if 0 <= new_idx < len(SPEED_NAMES):
            self.speed_name = SPEED_NAMES[new_idx]
            self.ai_delay, self.roll_duration, self.ai_hold_show_duration = SPEED_PRESETS[self.speed_name]
            return True
        return False

    # ── Frame update ─────────────────────────────────────────────────────

    def tick(self) -> None:
        """Advance one frame of the match.

        Handles: roll timer, AI hold-show pause, AI score preview, AI decisions.
        The delays only pace the display; outcomes do not depend on them.
        """
        if self.game_over:
            return

        # Commit pending roll when the animation duration is reached
        if self.is_rolling:
            self.roll_timer += 1
            if self.roll_timer >= self.roll_duration:
                self.state = self._pending_state
                self._pending_state = None
                self.is_rolling = False
                self.game_log.log_roll(
                    round=self.current_round,
                    player=self.active_player,
                    roll_number=self.rolls_used,
                    dice_values=self.dice.values,
                )
            return

        # AI hold-showing pause: briefly display locked dice before rolling
        if self.ai_showing_holds:
            self.ai_hold_timer += 1
            if self.ai_hold_timer >= self.ai_hold_show_duration:
                self.ai_showing_holds = False
                self._start_ai_roll()
            return

        # AI score choice preview: highlight the chosen category, then commit
        if self.ai_showing_score_choice:
            self.ai_score_choice_timer += 1
            if self.ai_score_choice_timer >= self.ai_hold_show_duration:
                self._commit_ai_score()
            return

        if self.active_player != Player.AI:
            return

        # AI controller: paces decisions with a timer
        self.ai_timer += 1
        if self.ai_timer < self.ai_delay:
            return
        self.ai_timer = 0

        # First roll of the turn (mandatory)
        if self.ai_needs_first_roll:
            self.ai_needs_first_roll = False
            self.ai_reason = "Rolling the dice"
            self._start_ai_roll()
            return

        values = self.dice.values
        sheet = self.ai_sheet
        available = sheet.available_categories()
        if should_finalize(values, self.rolls_left, available):
            category = self.ai_strategy.choose_category(
                values, available, sheet.upper_total(), self.current_round)
            self.ai_reason = f"Scoring {category.value} for {preview_score(values, category)}"
            self.ai_showing_score_choice = True
            self.ai_score_choice_category = category
            self.ai_score_choice_timer = 0
        else:
            keep = self.ai_strategy.choose_dice_to_keep(values, self.current_round)
            self.state = apply_keep(self.state, keep, Player.AI)
            held = sorted(values[i] for i in keep)
            self.ai_reason = f"Keeping {held} and rolling again" if held else "Rerolling everything"
            self.game_log.log_lock_change(self.current_round, Player.AI,
                                          self.dice.locked_indices, values)
            # Pause to show the locked dice before rolling
            self.ai_showing_holds = True
            self.ai_hold_timer = 0
        logger.debug("AI (%s): %s", self.ai_level.value, self.ai_reason)

    def _start_ai_roll(self) -> None:
        self._begin_roll(engine_roll_dice(self.state, Player.AI, self.rng))

    def _commit_ai_score(self) -> None:
        category = self.ai_score_choice_category
        points = preview_score(self.dice, category)
        dice_vals = self.dice.values
        turn = self.current_round
        self.state = end_turn(record_score(self.state, category, Player.AI))
        self.last_scored_category = category
        self.game_log.log_score(turn, Player.AI, category, points, dice_vals)
        self._reset_turn_flags()

    # ── Turn summary ────────────────────────────────────────────────────

    def last_turn_summary(self) -> tuple[str, str, int] | None:
        """Return (player_name, category_name, score) for the most recent scoring action, or None."""
        score_entries = self.game_log.get_score_entries()
        if not score_entries:
            return None
        last = score_entries[-1]
        name = "You" if last.player == Player.HUMAN else "AI"
        return (name, last.category.value, last.score)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Optional list of args (for testing). None uses sys.argv.

    Returns:
        Parsed argparse.Namespace. level/speed are None when not given so
        saved settings can fill them in.
    """
    parser = argparse.ArgumentParser(description="Yahtzee: you against the AI")
    parser.add_argument("--level", choices=list(AI_LEVELS), default=None,
                        help="AI difficulty (default: saved setting, else intermediate)")
    parser.add_argument("--speed", choices=SPEED_NAMES, default=None,
                        help="AI playback speed (default: saved setting, else normal)")
    parser.add_argument("--log-file", default=None, metavar="PATH",
                        help="Write debug logging to this file")
    return parser.parse_args(argv)
