"""Game log for Yahtzee — records every roll, lock change and score for the
post-game replay.

Pure Python, no UI dependency. Entries are keyed by round and player seat.
"""
from __future__ import annotations

from dataclasses import dataclass

from game_engine import Category, Player


@dataclass
class LogEntry:
    """A single logged game event."""
    round: int                                  # 1-13
    player: Player
    event_type: str                             # "roll", "lock", "score"
    dice_values: tuple[int, ...]
    locked_indices: tuple[int, ...] | None = None
    category: Category | None = None
    score: int | None = None
    roll_number: int = 0                        # 1-3 for rolls


class GameLog:
    """Accumulates LogEntry records during a match."""

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    def log_roll(self, round: int, player: Player, roll_number: int, dice_values) -> None:
        """Record a dice roll."""
        self.entries.append(LogEntry(
            round=round,
            player=player,
            event_type="roll",
            dice_values=tuple(dice_values),
            roll_number=roll_number,
        ))

    def log_lock_change(self, round: int, player: Player, locked_indices, dice_values) -> None:
        """Record the set of locked dice after a change."""
        self.entries.append(LogEntry(
            round=round,
            player=player,
            event_type="lock",
            dice_values=tuple(dice_values),
            locked_indices=tuple(locked_indices),
        ))

    def log_score(self, round: int, player: Player, category: Category, score: int, dice_values) -> None:
        """Record a scoring decision."""
        self.entries.append(LogEntry(
            round=round,
            player=player,
            event_type="score",
            dice_values=tuple(dice_values),
            category=category,
            score=score,
        ))

    def get_turn_entries(self, round: int, player: Player) -> list[LogEntry]:
        """Return all entries for one player's turn in a round."""
        return [e for e in self.entries
                if e.round == round and e.player == player]

    def get_score_entries(self, player: Player | None = None) -> list[LogEntry]:
        """Return scoring entries, optionally for a single player."""
        return [e for e in self.entries
                if e.event_type == "score" and (player is None or e.player == player)]

    def clear(self) -> None:
        """Remove all entries."""
        self.entries = []
