#!/usr/bin/env python3
"""
Yahtzee TUI — Terminal frontend using Textual.

Keyboard-driven interface with box-art dice, a side-by-side scorecard for
you and the AI, and overlays for help, replay and zero-score confirmation.
All game rules live in the coordinator; this module only renders and routes
keys.
"""
import logging
import random

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Center, Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Footer, Header, Static

from game_coordinator import GameCoordinator, parse_args
from game_engine import Category, Player, Winner, preview_score, score_previews
from settings import load_settings, save_settings

logger = logging.getLogger(__name__)

CATEGORY_ORDER = list(Category)

CATEGORY_TOOLTIPS = {
    Category.ACES: "Sum of all dice showing 1",
    Category.TWOS: "Sum of all dice showing 2",
    Category.THREES: "Sum of all dice showing 3",
    Category.FOURS: "Sum of all dice showing 4",
    Category.FIVES: "Sum of all dice showing 5",
    Category.SIXES: "Sum of all dice showing 6",
    Category.THREE_OF_KIND: "3 of the same, score = sum of all dice",
    Category.FOUR_OF_KIND: "4 of the same, score = sum of all dice",
    Category.FULL_HOUSE: "3 of one + 2 of another = 25",
    Category.SMALL_STRAIGHT: "4 consecutive dice = 30",
    Category.LARGE_STRAIGHT: "5 consecutive dice = 40",
    Category.YAHTZEE: "All 5 dice the same = 50",
    Category.CHANCE: "Sum of all dice, no pattern needed",
}

# ── Box-art dice ──────────────────────────────────────────────────────────────

BOX_ART = {
    1: [
        "┌───────┐",
        "│       │",
        "│   ●   │",
        "│       │",
        "└───────┘",
    ],
    2: [
        "┌───────┐",
        "│ ●     │",
        "│       │",
        "│     ● │",
        "└───────┘",
    ],
    3: [
        "┌───────┐",
        "│ ●     │",
        "│   ●   │",
        "│     ● │",
        "└───────┘",
    ],
    4: [
        "┌───────┐",
        "│ ●   ● │",
        "│       │",
        "│ ●   ● │",
        "└───────┘",
    ],
    5: [
        "┌───────┐",
        "│ ●   ● │",
        "│   ●   │",
        "│ ●   ● │",
        "└───────┘",
    ],
    6: [
        "┌───────┐",
        "│ ●   ● │",
        "│ ●   ● │",
        "│ ●   ● │",
        "└───────┘",
    ],
}

# Locked dice get a double border
BOX_ART_HELD = {
    v: [
        line.replace("┌", "╔").replace("┐", "╗")
        .replace("└", "╚").replace("┘", "╝")
        .replace("─", "═").replace("│", "║")
        for line in lines
    ]
    for v, lines in BOX_ART.items()
}

BOX_ART_CUP = [
    "┌───────┐",
    "│       │",
    "│   ?   │",
    "│       │",
    "└───────┘",
]


def render_dice_box(hand, rolls_used, is_rolling, rng=random):
    """Render 5 dice as box art, side by side.

    While a roll is animating, unlocked dice show random faces drawn from rng.
    """
    if rolls_used == 0 and not is_rolling:
        lines = ["  ".join(BOX_ART_CUP[row] for _ in range(5)) for row in range(5)]
        lines.append("  ".join(f"   [{i+1}]   " for i in range(5)))
        return "\n".join(lines)

    lines = []
    for row in range(5):
        parts = []
        for value, locked in zip(hand.values, hand.locked):
            if is_rolling and not locked:
                value = rng.randint(1, 6)
            art = BOX_ART_HELD if locked else BOX_ART
            parts.append(art[value][row])
        lines.append("  ".join(parts))

    labels = []
    for i, locked in enumerate(hand.locked):
        held_label = " HELD" if locked else ""
        labels.append(f"  [{i+1}]{held_label}".ljust(11))
    lines.append("".join(labels))
    return "\n".join(lines)


def format_score_row(cat, coord, selected=False, previews=None):
    """Format one scorecard row: category, your box, the AI's box.

    Open boxes of the player on turn show the preview score in parentheses
    once the dice have been rolled. previews maps categories to points for
    the current dice; computed here when not given.
    """
    marker = ">>" if selected else "  "
    cells = []
    for player, sheet in ((Player.HUMAN, coord.human_sheet), (Player.AI, coord.ai_sheet)):
        if sheet.is_filled(cat):
            value = sheet.scores[cat]
            if coord.last_scored_category == cat and player != coord.active_player:
                cells.append(f"[bold yellow]{value:>5}[/bold yellow]")
            else:
                cells.append(f"{value:>5}")
            continue
        on_turn = player == coord.active_player and not coord.game_over
        if not on_turn or coord.rolls_used == 0 or coord.is_rolling:
            cells.append("[dim]    —[/dim]")
            continue
        if previews is None:
            previews = score_previews(coord.dice)
        potential = previews[cat]
        if player == Player.AI and coord.ai_showing_score_choice and coord.ai_score_choice_category == cat:
            cells.append(f"[bold cyan]({potential:>3})[/bold cyan]")
        elif selected:
            cells.append(f"[bold]({potential:>3})[/bold]")
        elif potential > 0:
            cells.append(f"[green]({potential:>3})[/green]")
        else:
            cells.append(f"[dim]({potential:>3})[/dim]")
    return f"{marker}{cat.value:<16} {cells[0]}  {cells[1]}"


def render_scorecard(coord, selected_index=None):
    """Render both score sheets as a text table."""
    human, ai = coord.human_sheet, coord.ai_sheet
    previews = score_previews(coord.dice)
    lines = [f"[bold]  {'':<16} {'You':>5}  {'AI':>5}[/bold]",
             "[bold]── UPPER SECTION ──[/bold]"]
    for i, cat in enumerate(CATEGORY_ORDER[:6]):
        lines.append(format_score_row(cat, coord, selected_index == i, previews))
    lines.append(f"  {'Total':<16} {human.upper_total():>5}  {ai.upper_total():>5}")
    lines.append(f"  {'Bonus':<16} {human.upper_bonus():>5}  {ai.upper_bonus():>5}")
    lines.append("[bold]── LOWER SECTION ──[/bold]")
    for i, cat in enumerate(CATEGORY_ORDER[6:], start=6):
        lines.append(format_score_row(cat, coord, selected_index == i, previews))
    lines.append(f"  {'Yahtzee bonus':<16} {human.yahtzee_bonuses():>5}  {ai.yahtzee_bonuses():>5}")
    lines.append(f"[bold]  {'GRAND TOTAL':<16} {human.grand_total():>5}  {ai.grand_total():>5}[/bold]")

    if selected_index is not None and coord.is_human_turn and coord.rolls_used > 0:
        cat = CATEGORY_ORDER[selected_index]
        if not human.is_filled(cat):
            lines.append(f"\n[dim]{CATEGORY_TOOLTIPS[cat]}[/dim]")
    return "\n".join(lines)


def status_text(coord):
    """Roll status, AI reasoning and the last rejected action."""
    lines = []
    if coord.game_over:
        lines.append("[bold]GAME OVER![/bold]")
    elif coord.is_human_turn:
        if coord.rolls_used == 0:
            lines.append("[bold]Your turn: roll the dice![/bold]")
        else:
            lines.append(f"Your turn. Rolls left: {coord.rolls_left}")
    else:
        lines.append(f"[bold]AI ({coord.ai_level.value}) is playing[/bold]")
        if coord.ai_reason:
            lines.append(f"[dim]{coord.ai_reason}[/dim]")

    summary = coord.last_turn_summary()
    if summary is not None and not coord.game_over:
        name, cat_name, points = summary
        lines.append(f"[dim]Last: {name} scored {points} in {cat_name}[/dim]")
    if coord.last_error:
        lines.append(f"[red]{coord.last_error}[/red]")
    return "\n".join(lines)


def game_over_text(coord):
    """Final totals and winner, or an empty string while the match runs."""
    if not coord.game_over:
        return ""
    human_total = coord.human_sheet.grand_total()
    ai_total = coord.ai_sheet.grand_total()
    headline = {
        Winner.HUMAN: "You win!",
        Winner.AI: "The AI wins!",
        Winner.TIE: "It's a tie!",
    }[coord.winner]
    lines = ["", "[bold]═══ GAME OVER ═══[/bold]", "",
             f"[bold]{headline}[/bold]", "",
             f"  You: {human_total}",
             f"  AI ({coord.ai_level.value}): {ai_total}",
             "", "[dim]Press N for new game, R for replay[/dim]"]
    return "\n".join(lines)


def next_open_index(sheet, current, direction):
    """Move keyboard selection to the next/previous unfilled category.

    Args:
        sheet: Score sheet whose open boxes are selectable.
        current: Currently selected index, or None.
        direction: +1 for forward, -1 for backward.

    Returns:
        New index, or None when every box is filled.
    """
    unfilled = [i for i, cat in enumerate(CATEGORY_ORDER) if not sheet.is_filled(cat)]
    if not unfilled:
        return None
    if current is None:
        return unfilled[0] if direction > 0 else unfilled[-1]
    if direction > 0:
        candidates = [i for i in unfilled if i > current]
        return candidates[0] if candidates else unfilled[0]
    candidates = [i for i in unfilled if i < current]
    return candidates[-1] if candidates else unfilled[-1]


# ── Widgets ──────────────────────────────────────────────────────────────────

class RollButton(Button):
    """Mouse-only roll button; keys go to the app bindings."""

    can_focus = False


class DiceDisplay(Static):
    """Renders the 5 dice using box art."""

    def render(self):
        coord = self.app.coordinator
        return render_dice_box(coord.dice, coord.rolls_used, coord.is_rolling)


class StatusDisplay(Static):

    def render(self):
        return status_text(self.app.coordinator)


class ScorecardDisplay(Static):

    def render(self):
        return render_scorecard(self.app.coordinator, self.app.kb_selected_index)


class GameOverDisplay(Static):

    def render(self):
        return game_over_text(self.app.coordinator)


# ── Modal Screens ────────────────────────────────────────────────────────────

class HelpScreen(ModalScreen):
    """Help overlay showing key bindings."""

    BINDINGS = [
        Binding("escape", "dismiss", "Close"),
        Binding("question_mark", "dismiss", "Close"),
        Binding("f1", "dismiss", "Close"),
    ]

    def compose(self) -> ComposeResult:
        controls = [
            ("Space", "Roll dice"),
            ("1-5", "Toggle die lock"),
            ("Tab / ↓", "Next category"),
            ("Shift+Tab / ↑", "Previous category"),
            ("Enter", "Score selected category"),
            ("+/-", "AI speed"),
            ("L", "Cycle AI level (new game)"),
            ("N", "New game (after game)"),
            ("R", "Game replay (after game)"),
            ("Esc", "Close overlay / Quit"),
            ("? / F1", "This help screen"),
        ]
        text = "[bold]CONTROLS[/bold]\n\n"
        for key, desc in controls:
            text += f"  {key:<20} {desc}\n"
        text += "\n[dim]Press Esc or ? to close[/dim]"
        yield Center(Static(text, id="help-panel"))


def replay_text(game_log):
    """Build the round-by-round replay listing from a GameLog."""
    text = "[bold]GAME REPLAY[/bold]\n\n"
    score_entries = game_log.get_score_entries()
    if not score_entries:
        return text + "  No replay data available.\n"
    for entry in score_entries:
        rolls = [e for e in game_log.get_turn_entries(entry.round, entry.player)
                 if e.event_type == "roll"]
        dice_str = " → ".join(f"[{','.join(str(v) for v in r.dice_values)}]" for r in rolls)
        name = "You" if entry.player == Player.HUMAN else "AI "
        line = f"R{entry.round:<2} {name}: {dice_str} → {entry.category.value}: {entry.score}"
        if len(line) > 70:
            line = line[:67] + "..."
        text += f"  {line}\n"
    return text


class ReplayScreen(ModalScreen):
    """Post-game replay overlay."""

    BINDINGS = [
        Binding("escape", "dismiss", "Close"),
        Binding("r", "dismiss", "Close"),
    ]

    def compose(self) -> ComposeResult:
        text = replay_text(self.app.coordinator.game_log)
        text += "\n[dim]R or Esc to close[/dim]"
        yield Center(Static(text, id="replay-panel"))


class ConfirmZeroScreen(ModalScreen[bool]):
    """Confirm scoring 0 dialog."""

    BINDINGS = [
        Binding("y", "confirm", "Yes"),
        Binding("enter", "confirm", "Yes"),
        Binding("n", "cancel", "No"),
        Binding("escape", "cancel", "No"),
    ]

    def __init__(self, category_name: str):
        super().__init__()
        self.category_name = category_name

    def compose(self) -> ComposeResult:
        text = f"[bold]Score 0 in {self.category_name}?[/bold]\n\n"
        text += "Y / Enter to confirm,  N / Esc to cancel"
        yield Center(Static(text, id="confirm-panel"))

    def action_confirm(self):
        self.dismiss(True)

    def action_cancel(self):
        self.dismiss(False)


# ── Main App ─────────────────────────────────────────────────────────────────

class YahtzeeApp(App):
    """Yahtzee terminal UI application."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #game-area {
        layout: horizontal;
        height: 1fr;
    }

    #dice-panel {
        width: 60;
        padding: 1 2;
    }

    #scorecard-panel {
        width: 1fr;
        padding: 1 2;
    }

    #round-display {
        height: auto;
        padding: 0 2;
    }

    #dice-display {
        height: auto;
    }

    #status-display {
        height: auto;
        margin-top: 1;
    }

    #roll-btn {
        margin-top: 1;
        width: 20;
    }

    #game-over-display {
        height: auto;
    }

    #help-panel, #replay-panel, #confirm-panel {
        padding: 2 4;
        border: thick $accent;
        background: $surface;
        width: 74;
        height: auto;
        max-height: 80vh;
    }
    """

    BINDINGS = [
        Binding("space", "roll", "Roll", show=True),
        Binding("1", "hold_1", "Hold 1"),
        Binding("2", "hold_2", "Hold 2"),
        Binding("3", "hold_3", "Hold 3"),
        Binding("4", "hold_4", "Hold 4"),
        Binding("5", "hold_5", "Hold 5"),
        Binding("tab", "next_cat", "Next category", show=True, priority=True),
        Binding("shift+tab", "prev_cat", "Prev category", priority=True),
        Binding("down", "next_cat", "Next"),
        Binding("up", "prev_cat", "Prev"),
        Binding("enter", "score", "Score", show=True),
        Binding("question_mark", "help", "Help"),
        Binding("f1", "help", "Help"),
        Binding("r", "replay", "Replay"),
        Binding("l", "cycle_level", "AI level"),
        Binding("plus", "speed_up", "+Speed"),
        Binding("equals", "speed_up", "+Speed"),
        Binding("minus", "speed_down", "-Speed"),
        Binding("n", "new_game", "New game"),
        Binding("escape", "quit_or_close", "Quit"),
    ]

    def __init__(self, coordinator=None, settings_path=None):
        super().__init__()
        self.coordinator = coordinator if coordinator is not None else GameCoordinator()
        self.settings_path = settings_path
        self.kb_selected_index = None
        self._tick_timer = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static("", id="round-display")
        with Horizontal(id="game-area"):
            with Vertical(id="dice-panel"):
                yield DiceDisplay(id="dice-display")
                yield RollButton("ROLL", id="roll-btn", variant="primary")
                yield StatusDisplay(id="status-display")
                yield GameOverDisplay(id="game-over-display")
            with Vertical(id="scorecard-panel"):
                yield ScorecardDisplay(id="scorecard-display")
        yield Footer()

    def on_mount(self):
        self.title = "Yahtzee"
        self.sub_title = "You vs AI"
        self._tick_timer = self.set_interval(1 / 20, self._game_tick)
        self._refresh_display()

    def _game_tick(self):
        """Per-frame game update at ~20 FPS."""
        coord = self.coordinator
        if coord.is_human_turn and not coord.is_rolling:
            return
        was_human = coord.is_human_turn
        coord.tick()
        if coord.is_human_turn and not was_human:
            self.kb_selected_index = None
        self._refresh_display()

    def _refresh_display(self):
        coord = self.coordinator
        self.query_one("#dice-display", DiceDisplay).refresh()
        self.query_one("#status-display", StatusDisplay).refresh()
        self.query_one("#scorecard-display", ScorecardDisplay).refresh()
        self.query_one("#game-over-display", GameOverDisplay).refresh()
        self.query_one("#round-display", Static).update(
            f"Round {coord.current_round}/13 | AI: {coord.ai_level.value.capitalize()}"
            f" | Speed: {coord.speed_name.capitalize()} (+/-)")
        self.query_one("#roll-btn", Button).disabled = not coord.can_roll_now

    # ── Actions ──────────────────────────────────────────────────────────

    def action_roll(self):
        if not self.coordinator.is_human_turn:
            return
        self.coordinator.roll_dice()
        self._refresh_display()

    @on(Button.Pressed, "#roll-btn")
    def on_roll_button(self):
        self.action_roll()

    def action_hold_1(self):
        self._do_hold(0)

    def action_hold_2(self):
        self._do_hold(1)

    def action_hold_3(self):
        self._do_hold(2)

    def action_hold_4(self):
        self._do_hold(3)

    def action_hold_5(self):
        self._do_hold(4)

    def _do_hold(self, index):
        if not self.coordinator.is_human_turn:
            return
        self.coordinator.toggle_lock(index)
        self._refresh_display()

    def action_next_cat(self):
        self._navigate(+1)

    def action_prev_cat(self):
        self._navigate(-1)

    def _navigate(self, direction):
        if not self.coordinator.is_human_turn:
            return
        self.kb_selected_index = next_open_index(
            self.coordinator.human_sheet, self.kb_selected_index, direction)
        self._refresh_display()

    def action_score(self):
        coord = self.coordinator
        if not coord.is_human_turn or self.kb_selected_index is None:
            return
        cat = CATEGORY_ORDER[self.kb_selected_index]
        if not coord.can_select_now(cat):
            # Let the coordinator record why
            coord.select_category(cat)
            self._refresh_display()
            return

        if preview_score(coord.dice, cat) == 0:
            def on_confirm(result: bool):
                if result:
                    self._commit_score(cat)
                self._refresh_display()
            self.push_screen(ConfirmZeroScreen(cat.value), on_confirm)
        else:
            self._commit_score(cat)

    def _commit_score(self, cat):
        if self.coordinator.select_category(cat):
            self.kb_selected_index = None
        self._refresh_display()

    def action_help(self):
        self.push_screen(HelpScreen())

    def action_replay(self):
        if self.coordinator.game_over:
            self.push_screen(ReplayScreen())

    def action_speed_up(self):
        if self.coordinator.change_speed(+1):
            self._save_preferences()
        self._refresh_display()

    def action_speed_down(self):
        if self.coordinator.change_speed(-1):
            self._save_preferences()
        self._refresh_display()

    def action_cycle_level(self):
        """Switch the AI level; only allowed before the first roll or after the game."""
        coord = self.coordinator
        fresh = coord.current_round == 1 and coord.is_human_turn and coord.rolls_used == 0
        if not (fresh or coord.game_over):
            return
        levels = list(type(coord.ai_level))
        next_level = levels[(levels.index(coord.ai_level) + 1) % len(levels)]
        coord.reset_game(ai_level=next_level)
        self.kb_selected_index = None
        self._save_preferences()
        self._refresh_display()

    def action_new_game(self):
        if self.coordinator.game_over:
            self.coordinator.reset_game()
            self.kb_selected_index = None
            self._refresh_display()

    def action_quit_or_close(self):
        if len(self.screen_stack) > 1:
            self.pop_screen()
        else:
            self.exit()

    def _save_preferences(self):
        coord = self.coordinator
        save_settings({"ai_level": coord.ai_level.value, "speed": coord.speed_name},
                      self.settings_path)


def configure_logging(log_file=None):
    """Send debug logging to log_file. Without one, logging stays silent so
    it never draws over the terminal UI."""
    if log_file is None:
        logging.getLogger().addHandler(logging.NullHandler())
        return
    handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


def build_coordinator(args, settings):
    """Create the coordinator from parsed args, falling back to saved settings."""
    level = args.level or settings["ai_level"]
    speed = args.speed or settings["speed"]
    return GameCoordinator(ai_level=level, speed=speed)


def main(argv=None):
    """Entry point for the TUI."""
    args = parse_args(argv)
    configure_logging(args.log_file)
    settings = load_settings()
    coordinator = build_coordinator(args, settings)
    logger.info("Starting match: level=%s speed=%s",
                coordinator.ai_level.value, coordinator.speed_name)
    app = YahtzeeApp(coordinator=coordinator)
    app.run()


if __name__ == "__main__":
    main()
