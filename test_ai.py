"""
AI Strategy Test Suite

Tests:
    1. Continue/finalize policy — every branch, shared by all tiers
    2. Dice-keep heuristics per tier
    3. Category choice per tier, sacrifices, empty candidate lists
    4. Legality — parametrized across all tiers: full matches complete
    5. decide() boundary — request/decision shapes, dict round trips, errors
"""
import random
from dataclasses import replace

import pytest

from game_engine import (
    Category, DiceHand, GameStatus, Player, ScoreSheet,
    IndexOutOfRangeError, InvalidActionError, NoCategoryAvailableError,
    create_game, start_game, roll_dice, record_score,
)
from ai import (
    AILevel, StraightPattern, Decision, DecisionRequest, ScoreState,
    YahtzeeStrategy, BeginnerStrategy, IntermediateStrategy, ExpertStrategy,
    CATEGORY_AVERAGES,
    apply_keep, bonus_probability, decide, detect_straight, efficiency,
    make_strategy, play_ai_turn, play_match, sacrifice_category, should_finalize,
)


ALL = list(Category)


# ── Helpers ─────────────────────────────────────────────────────────────────

def all_strategies():
    """Return instances of all tiers for parametrized tests."""
    return [BeginnerStrategy(), IntermediateStrategy(), ExpertStrategy()]


def strategy_ids():
    return ["Beginner", "Intermediate", "Expert"]


def without(*cats):
    return [cat for cat in ALL if cat not in cats]


def replace_dice(state, values):
    return replace(state, dice=DiceHand(values=values), rolls_left=2)


# ═══════════════════════════════════════════════════════════════════════════════
# 1. CONTINUE / FINALIZE POLICY
# ═══════════════════════════════════════════════════════════════════════════════

class TestShouldFinalize:

    def test_out_of_rolls_always_finalizes(self):
        assert should_finalize((1, 2, 4, 5, 6), 0, ALL) is True

    def test_yahtzee_banked_immediately(self):
        assert should_finalize((5, 5, 5, 5, 5), 2, ALL) is True

    def test_yahtzee_with_box_used_goes_to_four_of_kind(self):
        assert should_finalize((5, 5, 5, 5, 5), 2, without(Category.YAHTZEE)) is True

    def test_large_straight_banked_immediately(self):
        assert should_finalize((1, 2, 3, 4, 5), 2, ALL) is True

    def test_four_sixes_chase_yahtzee(self):
        assert should_finalize((6, 6, 6, 6, 2), 1, ALL) is False

    def test_four_low_faces_finalize(self):
        assert should_finalize((3, 3, 3, 3, 2), 2, ALL) is True

    def test_four_sixes_finalize_when_yahtzee_used(self):
        assert should_finalize((6, 6, 6, 6, 2), 1, without(Category.YAHTZEE)) is True

    def test_small_straight_chases_large(self):
        assert should_finalize((1, 2, 3, 4, 6), 1, ALL) is False

    def test_small_straight_finalizes_when_large_used(self):
        assert should_finalize((1, 2, 3, 4, 6), 1, without(Category.LARGE_STRAIGHT)) is True

    def test_full_house_finalizes(self):
        assert should_finalize((2, 2, 2, 3, 3), 2, ALL) is True

    def test_triple_keeps_rolling_with_two_rolls(self):
        assert should_finalize((2, 2, 2, 1, 4), 2, ALL) is False

    def test_low_triple_finalizes_on_last_reroll(self):
        assert should_finalize((2, 2, 2, 1, 4), 1, ALL) is True

    def test_high_triple_keeps_rolling_on_last_reroll(self):
        assert should_finalize((5, 5, 5, 1, 2), 1, ALL) is False

    def test_two_pairs_chase_full_house(self):
        assert should_finalize((2, 2, 3, 3, 6), 1, ALL) is False

    def test_nothing_keeps_rolling(self):
        assert should_finalize((1, 2, 4, 5, 6), 2, ALL) is False
        assert should_finalize((1, 2, 4, 5, 6), 1, ALL) is False


# ═══════════════════════════════════════════════════════════════════════════════
# 2. DICE-KEEP HEURISTICS
# ═══════════════════════════════════════════════════════════════════════════════

class TestDetectStraight:

    def test_large(self):
        assert detect_straight((5, 4, 3, 2, 1)) == StraightPattern("large", (1, 2, 3, 4, 5))

    def test_small(self):
        assert detect_straight((1, 3, 4, 5, 6)).kind == "small"
        assert detect_straight((1, 3, 4, 5, 6)).faces == (3, 4, 5, 6)

    def test_partial(self):
        assert detect_straight((1, 2, 4, 5, 6)) == StraightPattern("partial", (4, 5, 6))

    def test_none(self):
        assert detect_straight((1, 1, 3, 5, 6)).kind == "none"


class TestBeginnerKeep:

    def test_keeps_partial_run(self):
        assert BeginnerStrategy().choose_dice_to_keep((1, 2, 3, 5, 6)) == (0, 1, 2)

    def test_keeps_every_die_showing_a_run_face(self):
        assert BeginnerStrategy().choose_dice_to_keep((3, 4, 5, 6, 6)) == (0, 1, 2, 3, 4)
        assert BeginnerStrategy().choose_dice_to_keep((3, 3, 4, 5, 1)) == (0, 1, 2, 3)

    def test_partial_run_keeps_duplicates(self):
        assert BeginnerStrategy().choose_dice_to_keep((2, 3, 3, 4, 6)) == (0, 1, 2, 3)

    def test_keeps_most_common_face(self):
        assert BeginnerStrategy().choose_dice_to_keep((6, 1, 4, 6, 2)) == (0, 3)

    def test_ties_go_to_higher_face(self):
        assert BeginnerStrategy().choose_dice_to_keep((2, 2, 5, 5, 1)) == (2, 3)


class TestIntermediateKeep:

    @pytest.mark.parametrize("values,expected", [
        ((1, 2, 3, 4, 5), (0, 1, 2, 3, 4)),   # large straight
        ((4, 4, 4, 2, 2), (0, 1, 2)),         # full house keeps the triple
        ((3, 4, 5, 6, 3), (0, 1, 2, 3)),      # small straight, chase large
        ((2, 2, 5, 5, 1), (0, 1, 2, 3)),      # two pairs
        ((1, 2, 3, 6, 6), (0, 1, 2)),         # partial run beats a pair
        ((4, 4, 1, 2, 6), (0, 1)),            # high pair
        ((1, 1, 3, 5, 6), (0, 1)),            # falls back to Beginner
    ])
    def test_priority_cascade(self, values, expected):
        assert IntermediateStrategy().choose_dice_to_keep(values) == expected


class TestExpertKeep:

    def test_early_four_of_kind_kept(self):
        assert ExpertStrategy().choose_dice_to_keep((6, 6, 6, 6, 2), round=3) == (0, 1, 2, 3)

    def test_early_high_triple_kept(self):
        assert ExpertStrategy().choose_dice_to_keep((1, 5, 5, 5, 2), round=1) == (1, 2, 3)

    def test_late_rounds_defer_to_intermediate(self):
        values = (1, 2, 3, 4, 5)
        assert (ExpertStrategy().choose_dice_to_keep(values, round=9)
                == IntermediateStrategy().choose_dice_to_keep(values, round=9))

    def test_expert_four_sixes_keeps_rolling(self):
        """Round 3, four sixes, a roll left, Yahtzee open: keep rolling."""
        values = (6, 6, 6, 6, 2)
        assert should_finalize(values, 1, ALL) is False
        assert ExpertStrategy().choose_dice_to_keep(values, round=3) == (0, 1, 2, 3)


# ═══════════════════════════════════════════════════════════════════════════════
# 3. CATEGORY CHOICE
# ═══════════════════════════════════════════════════════════════════════════════

class TestCategoryHelpers:

    def test_efficiency_is_ratio_to_average(self):
        assert efficiency(Category.CHANCE, 21) == pytest.approx(1.0)
        assert efficiency(Category.FULL_HOUSE, 25) == pytest.approx(1.0)

    def test_every_category_has_an_average(self):
        assert set(CATEGORY_AVERAGES) == set(Category)

    def test_sacrifice_prefers_yahtzee(self):
        assert sacrifice_category([Category.FULL_HOUSE, Category.YAHTZEE]) == Category.YAHTZEE

    def test_sacrifice_order(self):
        assert sacrifice_category([Category.FOUR_OF_KIND, Category.FULL_HOUSE]) == Category.FULL_HOUSE

    def test_bonus_probability(self):
        assert bonus_probability(63, ALL) == 1.0
        assert bonus_probability(10, [Category.CHANCE]) == 0.0
        assert bonus_probability(0, ALL) == 0.0
        assert bonus_probability(50, ALL) == pytest.approx(8 / 35)


class TestChooseCategory:

    @pytest.fixture(params=all_strategies(), ids=strategy_ids())
    def strategy(self, request):
        return request.param

    def test_full_house_chosen(self, strategy):
        assert strategy.choose_category((2, 2, 2, 3, 3), ALL) == Category.FULL_HOUSE

    def test_large_straight_chosen(self, strategy):
        assert strategy.choose_category((2, 3, 4, 5, 6), ALL) == Category.LARGE_STRAIGHT

    def test_only_open_categories(self, strategy):
        cat = strategy.choose_category((2, 2, 2, 3, 3), without(Category.FULL_HOUSE))
        assert cat != Category.FULL_HOUSE

    def test_sacrifice_when_nothing_eligible(self, strategy):
        cat = strategy.choose_category((1, 2, 3, 5, 6), [Category.FULL_HOUSE, Category.YAHTZEE])
        assert cat == Category.YAHTZEE

    def test_empty_available_raises(self, strategy):
        with pytest.raises(NoCategoryAvailableError):
            strategy.choose_category((1, 2, 3, 4, 5), [])

    def test_strategies_share_the_interface(self, strategy):
        assert isinstance(strategy, YahtzeeStrategy)


class TestCategoryValues:

    def test_beginner_weights_raw_score(self):
        value = BeginnerStrategy().category_value(Category.FULL_HOUSE, 25, ALL, 0, 1)
        assert value == pytest.approx(25 * 0.85)

    def test_intermediate_deprioritizes_upper_after_bonus(self):
        strategy = IntermediateStrategy()
        available = [Category.SIXES, Category.CHANCE]
        before = strategy.category_value(Category.SIXES, 18, available, 0, 5)
        after = strategy.category_value(Category.SIXES, 18, available, 63, 5)
        assert after == pytest.approx(before * 0.7)

    def test_intermediate_bonus_adjustment(self):
        strategy = IntermediateStrategy()
        # needed 13 over one open box: 18 >= 0.8 * 13 earns the adjustment
        value = strategy.category_value(Category.SIXES, 18, [Category.SIXES], 50, 12)
        base = 18 * (0.5 + 0.5 * 18 / 11.4)
        assert value > base

    def test_expert_bonus_weighted_by_phase(self):
        value = ExpertStrategy().category_value(Category.SIXES, 24, ALL, 50, 3)
        assert value == pytest.approx(24 + 35 * (8 / 35) * 0.8)

    def test_expert_early_miss_falls_through_to_mid_band(self):
        # needed 3 over one open box: 2 misses the 0.7 bar but clears 0.6
        available = [Category.ACES, Category.CHANCE]
        value = ExpertStrategy().category_value(Category.ACES, 2, available, 60, 3)
        assert value == pytest.approx(2 + 35 * (0.5 / 35) * 0.6)

    def test_expert_early_score_clearing_first_bar_uses_early_weight(self):
        available = [Category.ACES, Category.CHANCE]
        value = ExpertStrategy().category_value(Category.ACES, 3, available, 60, 3)
        assert value == pytest.approx(3 + 35 * (0.5 / 35) * 0.8)

    def test_expert_late_rounds_multiplier(self):
        strategy = ExpertStrategy()
        assert strategy.category_value(Category.CHANCE, 21, [Category.CHANCE], 0, 5) == pytest.approx(13)
        assert strategy.category_value(Category.CHANCE, 21, [Category.CHANCE], 0, 11) == pytest.approx((21 - 12) * 1.2)

    def test_expert_penalizes_inefficient_scores(self):
        value = ExpertStrategy().category_value(Category.SIXES, 6, ALL, 0, 1)
        assert value == pytest.approx(6 * 0.7)


class TestMakeStrategy:

    def test_by_enum(self):
        assert isinstance(make_strategy(AILevel.BEGINNER), BeginnerStrategy)

    def test_by_string(self):
        assert isinstance(make_strategy("expert"), ExpertStrategy)
        assert make_strategy("intermediate").level == AILevel.INTERMEDIATE

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            make_strategy("grandmaster")


# ═══════════════════════════════════════════════════════════════════════════════
# 4. LEGALITY — parametrized across all tiers
# ═══════════════════════════════════════════════════════════════════════════════

class TestLegality:

    @pytest.fixture(params=all_strategies(), ids=strategy_ids())
    def strategy(self, request):
        return request.param

    def test_completes_full_match(self, strategy):
        state = play_match(strategy, strategy, random.Random(42))
        assert state.status == GameStatus.FINISHED
        assert state.human.is_complete()
        assert state.ai.is_complete()

    def test_ai_turn_scores_exactly_once(self, strategy):
        state = start_game(create_game())
        state = play_ai_turn(state, strategy, random.Random(1))
        assert state.active_player == Player.AI
        assert len(state.human.available_categories()) == 12
        assert state.rolls_left == 3

    def test_deterministic_with_seed(self, strategy):
        a = play_match(strategy, strategy, random.Random(7))
        b = play_match(strategy, strategy, random.Random(7))
        assert a == b

    def test_scores_in_legal_range(self, strategy):
        for seed in range(5):
            state = play_match(strategy, strategy, random.Random(seed))
            for sheet in (state.human, state.ai):
                assert 5 <= sheet.grand_total() <= 1575


class TestApplyKeep:

    def test_locks_exactly_the_kept_dice(self):
        state = roll_dice(start_game(create_game()), rng=random.Random(3))
        state = apply_keep(state, (0, 2))
        assert state.dice.locked_indices == (0, 2)
        state = apply_keep(state, (1,))
        assert state.dice.locked_indices == (1,)

    def test_rejects_keep_before_first_roll(self):
        with pytest.raises(InvalidActionError):
            apply_keep(start_game(create_game()), (0, 1))

    def test_rejects_out_of_range_index(self):
        state = roll_dice(start_game(create_game()), rng=random.Random(3))
        with pytest.raises(IndexOutOfRangeError):
            apply_keep(state, (0, 5))


# ═══════════════════════════════════════════════════════════════════════════════
# 5. decide() BOUNDARY
# ═══════════════════════════════════════════════════════════════════════════════

class TestScoreState:

    def test_from_sheet(self):
        sheet = ScoreSheet().with_score(Category.ACES, 3).with_score(Category.YAHTZEE, 50)
        state = ScoreState.from_sheet(sheet.with_yahtzee_bonus())
        assert state.used_mask == (1 << 0) | (1 << 11)
        assert state.upper_sum == 3
        assert state.yahtzee_scored is True
        assert state.yahtzee_bonus_count == 1
        assert state.round == 3
        assert Category.ACES not in state.available_categories
        assert len(state.available_categories) == 11

    def test_dict_round_trip(self):
        state = ScoreState(used_mask=0b101, upper_sum=4, yahtzee_scored=False, yahtzee_bonus_count=0)
        assert ScoreState.from_dict(state.to_dict()) == state


class TestDecide:

    def test_keep_decision_mid_turn(self):
        request = DecisionRequest(AILevel.EXPERT, (6, 6, 6, 6, 2), roll_number=2)
        decision = decide(request)
        assert not decision.is_final
        assert decision.keep_indices == (0, 1, 2, 3)

    def test_third_roll_always_scores(self):
        decision = decide(DecisionRequest(AILevel.EXPERT, (6, 6, 6, 6, 2), roll_number=3))
        assert decision.is_final
        assert decision.category == Category.FOUR_OF_KIND
        assert decision.score == 26

    def test_finalize_flag_forces_category(self):
        decision = decide(DecisionRequest(AILevel.BEGINNER, (1, 2, 4, 5, 6), roll_number=1,
                                          finalize=True))
        assert decision.is_final

    def test_banked_yahtzee(self):
        decision = decide(DecisionRequest(AILevel.BEGINNER, (4, 4, 4, 4, 4), roll_number=1))
        assert decision.category == Category.YAHTZEE
        assert decision.score == 50

    def test_respects_used_mask(self):
        mask = 1 << ALL.index(Category.YAHTZEE)
        request = DecisionRequest(AILevel.BEGINNER, (4, 4, 4, 4, 4), roll_number=3,
                                  score_state=ScoreState(used_mask=mask, yahtzee_scored=True))
        assert decide(request).category != Category.YAHTZEE

    def test_every_category_used_raises(self):
        request = DecisionRequest(AILevel.EXPERT, (1, 2, 3, 4, 5), roll_number=3,
                                  score_state=ScoreState(used_mask=(1 << 13) - 1))
        with pytest.raises(NoCategoryAvailableError):
            decide(request)

    @pytest.mark.parametrize("roll_number", [0, 4])
    def test_bad_roll_number(self, roll_number):
        with pytest.raises(ValueError):
            decide(DecisionRequest(AILevel.BEGINNER, (1, 2, 3, 4, 5), roll_number=roll_number))

    def test_bad_dice(self):
        with pytest.raises(ValueError):
            decide(DecisionRequest(AILevel.BEGINNER, (1, 2, 3, 4, 9), roll_number=1))

    def test_non_integer_face_from_dict(self):
        data = DecisionRequest(AILevel.BEGINNER, (1, 2, 3, 4, 5), roll_number=1).to_dict()
        data["dice"] = [1, "2", 3, 4, 5]
        with pytest.raises(ValueError):
            decide(DecisionRequest.from_dict(data))

    def test_request_dict_round_trip(self):
        request = DecisionRequest(AILevel.EXPERT, (6, 6, 6, 6, 2), roll_number=2,
                                  score_state=ScoreState(used_mask=3, upper_sum=5))
        data = request.to_dict()
        assert data["level"] == "expert"
        assert DecisionRequest.from_dict(data) == request

    def test_decision_dicts(self):
        final = Decision(category=Category.FULL_HOUSE, score=25)
        assert final.to_dict() == {"category": "FULL_HOUSE", "score": 25}
        assert Decision.from_dict(final.to_dict()) == final
        keep = Decision(keep_indices=(0, 1))
        assert keep.to_dict() == {"keep_indices": [0, 1]}
        assert Decision.from_dict(keep.to_dict()) == keep

    def test_decide_matches_live_turn(self):
        """decide() on a state snapshot agrees with the strategy used in play."""
        state = replace_dice(start_game(create_game()), (2, 2, 2, 3, 3))
        state = record_score(state, Category.CHANCE)
        score_state = ScoreState.from_sheet(state.human)
        decision = decide(DecisionRequest(AILevel.INTERMEDIATE, (2, 2, 2, 3, 3), 3, score_state))
        expected = IntermediateStrategy().choose_category(
            (2, 2, 2, 3, 3), state.human.available_categories(), 0, 2)
        assert decision.category == expected
