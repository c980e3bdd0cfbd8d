#!/usr/bin/env python3
"""
Yahtzee AI Benchmark — Pit AI levels against each other and print results.

Usage: python ai_benchmark.py [--games N] [--level NAME]
       python ai_benchmark.py --verbose --games 50
       python ai_benchmark.py --csv --games 200
       python ai_benchmark.py --versus expert beginner
"""
import argparse
import random
import statistics
import time

from ai import AILevel, make_strategy, play_match
from game_engine import Winner, get_winner


def benchmark_strategy(level, num_games, start_seed=0):
    """Play num_games self-matches with one level; return every seat's score and elapsed time."""
    scores = []
    t0 = time.perf_counter()
    for seed in range(start_seed, start_seed + num_games):
        state = play_match(make_strategy(level), make_strategy(level), random.Random(seed))
        scores.append(state.human.grand_total())
        scores.append(state.ai.grand_total())
    elapsed = time.perf_counter() - t0
    return scores, elapsed


def head_to_head(first, second, num_games, start_seed=0):
    """Play first (human seat) against second (AI seat).

    Returns:
        (first_wins, second_wins, ties, first_scores, second_scores)
    """
    wins = {Winner.HUMAN: 0, Winner.AI: 0, Winner.TIE: 0}
    first_scores, second_scores = [], []
    for seed in range(start_seed, start_seed + num_games):
        state = play_match(make_strategy(first), make_strategy(second), random.Random(seed))
        wins[get_winner(state)] += 1
        first_scores.append(state.human.grand_total())
        second_scores.append(state.ai.grand_total())
    return wins[Winner.HUMAN], wins[Winner.AI], wins[Winner.TIE], first_scores, second_scores


def print_results(name, scores, elapsed, verbose=False):
    """Print formatted benchmark results.

    With verbose=True, adds stdev, median, and percentiles.
    """
    avg = sum(scores) / len(scores)
    lo = min(scores)
    hi = max(scores)
    per_game = elapsed / len(scores) * 1000  # ms per scorecard
    print(f"  {name:15s}  avg={avg:6.1f}  min={lo:4d}  max={hi:4d}  "
          f"({len(scores)} scorecards in {elapsed:.2f}s, {per_game:.1f}ms each)")

    if verbose:
        stdev = statistics.stdev(scores) if len(scores) >= 2 else 0.0
        median = statistics.median(scores)
        sorted_scores = sorted(scores)
        n = len(sorted_scores)
        p25 = sorted_scores[n // 4]
        p75 = sorted_scores[(3 * n) // 4]
        print(f"  {'':15s}  stdev={stdev:5.1f}  median={median:5.0f}  "
              f"p25={p25:4d}  p75={p75:4d}")


def print_csv_header():
    """Print CSV header row."""
    print("level,scorecards,avg,stdev,median,min,max,p25,p75,elapsed_s")


def print_csv_row(name, scores, elapsed):
    """Print one CSV data row."""
    avg = sum(scores) / len(scores)
    stdev = statistics.stdev(scores) if len(scores) >= 2 else 0.0
    median = statistics.median(scores)
    lo = min(scores)
    hi = max(scores)
    sorted_scores = sorted(scores)
    n = len(sorted_scores)
    p25 = sorted_scores[n // 4]
    p75 = sorted_scores[(3 * n) // 4]
    print(f"{name},{len(scores)},{avg:.1f},{stdev:.1f},{median:.0f},"
          f"{lo},{hi},{p25},{p75},{elapsed:.2f}")


def main(argv=None):
    level_names = [level.value for level in AILevel]
    parser = argparse.ArgumentParser(description="Yahtzee AI Benchmark")
    parser.add_argument("--games", type=int, default=200,
                        help="Number of matches per level (default: 200)")
    parser.add_argument("--level", choices=level_names,
                        help="Run only a single level (default: all)")
    parser.add_argument("--versus", nargs=2, choices=level_names, metavar="LEVEL",
                        help="Play two levels against each other instead")
    parser.add_argument("--verbose", action="store_true",
                        help="Show extra statistics (stdev, median, percentiles)")
    parser.add_argument("--csv", action="store_true",
                        help="Output results as CSV")
    args = parser.parse_args(argv)

    if args.versus:
        first, second = args.versus
        first_wins, second_wins, ties, first_scores, second_scores = head_to_head(
            first, second, args.games)
        print(f"{first} vs {second} — {args.games} matches")
        print(f"  {first}: {first_wins} wins, avg {statistics.mean(first_scores):.1f}")
        print(f"  {second}: {second_wins} wins, avg {statistics.mean(second_scores):.1f}")
        print(f"  ties: {ties}")
        return

    levels = [args.level] if args.level else level_names

    if args.csv:
        print_csv_header()
        for level in levels:
            scores, elapsed = benchmark_strategy(level, args.games)
            print_csv_row(level, scores, elapsed)
    else:
        print(f"Yahtzee AI Benchmark — {args.games} matches per level")
        print("=" * 80)

        for level in levels:
            scores, elapsed = benchmark_strategy(level, args.games)
            print_results(level.capitalize(), scores, elapsed, verbose=args.verbose)

        print("=" * 80)


if __name__ == "__main__":
    main()
