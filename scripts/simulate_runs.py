"""Simulate seeded delving runs and print a balance report.

Usage:
    python scripts/simulate_runs.py [--days 14] [--seed 42] [--max-depth 10]
        [--config balance.json] [--store-dir out/] [--log-level INFO]
"""

from __future__ import annotations

import argparse
import logging
import time
from datetime import date, timedelta
from pathlib import Path

from delvers_descent.core.config import BalanceConfig
from delvers_descent.core.persistence import InMemoryStore, JsonFileStore
from delvers_descent.core.rng import GameRNG
from delvers_descent.engine import DelversEngine
from delvers_descent.simulation import CautiousPolicy, generate_text_report, simulate_runs


def make_step_history(days: int, rng: GameRNG, start: date) -> list[dict]:
    """Synthetic daily step counts between 3,000 and 15,000."""
    return [
        {"date": (start + timedelta(days=i)).isoformat(), "steps": rng.random_int(3_000, 15_000)}
        for i in range(days)
    ]


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate Delvers Descent runs")
    parser.add_argument("--days", type=int, default=14, help="Days of step history to fund runs")
    parser.add_argument("--seed", type=int, default=42, help="Master seed")
    parser.add_argument("--max-depth", type=int, default=None, help="Dungeon depth per run")
    parser.add_argument("--config", type=str, default=None, help="Balance config JSON")
    parser.add_argument("--store-dir", type=str, default=None, help="Persist state as JSON files here")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    config = BalanceConfig.load(Path(args.config)) if args.config else BalanceConfig()
    store = JsonFileStore(Path(args.store_dir)) if args.store_dir else InMemoryStore()
    rng = GameRNG(args.seed)
    engine = DelversEngine(store=store, rng=rng, config=config)

    history = make_step_history(args.days, rng.fork("steps"), date(2024, 1, 1))
    queued = engine.queue_step_history(history)
    print(f"Queued {len(queued)} runs from {args.days} days of steps")

    t0 = time.perf_counter()
    summary = simulate_runs(engine, CautiousPolicy(rng.fork("policy")), args.max_depth)
    elapsed = time.perf_counter() - t0
    print(f"Done in {elapsed:.2f}s")

    print()
    print(generate_text_report(summary, engine))


if __name__ == "__main__":
    main()
