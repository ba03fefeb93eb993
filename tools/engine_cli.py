#!/usr/bin/env python3
"""
GEMRECALL — Engine CLI

Usage:
    python -m tools.engine_cli payouts --rounds 25 --difficulty hard
    python -m tools.engine_cli simulate --sessions 5000 --seed 42
    python -m tools.engine_cli simulate --json
    python -m tools.engine_cli config --dump
"""

import argparse
import json
import sys

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from config.settings import EngineSettings, configure_logging
from config.ticket_config import default_ticket_config, validate_ticket_config
from game_engine.economy import TicketEconomy
from game_engine.types import Variation
from tools.economy_montecarlo import EconomyMonteCarlo

console = Console()

PAYOUT_COLUMNS = (Variation.NONE, Variation.REVERSE, Variation.REVERSE_COMBINATION)


def cmd_payouts(args) -> int:
    economy = TicketEconomy(default_ticket_config())
    difficulty = args.difficulty or EngineSettings.DIFFICULTY
    if difficulty and not economy.set_difficulty(difficulty):
        console.print(f"[red]Unknown difficulty: {difficulty}[/red]")
        return 2

    table = Table(title=f"Payouts ({economy.current_difficulty})")
    table.add_column("Round", justify="right")
    table.add_column("Mult", justify="right")
    for variation in PAYOUT_COLUMNS:
        table.add_column(variation.value, justify="right")
    table.add_column("Tier")

    for r in range(1, args.rounds + 1):
        rewards = [economy.calculate_reward(r, v) for v in PAYOUT_COLUMNS]
        table.add_row(
            str(r), f"{economy.round_multiplier(r):.2f}",
            *[f"{x:.{economy.config.game.ticket_precision}f}" for x in rewards],
            economy.feedback_level(rewards[0]),
        )
    console.print(table)
    return 0


def cmd_simulate(args) -> int:
    sessions = args.sessions or EngineSettings.MC_SESSIONS
    seed = args.seed if args.seed is not None else EngineSettings.SEED
    tolerance = args.tolerance if args.tolerance is not None else EngineSettings.MC_TOLERANCE

    mc = EconomyMonteCarlo(default_ticket_config(), tolerance=tolerance,
                           difficulty=args.difficulty or EngineSettings.DIFFICULTY)
    result = mc.run(n_sessions=sessions, seed=seed)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        console.print(Panel(result.summary(), title="Economy Monte Carlo",
                            border_style="green" if result.rtp_pass else "red"))
    return 0 if result.rtp_pass else 1


def cmd_config(args) -> int:
    config = default_ticket_config()
    if args.dump:
        print(config.model_dump_json(indent=2))
    else:
        console.print(Panel(
            f"[bold]Ticket Economy[/bold]  v{config.version}\n\n"
            f"Starting balance: {config.demo.starting_balance}\n"
            f"Cost to play: {config.game.cost_to_play}\n"
            f"Base reward: {config.base_reward}\n"
            f"Default difficulty: {config.default_difficulty}\n"
            f"RTP target: {config.rtp_target*100:.1f}%\n"
            f"Hash: {config.config_hash()}",
            title="Config", border_style="cyan",
        ))
        console.print(Panel(
            "\n".join(f"{k}: {v}" for k, v in EngineSettings.summary().items()),
            title="Settings", border_style="cyan",
        ))

    warnings = validate_ticket_config(config)
    if warnings:
        console.print("\n[yellow]⚠️  Warnings:[/yellow]")
        for w in warnings:
            console.print(f"  - {w}")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Memory game rules engine tools")
    parser.add_argument("--log-level", type=str, default=None)
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("payouts", help="Print the reward table")
    p.add_argument("--rounds", type=int, default=20)
    p.add_argument("--difficulty", type=str, default=None)
    p.set_defaults(func=cmd_payouts)

    s = sub.add_parser("simulate", help="Monte Carlo RTP validation")
    s.add_argument("--sessions", type=int, default=None)
    s.add_argument("--seed", type=int, default=None)
    s.add_argument("--tolerance", type=float, default=None)
    s.add_argument("--difficulty", type=str, default=None)
    s.add_argument("--json", action="store_true")
    s.set_defaults(func=cmd_simulate)

    c = sub.add_parser("config", help="Show or dump the default economy config")
    c.add_argument("--dump", action="store_true")
    c.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
