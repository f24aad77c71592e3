#!/usr/bin/env python3
"""
Main entry point for the simulated leveraged trading engine

Usage:
    python main.py                          # Run the loops until Ctrl+C
    python main.py --activate --cycles 10   # Run 10 evaluation cycles and exit
    python main.py --cycles 5 --export csv  # Export the history afterwards
"""

import argparse
import sys
import time
from pathlib import Path

from core.config_loader import load_config
from core.logger import setup_logger
from core.app import BotApp


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulated leveraged trading engine")
    parser.add_argument("--config", default="config/config.yaml", help="Path to config.yaml")
    parser.add_argument(
        "--cycles", type=int, default=0,
        help="Run this many evaluation cycles synchronously, then exit (0 = run loops forever)",
    )
    parser.add_argument("--activate", action="store_true", help="Start with trading active")
    parser.add_argument("--export", choices=["csv", "json"], help="Export closed trades on exit")
    return parser.parse_args(argv)


def run_cycles(app: BotApp, cycles: int) -> None:
    """Drive the engine synchronously: ticks between evaluation cycles."""
    ticks_per_cycle = max(1, int(app.cycle_interval / app.tick_interval))
    for _ in range(cycles):
        for _ in range(ticks_per_cycle):
            app.tick_once()
        app.cycle_once()


def main(argv=None) -> None:
    """Main entry point for the trading engine."""
    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Cannot load configuration: {e}", file=sys.stderr)
        sys.exit(2)

    logger = setup_logger(
        config["persistence"]["logs_dir"],
        config["persistence"]["log_level"],
    )
    logger.info("Starting simulated trading engine")
    logger.info(f"Configuration loaded from: {Path(args.config).absolute()}")

    app = BotApp(config)
    try:
        if args.activate:
            app.set_active(True)

        if args.cycles > 0:
            run_cycles(app, args.cycles)
        else:
            app.start()
            while app.is_running:
                time.sleep(1)

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        app.cleanup()

    if args.export:
        path = app.export_history(args.export)
        logger.info(f"History exported to {path}")

    print(app.summary())
    logger.info("Engine stopped")


if __name__ == "__main__":
    main()
