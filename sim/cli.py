"""
TD Balance Simulator - CLI Entry Point
=======================================
Usage:
    python cli.py simulate [scenario.yaml] [--preset balance-testing] [--export-json out.json]
    python cli.py compare <file1> <file2> [...]
    python cli.py balance [--export-dir reports/]
    python cli.py validate <config.json> [...]
    python cli.py web [--port 8080]
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from td_sim.compare import (
    compare_and_print, default_balance_scenarios, print_balance_report,
    validate_config_file,
)
from td_sim.config import ConfigLocator, ConfigurationError
from td_sim.engine import SimulationRunner
from td_sim.format import print_full_report, print_minimal, progress_bar
from td_sim.io import export_result_json, load_scenario
from td_sim.metrics import export_metrics
from td_sim.models import SimulationConfig

PRESETS = {
    "default": SimulationConfig.default,
    "balance-testing": SimulationConfig.for_balance_testing,
    "easy": lambda: replace(SimulationConfig.with_difficulty_modifier(0.75), name="easy"),
    "hard": lambda: replace(SimulationConfig.with_difficulty_modifier(1.5), name="hard"),
}


def _locator(args) -> ConfigLocator:
    if args.config_dir:
        return ConfigLocator([Path(d) for d in args.config_dir])
    return ConfigLocator.from_working_dir(Path.cwd())


def _runner(args) -> SimulationRunner:
    try:
        return SimulationRunner.from_locator(_locator(args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(2)


def _scenario_from_args(args) -> SimulationConfig:
    if args.file:
        config = load_scenario(args.file)
    else:
        config = PRESETS[args.preset]()

    overrides = {}
    if args.max_waves is not None:
        overrides["max_waves"] = args.max_waves
    if args.money is not None:
        overrides["starting_money"] = args.money
    if args.lives is not None:
        overrides["starting_lives"] = args.lives
    if args.seed is not None:
        overrides["random_seed"] = args.seed
    if args.wave_set is not None:
        overrides["wave_set"] = args.wave_set
    return replace(config, **overrides) if overrides else config


def cmd_simulate(args):
    try:
        config = _scenario_from_args(args)
    except (OSError, ValueError) as e:
        print(f"Error loading {args.file}: {e}")
        sys.exit(2)
    runner = _runner(args)

    def on_progress(p):
        if not args.minimal:
            bar = progress_bar(p.current_wave, config.max_waves, 30)
            print(f"\r {bar} wave {p.current_wave}/{config.max_waves} "
                  f"money {p.current_gold} lives {p.remaining_lives}", end="", flush=True)

    result = runner.run_simulation(config, progress=on_progress)
    if not args.minimal:
        print()

    metrics = result.metrics
    if args.minimal:
        print_minimal(result)
    else:
        print_full_report(result, metrics if args.verbose else None)

    if args.export_json:
        export_result_json(result, args.export_json)
        print(f"\nExported JSON to {args.export_json}")
    if args.export_metrics and metrics is not None:
        export_metrics(args.export_metrics, metrics)
        print(f"Exported metrics to {args.export_metrics}")

    if not result.success:
        sys.exit(1)


def cmd_compare(args):
    runner = _runner(args)
    results = []
    for f in args.files:
        try:
            config = load_scenario(f)
        except (OSError, ValueError) as e:
            print(f"Error loading {f}: {e}")
            continue
        results.append(runner.run_simulation(config))
    if results:
        compare_and_print(results)


def cmd_balance(args):
    runner = _runner(args)
    scenarios = default_balance_scenarios()
    if args.max_waves is not None:
        scenarios = [replace(s, max_waves=args.max_waves) for s in scenarios]

    metrics_list = []
    for i, config in enumerate(scenarios, start=1):
        print(f" {progress_bar(i, len(scenarios), 20)} {config.name}")
        result = runner.run_simulation(config)
        metrics = result.metrics
        if metrics is not None:
            metrics_list.append(metrics)
            if args.export_dir:
                export_metrics(Path(args.export_dir) / f"{config.name}.json", metrics)
        if args.verbose:
            print(f"   {result.summary()}")

    print_balance_report(metrics_list)


def cmd_validate(args):
    failed = False
    for f in args.files:
        print(f"{f}:")
        for issue in validate_config_file(f):
            print(f"  {issue}")
            if issue.startswith("ERROR"):
                failed = True
    if failed:
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        description="TD Balance Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--config-dir", action="append", default=None,
                        help="Directory holding building/enemy/placement configs (repeatable)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show metrics and INFO logging")
    sub = parser.add_subparsers(dest="command", help="Command to run")

    # simulate
    p_sim = sub.add_parser("simulate", aliases=["sim"],
                           help="Run one scenario")
    p_sim.add_argument("file", nargs="?", default=None,
                       help="Scenario YAML file (default: use --preset)")
    p_sim.add_argument("--preset", choices=sorted(PRESETS), default="default",
                       help="Built-in scenario when no file is given (default: default)")
    p_sim.add_argument("--max-waves", type=int, default=None)
    p_sim.add_argument("--money", type=int, default=None,
                       help="Starting money")
    p_sim.add_argument("--lives", type=int, default=None,
                       help="Starting lives")
    p_sim.add_argument("--seed", type=int, default=None,
                       help="Random seed")
    p_sim.add_argument("--wave-set", default=None,
                       help="Wave set id: default, easy, hard, balance-testing")
    p_sim.add_argument("--export-json", default=None,
                       help="Write the result as JSON")
    p_sim.add_argument("--export-metrics", default=None,
                       help="Write collected wave metrics as JSON")
    p_sim.add_argument("--minimal", action="store_true",
                       help="Print only the one-line summary")

    # compare
    p_cmp = sub.add_parser("compare", aliases=["cmp"],
                           help="Compare multiple scenarios")
    p_cmp.add_argument("files", nargs="+", help="Scenario YAML files")

    # balance
    p_bal = sub.add_parser("balance",
                           help="Run the built-in balance sweep and print recommendations")
    p_bal.add_argument("--max-waves", type=int, default=None)
    p_bal.add_argument("--export-dir", default=None,
                       help="Write per-scenario metrics JSON into this directory")

    # validate
    p_val = sub.add_parser("validate", help="Validate config files")
    p_val.add_argument("files", nargs="+", help="Config files (.json/.yaml)")

    # web
    p_web = sub.add_parser("web", aliases=["serve"],
                           help="Start the web frontend")
    p_web.add_argument("--port", type=int, default=8080,
                       help="Port to serve on (default: 8080)")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command in ("simulate", "sim"):
        cmd_simulate(args)
    elif args.command in ("compare", "cmp"):
        cmd_compare(args)
    elif args.command == "balance":
        cmd_balance(args)
    elif args.command == "validate":
        cmd_validate(args)
    elif args.command in ("web", "serve"):
        from td_sim.web import start_server
        start_server(port=args.port)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
