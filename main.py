from __future__ import annotations

from dataclasses import replace
from typing import List, Optional
import argparse
import logging

from qismel.agent import Agent, PerceptionEnvironment
from qismel.config import Config, load_config
from qismel.engine import QISMELEngine
from qismel.perception import PerceptionModel
from qismel.signals import default_signals
from qismel.value_table import ValueTable


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the QISMEL agent loop against a simulated environment.")
    parser.add_argument("--config", help="YAML file with 'engine' and 'agent' sections")
    parser.add_argument("--cycles", type=int, help="override agent.max_cycles")
    parser.add_argument("--seed", type=int, help="override agent.seed")
    parser.add_argument("--load-table", help="value table to start from")
    parser.add_argument("--save-table", help="where to write the value table afterwards")
    parser.add_argument("--log-level", default="INFO")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format='%(asctime)s - %(levelname)s - %(message)s')

    config = load_config(args.config) if args.config else Config()
    if args.cycles is not None:
        config.agent = replace(config.agent, max_cycles=args.cycles)
    if args.seed is not None:
        config.agent = replace(config.agent, seed=args.seed)

    table = ValueTable.load(args.load_table, config.engine.max_entries) if args.load_table else None
    perception = PerceptionModel(seed=config.agent.seed)
    agent = Agent(
        perceive=perception.perceive_async,
        environment=PerceptionEnvironment(perception, seed=config.agent.seed),
        engine=QISMELEngine(config=config.engine, table=table),
        signals=default_signals(config.agent.seed),
        config=config.agent,
    )

    history = agent.run_sync()

    print(f"Cycles run: {len(history)}  Table entries: {len(agent.engine.table)}")
    print("Action history:")
    for h in history:
        print(f"  {h['cycle']:02d}. {h['action']:<5} reward={h['reward']:.3f} Q={h['value']:.3f}")
    print(f"Action counts: {agent.narrative.action_counts()}")

    if args.save_table:
        agent.engine.table.save(args.save_table)


if __name__ == "__main__":
    main()
