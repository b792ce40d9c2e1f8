"""
Turnflow CLI - Command-line interface for the engine.

Usage:
    turnflow inspect <position_file>     Validate and summarize a saved position
    turnflow demo [--players N] [--stones N] [--seed N] [--save FILE]
                                         Bot-play a game of Nim
"""

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from .config import TURNFLOW_LOG_LEVEL


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Turnflow - Turn structure engine for board games",
        prog="turnflow",
    )
    parser.add_argument("--log-level", default=TURNFLOW_LOG_LEVEL, help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Inspect command
    inspect_parser = subparsers.add_parser("inspect", help="Validate and summarize a saved position")
    inspect_parser.add_argument("position_file", help="Path to a position JSON file")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Bot-play a game of Nim")
    demo_parser.add_argument("--players", type=int, default=2, help="Number of players")
    demo_parser.add_argument("--stones", type=int, default=15, help="Stones in the pile")
    demo_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    demo_parser.add_argument("--save", help="Stop after the first move and save the position here")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "inspect":
        return cmd_inspect(args)
    elif args.command == "demo":
        return cmd_demo(args)
    else:
        parser.print_help()
        return 1


def cmd_inspect(args):
    """Validate and summarize a saved position."""
    from .session import PositionModel

    try:
        with open(args.position_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        print(f"Error: File not found: {args.position_file}")
        return 1
    except json.JSONDecodeError as e:
        print(f"Error: Not valid JSON: {e}")
        return 1

    try:
        position = PositionModel.model_validate(data)
    except ValidationError as e:
        print("Invalid position:")
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            print(f"  - {location}: {error['msg']}")
        return 1

    print(f"Depth: {len(position.path)}")
    print(f"Path: {position.path}")
    print(f"Player index: {position.player_index}")
    if position.iterations:
        print("Iterations:")
        for key, count in sorted(position.iterations.items()):
            print(f"  {key}: {count}")
    if position.variables:
        print("Variables:")
        for name, value in sorted(position.variables.items()):
            print(f"  {name} = {json.dumps(value)}")
    if not position.path:
        print("(flow complete)")
    return 0


def cmd_demo(args):
    """Bot-play a game of Nim."""
    from .bots import RandomPolicy, play_out
    from .games import create_nim_game

    if args.players < 1 or args.stones < 1:
        print("Error: --players and --stones must be at least 1")
        return 1

    names = [f"Player {i + 1}" for i in range(args.players)]
    game = create_nim_game(names, stones=args.stones)
    policy = RandomPolicy(seed=args.seed)

    state = game.start_flow()
    if args.save:
        decision = policy.decide(game, state)
        game.continue_flow(decision.action_name, decision.args, decision.player_index)
        with open(args.save, "w", encoding="utf-8") as f:
            json.dump(game.save_position(), f, indent=2)
        print(f"Position saved to {args.save}")
        return 0

    play_out(game, policy)
    for line in game.messages:
        print(line)
    winners = ", ".join(p.name for p in game.winners) or "nobody"
    print(f"\nWinner: {winners}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
