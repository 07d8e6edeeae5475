"""
Play Sushi Go matches between a determinization agent and random opponents.

Usage:
    python -m sushimaster.play --games 5 --players 3
    python -m sushimaster.play --variant delegating --fast
    python -m sushimaster.play --config my_agent.json --debug-log
"""

import argparse
import logging
import random
import sys
from pathlib import Path
from typing import Dict, List, Optional

from sushimaster.config import AgentConfig, get_fast_config, get_competition_config
from sushimaster.game import SushiGoGame, MIN_PLAYERS, MAX_PLAYERS
from sushimaster.agents import SushiGoAgent, RandomAgent, ENGINE_VARIANTS

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Play Sushi Go with a determinization MCTS agent",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--games",
        type=int,
        default=1,
        help="Number of games to play",
    )
    parser.add_argument(
        "--players",
        type=int,
        default=3,
        choices=range(MIN_PLAYERS, MAX_PLAYERS + 1),
        help="Players per game (seat 0 is the agent)",
    )
    parser.add_argument(
        "--variant",
        type=str,
        default="ensemble",
        choices=sorted(ENGINE_VARIANTS),
        help="Decision engine variant",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON agent configuration",
    )
    parser.add_argument(
        "--fast",
        action="store_true",
        help="Use the fast configuration (ignored with --config)",
    )
    parser.add_argument(
        "--debug-log",
        action="store_true",
        help="Write per-decision CSV/JSON traces to the log directory",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the deck and the opponents",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    return parser.parse_args(argv)


def setup_logging(config: AgentConfig, log_level: str = "INFO") -> None:
    """
    Setup logging (file logging and console).

    Args:
        config: Agent configuration (provides the log directory)
        log_level: Logging level
    """
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    log_file = log_dir / "play.log"
    logging.basicConfig(
        level=getattr(logging, log_level),
        format=log_format,
        datefmt=date_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout),
        ],
    )
    logger.info(f"Logging initialized. Log file: {log_file}")


def load_config(args: argparse.Namespace) -> AgentConfig:
    """Build the agent configuration from the command line."""
    if args.config:
        config = AgentConfig.from_file(args.config)
    elif args.fast:
        config = get_fast_config()
    else:
        config = get_competition_config()

    if args.debug_log:
        config.debug_logging = True
    if args.seed is not None and config.seed is None:
        config.seed = args.seed
    return config


def play_match(
    config: AgentConfig,
    num_games: int,
    num_players: int,
    variant: str = "ensemble",
    seed: Optional[int] = None,
) -> Dict:
    """
    Play num_games games with the agent in seat 0.

    Returns:
        {'games': int, 'wins': int, 'mean_score': float,
         'mean_margin': float, 'fallback_decisions': int}
    """
    rng = random.Random(seed)
    wins = 0
    scores = []
    margins = []
    fallbacks = 0

    for game_index in range(num_games):
        game = SushiGoGame(num_players=num_players, rng=random.Random(rng.random()))
        agent = SushiGoAgent(0, config, variant=variant)
        agents = [agent] + [
            RandomAgent(seat, random.Random(rng.random())) for seat in range(1, num_players)
        ]

        try:
            results = game.play_full_game(lambda g, pid: agents[pid].get_action(g))
        finally:
            agent.close()

        my_score = game.get_score(0)
        best_other = max(game.get_score(p) for p in range(1, num_players))
        scores.append(my_score)
        margins.append(my_score - best_other)
        if results["winner"]["position"] == 0 and my_score > best_other:
            wins += 1
        fallbacks += agent.engine.stats.fallback_decisions

        logger.info(
            f"Game {game_index + 1}/{num_games}: agent={my_score} "
            f"best_opponent={best_other} winner=seat{results['winner']['position']} "
            f"[{agent.engine.stats}]"
        )

    return {
        "games": num_games,
        "wins": wins,
        "mean_score": sum(scores) / num_games if num_games else 0.0,
        "mean_margin": sum(margins) / num_games if num_games else 0.0,
        "fallback_decisions": fallbacks,
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = load_config(args)
    setup_logging(config, args.log_level)

    try:
        config.validate()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.info(f"Agent configuration:\n{config}")
    summary = play_match(config, args.games, args.players, args.variant, args.seed)
    logger.info(
        f"Won {summary['wins']}/{summary['games']} games, "
        f"mean score {summary['mean_score']:.1f}, "
        f"mean margin {summary['mean_margin']:+.1f}, "
        f"fallbacks {summary['fallback_decisions']}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
