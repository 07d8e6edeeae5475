"""
Ready-to-play agents.

SushiGoAgent wires the heuristic, the reference MCTS and a decision engine
from one AgentConfig. RandomAgent is the uniform baseline.

Example:
    >>> from sushimaster.game import SushiGoGame
    >>> from sushimaster.config import get_fast_config
    >>> game = SushiGoGame(num_players=3)
    >>> agents = [SushiGoAgent(0, get_fast_config()), RandomAgent(1), RandomAgent(2)]
    >>> results = game.play_full_game(lambda g, pid: agents[pid].get_action(g))
"""

import random
from typing import Optional

from sushimaster.config import AgentConfig
from sushimaster.game.sushigo import PlayCard, SushiGoGame
from sushimaster.heuristics.state_heuristic import SushiGoHeuristic
from sushimaster.mcts.search import MCTS
from sushimaster.agents.decision_log import DecisionLogger
from sushimaster.agents.ensemble import ENGINE_VARIANTS


class SushiGoAgent:
    """
    Determinization MCTS agent for one seat.

    Attributes:
        player_id: Seat this agent plays
        config: Validated AgentConfig
        heuristic: SushiGoHeuristic built from the config weights
        search: MCTS used for every determinization
        engine: Ensemble (default) or delegating decision engine
    """

    def __init__(
        self,
        player_id: int,
        config: Optional[AgentConfig] = None,
        variant: str = "ensemble",
        decision_logger: Optional[DecisionLogger] = None,
    ):
        """
        Args:
            player_id: Seat index
            config: Agent configuration (default: AgentConfig())
            variant: 'ensemble' or 'delegating'
            decision_logger: Explicit diagnostic sink; when omitted and
                config.debug_logging is set, the agent opens and owns one

        Raises:
            ValueError: If the variant is unknown or the config is invalid
        """
        if variant not in ENGINE_VARIANTS:
            raise ValueError(
                f"variant must be one of {sorted(ENGINE_VARIANTS)}, got {variant!r}"
            )

        self.player_id = player_id
        self.config = config if config is not None else AgentConfig()
        self.config.validate()

        rng = random.Random(self.config.seed)
        self.heuristic = SushiGoHeuristic(
            self.config.heuristic_weights(), total_rounds=self.config.total_rounds
        )
        self.search = MCTS(
            self.heuristic,
            num_simulations=self.config.simulations_per_determinization,
            c_puct=self.config.c_puct,
            rollout_length=self.config.rollout_length,
            rng=rng,
        )

        self._owns_logger = False
        if decision_logger is None and self.config.debug_logging:
            run_name = self.config.run_name
            if run_name is not None:
                run_name = f"{run_name}_agent{player_id}"
            decision_logger = DecisionLogger(self.config.log_dir, run_name).open()
            self._owns_logger = True
        self.decision_logger = decision_logger

        self.engine = ENGINE_VARIANTS[variant](
            player_id,
            self.search,
            config=self.config,
            heuristic=self.heuristic,
            decision_logger=decision_logger,
            rng=rng,
        )

    def get_action(self, game: SushiGoGame) -> PlayCard:
        """Choose this seat's card for the current turn."""
        return self.engine.decide(game, game.get_legal_actions(self.player_id))

    def close(self) -> None:
        """Close the decision logger if this agent opened it."""
        if self._owns_logger and self.decision_logger is not None:
            self.decision_logger.close()


class RandomAgent:
    """Uniformly random legal play."""

    def __init__(self, player_id: int, rng: Optional[random.Random] = None):
        self.player_id = player_id
        self.rng = rng if rng is not None else random.Random()

    def get_action(self, game: SushiGoGame) -> PlayCard:
        return self.rng.choice(game.get_legal_actions(self.player_id))
