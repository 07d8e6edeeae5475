"""
Monte Carlo Tree Search (MCTS) implementation for Sushi Go.

Reference search procedure used by the decision engines. It runs on one
fully-observed (determinized) state and returns the completed tree; the
engines read per-action values from the root through
MCTSNode.child_for().

Each simulation consists of:
    1. Selection: Traverse tree using UCB until reaching a leaf
    2. Expansion: Create children for the searching player's legal actions
    3. Evaluation: Heuristic value of the leaf after an optional random rollout
    4. Backpropagation: Update visit counts and values back to root

Example:
    >>> from sushimaster.game import SushiGoGame
    >>> from sushimaster.heuristics import SushiGoHeuristic
    >>> game = SushiGoGame(num_players=3)
    >>> game.setup_round()
    >>> mcts = MCTS(SushiGoHeuristic(), num_simulations=50)
    >>> root = mcts.run(game.copy_determinized(0), 0, time_budget_ms=100)
    >>> best_action = root.best_action()
"""

import random
import time
from typing import Callable, Hashable, Optional, Sequence

from sushimaster.mcts.node import MCTSNode


class MCTS:
    """
    Heuristic-guided MCTS over a fully-observed Sushi Go state.

    Attributes:
        heuristic: State evaluator with evaluate(state, player_id)
        num_simulations: Simulation cap per run
        c_puct: Exploration constant for UCB
        rollout_length: Random turns played before a leaf is scored
        rng: Random source for opponent choices and rollouts
    """

    def __init__(
        self,
        heuristic,
        num_simulations: int = 200,
        c_puct: float = 1.5,
        rollout_length: int = 0,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize MCTS search.

        Args:
            heuristic: Leaf evaluator
            num_simulations: Maximum simulations per run (default: 200)
            c_puct: Exploration constant (default: 1.5)
            rollout_length: Random turns before leaf evaluation (default: 0)
            rng: Random source (default: fresh unseeded)
            clock: Seconds clock used for the time budget
        """
        if num_simulations < 1:
            raise ValueError(f"num_simulations must be positive, got {num_simulations}")
        if rollout_length < 0:
            raise ValueError(f"rollout_length must be non-negative, got {rollout_length}")

        self.heuristic = heuristic
        self.num_simulations = num_simulations
        self.c_puct = c_puct
        self.rollout_length = rollout_length
        self.rng = rng if rng is not None else random.Random()
        self.clock = clock

    def run(
        self,
        state,
        player_id: int,
        actions: Optional[Sequence[Hashable]] = None,
        time_budget_ms: Optional[float] = None,
    ) -> MCTSNode:
        """
        Build a search tree rooted at `state`.

        Stops after num_simulations or once time_budget_ms has elapsed,
        whichever comes first. At least one simulation always runs.

        Args:
            state: Fully-observed game state (mutated copies only)
            player_id: Searching player
            actions: Root actions to consider (default: all legal actions)
            time_budget_ms: Wall-clock budget for this run (None = no limit)

        Returns:
            Root node whose children are keyed by action

        Raises:
            ValueError: If there are no actions to search
        """
        start = self.clock()

        legal_actions = list(actions) if actions is not None else state.get_legal_actions(player_id)
        if not legal_actions:
            raise ValueError("Cannot search: no legal actions")

        root = MCTSNode(game_state=state, player_id=player_id)
        root.expand(legal_actions, self.rng)

        for simulation in range(self.num_simulations):
            if simulation > 0 and time_budget_ms is not None:
                if (self.clock() - start) * 1000.0 >= time_budget_ms:
                    break
            self._simulate(root)

        return root

    def _simulate(self, root: MCTSNode) -> float:
        # PHASE 1: SELECTION
        current = root
        while not current.is_leaf():
            current = current.select_child(self.c_puct)

        # PHASE 2 & 3: EXPANSION & EVALUATION
        if not self._is_terminal(current.game_state):
            legal_actions = current.game_state.get_legal_actions(current.player_id)
            if legal_actions:
                current.expand(legal_actions, self.rng)
        value = self._evaluate(current)

        # PHASE 4: BACKPROPAGATION
        current.backpropagate(value)

        return value

    def _evaluate(self, node: MCTSNode) -> float:
        state = node.game_state
        if self.rollout_length > 0 and not self._is_terminal(state):
            state = state.copy()
            for _ in range(self.rollout_length):
                if self._is_terminal(state):
                    break
                state.complete_turn(self.rng)
        return self.heuristic.evaluate(state, node.player_id)

    def _is_terminal(self, game) -> bool:
        return game.is_game_over()


__all__ = ["MCTS"]
