"""
Monte Carlo Tree Search (MCTS) implementation for SushiMaster.

This module provides the reference search procedure used by the decision
engines:
- MCTSNode: Tree node with UCB selection and backpropagation
- ActionStats: Read-only child statistics exposed by MCTSNode.child_for()
- MCTS: Heuristic-guided search over one determinized state

Example:
    >>> from sushimaster.mcts import MCTS
    >>> from sushimaster.heuristics import SushiGoHeuristic
    >>> from sushimaster.game import SushiGoGame
    >>>
    >>> game = SushiGoGame(num_players=4)
    >>> game.setup_round()
    >>> mcts = MCTS(SushiGoHeuristic(), num_simulations=100)
    >>> root = mcts.run(game.copy_determinized(0), 0)
    >>> stats = root.child_for(root.best_action())
"""

from sushimaster.mcts.node import MCTSNode, ActionStats
from sushimaster.mcts.search import MCTS

__all__ = [
    "MCTSNode",
    "ActionStats",
    "MCTS",
]
