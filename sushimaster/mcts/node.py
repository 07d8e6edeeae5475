"""
MCTS Node implementation with UCB selection.

This module implements the tree node structure for the reference Monte
Carlo Tree Search, including UCB child selection, tree expansion, and
backpropagation.

Architecture Note:
    Sushi Go turns are simultaneous, so the tree only branches on the
    searching player's own choices. Expanding a child applies that choice
    and lets the game complete the turn with random opponent choices; the
    resulting state is stored on the child. Turn resolution stays in the
    game engine rather than being duplicated here.
"""

from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional
import random
import numpy as np


@dataclass(frozen=True)
class ActionStats:
    """
    Read-only statistics of one root child.

    Attributes:
        total_value: Sum of backpropagated values
        visit_count: Number of simulations through the child
    """

    total_value: float
    visit_count: int

    @property
    def mean_value(self) -> float:
        if self.visit_count == 0:
            return 0.0
        return self.total_value / self.visit_count


class MCTSNode:
    """
    Node in the MCTS tree.

    Represents a game state and stores statistics for UCB selection.

    Attributes:
        game_state: Game state at this node (None for detached fixtures)
        player_id: Searching player; values are from their perspective
        parent: Parent node (None for root)
        action_taken: Action that led to this node from parent
        prior_prob: Prior probability (uniform over siblings)
        visit_count: Number of times this node was visited
        total_value: Sum of backpropagated values
        mean_value: Average value (total_value / visit_count)
        children: Dictionary mapping action → child node
        is_expanded: Whether this node has been expanded
    """

    def __init__(
        self,
        game_state,
        player_id: int,
        parent: Optional["MCTSNode"] = None,
        action_taken: Optional[Hashable] = None,
        prior_prob: float = 0.0,
    ):
        self.game_state = game_state
        self.player_id = player_id
        self.parent = parent
        self.action_taken = action_taken
        self.prior_prob = prior_prob

        # MCTS statistics
        self.visit_count = 0
        self.total_value = 0.0
        self.mean_value = 0.0

        self.children: Dict[Hashable, MCTSNode] = {}
        self.is_expanded = False

    def is_leaf(self) -> bool:
        """Check if node is a leaf (not yet expanded)."""
        return not self.is_expanded

    def is_root(self) -> bool:
        """Check if node is root (no parent)."""
        return self.parent is None

    def child_for(self, action: Hashable) -> Optional[ActionStats]:
        """
        Statistics of the child reached by `action`.

        Returns:
            ActionStats snapshot, or None if the action was never expanded
        """
        child = self.children.get(action)
        if child is None:
            return None
        return ActionStats(total_value=child.total_value, visit_count=child.visit_count)

    def select_child(self, c_puct: float = 1.5) -> "MCTSNode":
        """
        Select child with highest UCB score.

        UCB(child) = Q(child) + c_puct * P(child) * sqrt(N_parent) / (1 + N_child)

        Raises:
            ValueError: If node has no children to select from
        """
        if not self.children:
            raise ValueError("Cannot select child: node has no children")

        best_score = -float("inf")
        best_child = None

        for child in self.children.values():
            ucb_score = self._ucb1_score(child, c_puct)
            if ucb_score > best_score:
                best_score = ucb_score
                best_child = child

        return best_child

    def _ucb1_score(self, child: "MCTSNode", c_puct: float) -> float:
        if child.visit_count > 0:
            q_value = child.total_value / child.visit_count
        else:
            q_value = 0.0

        u_value = c_puct * child.prior_prob * (
            np.sqrt(self.visit_count) / (1 + child.visit_count)
        )

        return q_value + u_value

    def expand(self, legal_actions: List[Hashable], rng: random.Random) -> None:
        """
        Expand node by creating children for all legal actions.

        Args:
            legal_actions: Actions available to the searching player
            rng: Random source for the opponents' simulated choices

        Raises:
            ValueError: If legal_actions is empty
        """
        if not legal_actions:
            raise ValueError("Cannot expand: no legal actions provided")

        prior = 1.0 / len(legal_actions)
        for action in legal_actions:
            if action not in self.children:
                self.children[action] = MCTSNode(
                    game_state=self._simulate_action(action, rng),
                    player_id=self.player_id,
                    parent=self,
                    action_taken=action,
                    prior_prob=prior,
                )

        self.is_expanded = True

    def _simulate_action(self, action: Hashable, rng: random.Random):
        """Copy the state, play `action` and resolve the turn."""
        new_game = self.game_state.copy()
        action.apply(new_game, self.player_id)
        new_game.complete_turn(rng)
        return new_game

    def backpropagate(self, value: float) -> None:
        """Update visit count and value statistics up to the root."""
        node = self
        while node is not None:
            node.visit_count += 1
            node.total_value += value
            node.mean_value = node.total_value / node.visit_count
            node = node.parent

    def best_action(self) -> Hashable:
        """
        Most visited child's action (first one wins ties).

        Raises:
            ValueError: If node has no children
        """
        if not self.children:
            raise ValueError("Cannot select action: node has no children")

        best_action = None
        best_visits = -1
        for action, child in self.children.items():
            if child.visit_count > best_visits:
                best_visits = child.visit_count
                best_action = action
        return best_action

    def __repr__(self) -> str:
        """String representation of node for debugging."""
        return (
            f"MCTSNode(action={self.action_taken}, "
            f"visits={self.visit_count}, "
            f"value={self.mean_value:.3f}, "
            f"prior={self.prior_prob:.3f}, "
            f"children={len(self.children)})"
        )
