"""
Tests for the MCTS node and the heuristic-guided search.

Tests cover:
- Node initialization, root/leaf detection and repr
- child_for() statistics snapshots
- Expansion through the game engine
- UCB selection and backpropagation
- Search budgets (simulation cap and wall clock) and state isolation
"""

import random

import pytest
from sushimaster.game import SushiGoGame
from sushimaster.heuristics import SushiGoHeuristic
from sushimaster.mcts.node import MCTSNode, ActionStats
from sushimaster.mcts.search import MCTS


def make_game(num_players=3, seed=0):
    game = SushiGoGame(num_players=num_players, rng=random.Random(seed))
    game.setup_round()
    return game


class TickingClock:
    """Clock that advances a fixed step every time it is read."""

    def __init__(self, step_seconds):
        self.now = 0.0
        self.step = step_seconds

    def __call__(self):
        self.now += self.step
        return self.now


class TestMCTSNodeBasics:
    """Test basic node operations and state."""

    def test_node_initialization(self):
        node = MCTSNode(game_state=None, player_id=2)

        assert node.player_id == 2
        assert node.parent is None
        assert node.visit_count == 0
        assert node.total_value == 0.0
        assert node.mean_value == 0.0
        assert node.children == {}
        assert node.is_leaf() is True
        assert node.is_root() is True

    def test_child_is_not_root(self):
        root = MCTSNode(None, 0)
        child = MCTSNode(None, 0, parent=root, action_taken="a")
        assert child.is_root() is False

    def test_node_repr(self):
        node = MCTSNode(None, 0, action_taken="a", prior_prob=0.5)
        node.backpropagate(0.5)
        repr_str = repr(node)
        assert "visits=1" in repr_str
        assert "value=0.500" in repr_str
        assert "prior=0.500" in repr_str


class TestChildStats:
    """Test the child_for() read accessor."""

    def test_missing_child_returns_none(self):
        root = MCTSNode(None, 0)
        assert root.child_for("a") is None

    def test_child_stats_snapshot(self):
        root = MCTSNode(None, 0)
        child = MCTSNode(None, 0, parent=root, action_taken="a")
        root.children["a"] = child
        child.backpropagate(2.0)
        child.backpropagate(1.0)

        stats = root.child_for("a")
        assert stats == ActionStats(total_value=3.0, visit_count=2)
        assert stats.mean_value == pytest.approx(1.5)

    def test_unvisited_mean_is_zero(self):
        assert ActionStats(total_value=0.0, visit_count=0).mean_value == 0.0


class TestMCTSNodeTree:
    """Test expansion, selection and backpropagation."""

    def test_expand_creates_children(self):
        game = make_game()
        root = MCTSNode(game, 0)
        actions = game.get_legal_actions(0)

        root.expand(actions, random.Random(0))

        assert root.is_expanded is True
        assert list(root.children) == actions
        for action, child in root.children.items():
            assert child.parent is root
            assert child.action_taken == action
            assert child.prior_prob == pytest.approx(1.0 / len(actions))
            # The turn was resolved on the child's own copy
            assert child.game_state.turn_index == 1
            assert child.game_state.players[0].played == [action.card]
        assert game.turn_index == 0

    def test_expand_without_actions_raises(self):
        with pytest.raises(ValueError, match="no legal actions"):
            MCTSNode(None, 0).expand([], random.Random(0))

    def test_backpropagate_updates_ancestors(self):
        root = MCTSNode(None, 0)
        child = MCTSNode(None, 0, parent=root)
        grandchild = MCTSNode(None, 0, parent=child)

        grandchild.backpropagate(0.5)

        for node in (root, child, grandchild):
            assert node.visit_count == 1
            assert node.total_value == 0.5

    def test_select_child_prefers_higher_value(self):
        root = MCTSNode(None, 0)
        for action, value in (("a", 0.1), ("b", 0.9)):
            child = MCTSNode(None, 0, parent=root, action_taken=action, prior_prob=0.5)
            root.children[action] = child
            child.backpropagate(value)

        assert root.select_child(c_puct=0.0).action_taken == "b"

    def test_select_child_without_children_raises(self):
        with pytest.raises(ValueError):
            MCTSNode(None, 0).select_child()

    def test_best_action_is_most_visited(self):
        root = MCTSNode(None, 0)
        for action, visits in (("a", 2), ("b", 5), ("c", 5)):
            child = MCTSNode(None, 0, parent=root, action_taken=action)
            root.children[action] = child
            for _ in range(visits):
                child.backpropagate(0.0)
        assert root.best_action() == "b"


class TestMCTSSearch:
    """Test the search procedure."""

    def test_run_builds_tree_over_legal_actions(self):
        game = make_game()
        mcts = MCTS(SushiGoHeuristic(), num_simulations=30, rng=random.Random(1))

        root = mcts.run(game, 0)

        assert list(root.children) == game.get_legal_actions(0)
        assert root.visit_count == 30
        assert sum(child.visit_count for child in root.children.values()) == 30

    def test_run_restricted_to_given_actions(self):
        game = make_game()
        actions = game.get_legal_actions(0)[:2]
        mcts = MCTS(SushiGoHeuristic(), num_simulations=10, rng=random.Random(1))

        root = mcts.run(game, 0, actions)

        assert list(root.children) == actions

    def test_run_does_not_mutate_state(self):
        game = make_game(seed=5)
        hands_before = [list(p.hand) for p in game.players]
        summary_before = str(game)

        MCTS(SushiGoHeuristic(), num_simulations=20, rollout_length=2).run(game, 1)

        assert [p.hand for p in game.players] == hands_before
        assert str(game) == summary_before
        assert all(p.pending is None for p in game.players)

    def test_time_budget_stops_search(self):
        game = make_game()
        mcts = MCTS(SushiGoHeuristic(), num_simulations=100, clock=TickingClock(1.0))

        root = mcts.run(game, 0, time_budget_ms=500)

        # At least one simulation always runs
        assert root.visit_count == 1

    def test_values_are_bounded(self):
        game = make_game(seed=9)
        root = MCTS(SushiGoHeuristic(), num_simulations=40, rollout_length=3).run(game, 2)
        for child in root.children.values():
            if child.visit_count:
                assert -1.0 <= child.mean_value <= 1.0

    def test_run_without_actions_raises(self):
        game = make_game()
        with pytest.raises(ValueError, match="no legal actions"):
            MCTS(SushiGoHeuristic()).run(game, 0, actions=[])

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            MCTS(SushiGoHeuristic(), num_simulations=0)
        with pytest.raises(ValueError):
            MCTS(SushiGoHeuristic(), rollout_length=-1)
