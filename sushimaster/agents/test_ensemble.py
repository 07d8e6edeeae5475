"""
Tests for the ensemble determinization decision engine.

Tests cover:
- Action-value extraction from search trees
- Averaging across determinizations and first-wins tie breaking
- Time budget checks between samples
- Isolation of failing samples and the random fallback
- Diagnostic logging never affecting the decision
- The delegating single-search variant
"""

import random
from collections import Counter

import pytest
from sushimaster.config import AgentConfig
from sushimaster.game import SushiGoGame
from sushimaster.heuristics import SushiGoHeuristic
from sushimaster.mcts import MCTS, MCTSNode, ActionStats
from sushimaster.agents.ensemble import (
    EnsembleDecisionEngine,
    DelegatingDecisionEngine,
    DecisionError,
    extract_action_value,
)


# ============================================================================
# Fakes
# ============================================================================


class FakeTree:
    """Search tree root with fixed (total_value, visit_count) per action."""

    def __init__(self, children):
        self.children = dict(children)

    def child_for(self, action):
        if action not in self.children:
            return None
        total, visits = self.children[action]
        return ActionStats(total_value=total, visit_count=visits)


class FakeState:
    """True state that records every determinization request."""

    round_index = 0
    turn_index = 0
    num_players = 3

    def __init__(self):
        self.observers = []

    def copy_determinized(self, observer, rng=None):
        self.observers.append(observer)
        return {"sample": len(self.observers)}


class FakeSearch:
    """Returns prepared trees in order; optionally raises on chosen calls."""

    def __init__(self, trees=None, fail_on=(), fail_all=False, clock=None, seconds_per_run=0.0):
        self.trees = list(trees or [])
        self.fail_on = set(fail_on)
        self.fail_all = fail_all
        self.clock = clock
        self.seconds_per_run = seconds_per_run
        self.calls = []

    def run(self, state, player_id, actions, time_budget_ms):
        call = len(self.calls)
        self.calls.append((state, player_id, list(actions), time_budget_ms))
        if self.clock is not None:
            self.clock.now += self.seconds_per_run
        if self.fail_all or call in self.fail_on:
            raise RuntimeError(f"search {call} blew up")
        return self.trees[min(call, len(self.trees) - 1)]


class ManualClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class RecordingLogger:
    def __init__(self):
        self.records = []

    def record(self, **kwargs):
        self.records.append(kwargs)


class BrokenLogger:
    def record(self, **kwargs):
        raise OSError("disk full")


def make_engine(search, clock=None, seed=0, **kwargs):
    config = AgentConfig(determinization_samples=10, time_budget_ms=1000, safety_margin_ms=50)
    return EnsembleDecisionEngine(
        player_id=1,
        search=search,
        config=config,
        rng=random.Random(seed),
        clock=clock if clock is not None else ManualClock(),
        **kwargs,
    )


# ============================================================================
# Action-value extraction
# ============================================================================


class TestExtractActionValue:
    """Test Q-value lookup at the tree root."""

    def test_mean_return(self):
        tree = FakeTree({"a": (12.0, 4)})
        assert extract_action_value(tree, "a") == 3.0

    def test_unexplored_action_is_neutral(self):
        tree = FakeTree({"a": (12.0, 4)})
        assert extract_action_value(tree, "b") == 0.0

    def test_unvisited_child_is_neutral(self):
        tree = FakeTree({"a": (5.0, 0)})
        assert extract_action_value(tree, "a") == 0.0

    def test_unexpanded_root(self):
        assert extract_action_value(MCTSNode(None, 0), "a") == 0.0

    def test_reads_real_node_without_mutation(self):
        root = MCTSNode(None, 0)
        child = MCTSNode(None, 0, parent=root, action_taken="a")
        root.children["a"] = child
        for value in (1.0, 2.0, 6.0):
            child.backpropagate(value)

        assert extract_action_value(root, "a") == pytest.approx(3.0)
        assert child.visit_count == 3
        assert root.visit_count == 3


# ============================================================================
# Ensemble engine
# ============================================================================


class TestEnsembleSelection:
    """Test averaging and arg-max selection."""

    def test_picks_highest_mean(self):
        search = FakeSearch([FakeTree({"A": (6.0, 3), "B": (9.0, 3)})])
        engine = make_engine(search)

        result = engine.decide_with_details(FakeState(), ["A", "B"], sample_count=1)

        assert result.action == "B"
        assert result.mean_values == {"A": 2.0, "B": 3.0}
        assert result.samples_completed == 1
        assert result.fallback is False

    def test_averages_across_samples(self):
        search = FakeSearch([
            FakeTree({"A": (1.0, 1), "B": (0.0, 1)}),
            FakeTree({"A": (0.0, 1), "B": (3.0, 1)}),
        ])
        engine = make_engine(search)

        result = engine.decide_with_details(FakeState(), ["A", "B"], sample_count=2)

        assert result.action == "B"
        assert result.mean_values["A"] == pytest.approx(0.5)
        assert result.mean_values["B"] == pytest.approx(1.5)

    def test_ties_go_to_first_legal_action(self):
        tree = FakeTree({"A": (3.0, 1), "B": (3.0, 1)})
        assert make_engine(FakeSearch([tree])).decide(FakeState(), ["A", "B"], 1) == "A"
        assert make_engine(FakeSearch([tree])).decide(FakeState(), ["B", "A"], 1) == "B"

    def test_nan_means_still_pick_legal_action(self):
        nan = float("nan")
        all_nan = FakeTree({"A": (nan, 1), "B": (nan, 1)})
        assert make_engine(FakeSearch([all_nan])).decide(FakeState(), ["A", "B"], 1) == "A"

        first_nan = FakeTree({"A": (nan, 1), "B": (-1.0, 1), "C": (-2.0, 1)})
        assert make_engine(FakeSearch([first_nan])).decide(FakeState(), ["A", "B", "C"], 1) == "B"

    def test_unexplored_action_counts_as_zero(self):
        search = FakeSearch([FakeTree({"B": (-2.0, 2)})])
        assert make_engine(search).decide(FakeState(), ["A", "B"], 1) == "A"

    def test_one_determinization_per_sample(self):
        state = FakeState()
        search = FakeSearch([FakeTree({"A": (1.0, 1)})])
        engine = make_engine(search)

        engine.decide(state, ["A", "B"], sample_count=4)

        assert state.observers == [1, 1, 1, 1]
        assert [call[0]["sample"] for call in search.calls] == [1, 2, 3, 4]
        assert all(call[1] == 1 for call in search.calls)

    def test_search_gets_proportional_budget(self):
        search = FakeSearch([FakeTree({"A": (1.0, 1)})])
        make_engine(search).decide(FakeState(), ["A", "B"])

        assert len(search.calls) == 10
        assert search.calls[0][3] == pytest.approx(95.0)

    def test_budget_overrides_split_per_call(self):
        search = FakeSearch([FakeTree({"A": (1.0, 1)})])
        make_engine(search).decide(FakeState(), ["A", "B"], sample_count=5, time_budget_ms=550)

        assert len(search.calls) == 5
        assert search.calls[0][3] == pytest.approx(100.0)

    def test_single_action_short_circuits(self):
        search = FakeSearch([FakeTree({})])
        engine = make_engine(search)

        assert engine.decide(FakeState(), ["only"]) == "only"
        assert search.calls == []
        assert engine.stats.single_action_decisions == 1

    def test_real_game_returns_legal_action_and_leaves_state(self):
        game = SushiGoGame(num_players=3, rng=random.Random(3))
        game.setup_round()
        hands_before = [list(p.hand) for p in game.players]
        actions = game.get_legal_actions(0)
        engine = EnsembleDecisionEngine(
            0,
            MCTS(SushiGoHeuristic(), num_simulations=15, rng=random.Random(4)),
            config=AgentConfig(determinization_samples=3, time_budget_ms=5000),
            rng=random.Random(5),
        )

        result = engine.decide_with_details(game, actions)

        assert result.action in actions
        assert result.samples_completed == 3
        assert set(result.mean_values) == set(actions)
        assert [p.hand for p in game.players] == hands_before
        assert game.turn_index == 0


class TestEnsembleBudget:
    """Test the wall-clock budget checks between samples."""

    def test_stops_between_samples(self):
        clock = ManualClock()
        search = FakeSearch([FakeTree({"A": (1.0, 1)})], clock=clock, seconds_per_run=0.3)
        engine = make_engine(search, clock=clock)

        result = engine.decide_with_details(FakeState(), ["A", "B"])

        # Samples start at 0, 300, 600 and 900ms; 1200ms is past the 950ms deadline
        assert result.samples_completed == 4
        assert result.timed_out is True
        assert result.action == "A"
        assert engine.stats.timeouts == 1

    def test_zero_budget_falls_back(self):
        search = FakeSearch([FakeTree({"A": (1.0, 1)})])
        engine = make_engine(search)

        result = engine.decide_with_details(FakeState(), ["A", "B", "C"], time_budget_ms=0)

        assert search.calls == []
        assert result.fallback is True
        assert result.samples_completed == 0
        assert result.action in ("A", "B", "C")
        assert engine.stats.fallback_decisions == 1

    def test_fallback_is_uniform(self):
        engine = make_engine(FakeSearch(), seed=1234)
        actions = ["A", "B", "C"]

        counts = Counter(
            engine.decide(FakeState(), actions, time_budget_ms=0) for _ in range(3000)
        )

        assert set(counts) == set(actions)
        for action in actions:
            assert 850 <= counts[action] <= 1150
        assert engine.stats.fallback_decisions == 3000


class TestEnsembleFailures:
    """Test isolation of failing samples and caller errors."""

    def test_all_searches_fail(self):
        search = FakeSearch(fail_all=True)
        engine = make_engine(search)

        result = engine.decide_with_details(FakeState(), ["A", "B", "C"], sample_count=5)

        assert len(search.calls) == 5
        assert result.fallback is True
        assert result.samples_completed == 0
        assert result.samples_failed == 5
        assert result.action in ("A", "B", "C")
        assert engine.stats.completed_samples == 0
        assert engine.stats.failed_samples == 5

    def test_failed_sample_is_excluded(self):
        search = FakeSearch(
            [FakeTree({"A": (9.0, 1), "B": (0.0, 1)}), FakeTree({"A": (0.0, 1), "B": (1.0, 1)})],
            fail_on={0},
        )
        engine = make_engine(search)

        result = engine.decide_with_details(FakeState(), ["A", "B"], sample_count=2)

        # Only the second tree contributed
        assert result.samples_completed == 1
        assert result.samples_failed == 1
        assert result.action == "B"

    def test_failing_determinization_is_isolated(self):
        class FlakyState(FakeState):
            def copy_determinized(self, observer, rng=None):
                if not self.observers:
                    self.observers.append(observer)
                    raise RuntimeError("bad shuffle")
                return super().copy_determinized(observer, rng)

        search = FakeSearch([FakeTree({"A": (1.0, 1)})])
        result = make_engine(search).decide_with_details(FlakyState(), ["A", "B"], sample_count=3)

        assert result.samples_completed == 2
        assert result.samples_failed == 1

    def test_none_state_raises(self):
        with pytest.raises(DecisionError, match="state is None"):
            make_engine(FakeSearch()).decide(None, ["A"])

    def test_empty_actions_raise(self):
        with pytest.raises(ValueError, match="no legal actions"):
            make_engine(FakeSearch()).decide(FakeState(), [])


class TestDiagnosticLogging:
    """Test the optional per-decision record."""

    def test_record_sent_to_logger(self):
        decision_logger = RecordingLogger()
        search = FakeSearch([FakeTree({"A": (6.0, 3), "B": (9.0, 3)})])
        engine = make_engine(search, decision_logger=decision_logger)

        engine.decide(FakeState(), ["A", "B"], sample_count=1)

        assert len(decision_logger.records) == 1
        record = decision_logger.records[0]
        assert record["chosen_action"] == "B"
        assert record["candidate_scores"] == {"A": 2.0, "B": 3.0}
        assert record["agent_id"] == 1
        assert record["num_players"] == 3

    def test_logger_failure_never_changes_decision(self):
        search = FakeSearch([FakeTree({"A": (6.0, 3), "B": (9.0, 3)})])
        engine = make_engine(search, decision_logger=BrokenLogger())

        assert engine.decide(FakeState(), ["A", "B"], sample_count=1) == "B"
        assert engine.stats.logging_failures == 1

    def test_heuristic_scores_logged_for_real_game(self):
        game = SushiGoGame(num_players=2, rng=random.Random(8))
        game.setup_round()
        actions = game.get_legal_actions(0)
        decision_logger = RecordingLogger()
        heuristic = SushiGoHeuristic()
        engine = EnsembleDecisionEngine(
            0,
            MCTS(heuristic, num_simulations=5, rng=random.Random(1)),
            config=AgentConfig(determinization_samples=2, time_budget_ms=5000),
            heuristic=heuristic,
            decision_logger=decision_logger,
            rng=random.Random(2),
        )

        chosen = engine.decide(game, actions)

        record = decision_logger.records[0]
        assert set(record["candidate_scores"]) == set(actions)
        assert record["chosen_action"] == chosen
        assert game.turn_index == 0


# ============================================================================
# Delegating engine
# ============================================================================


class TestDelegatingEngine:
    """Test the single-search alternative."""

    def make(self, search):
        return DelegatingDecisionEngine(
            1,
            search,
            config=AgentConfig(time_budget_ms=1000, safety_margin_ms=50),
            rng=random.Random(0),
            clock=ManualClock(),
        )

    def test_picks_most_visited(self):
        search = FakeSearch([FakeTree({"A": (1.0, 10), "B": (5.0, 2)})])
        engine = self.make(search)

        assert engine.decide(FakeState(), ["A", "B"]) == "A"
        assert len(search.calls) == 1
        assert search.calls[0][3] == pytest.approx(950.0)

    def test_failure_falls_back(self):
        engine = self.make(FakeSearch(fail_all=True))

        result = engine.decide_with_details(FakeState(), ["A", "B"])

        assert result.fallback is True
        assert result.action in ("A", "B")
        assert engine.stats.fallback_decisions == 1

    def test_unvisited_tree_falls_back(self):
        engine = self.make(FakeSearch([FakeTree({})]))
        result = engine.decide_with_details(FakeState(), ["A", "B"])
        assert result.fallback is True
