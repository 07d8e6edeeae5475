"""
Ensemble determinization decision engine.

The agent never sees its opponents' hands. For every decision the engine
repeatedly samples a plausible fully-observed version of the true state
(a determinization), runs a tree search on it, reads each legal action's
mean value from the search tree, and finally plays the action with the
highest value averaged over all completed samples.

Multi-World Algorithm:
    1. Start an accumulator with a zero entry per legal action
    2. Until sample_count samples ran or the time budget (minus a safety
       margin) is spent:
        - Determinize the true state from the deciding player's view
        - Run the search with a proportional share of the budget
        - Add every action's Q-value to its accumulator entry
    3. Pick the action with the greatest mean (first legal action wins ties)
    4. If no sample completed, pick a uniformly random legal action

A sample whose determinization, search or value extraction raises is
dropped as a whole and sampling continues. Diagnostic logging never
affects the returned action.

Two engines share the decide() contract:
    - EnsembleDecisionEngine: the multi-world loop above
    - DelegatingDecisionEngine: one search with the whole budget, most
      visited root action
"""

import logging
import math
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Hashable, List, Optional, Sequence

from sushimaster.config import AgentConfig

logger = logging.getLogger(__name__)


class DecisionError(ValueError):
    """Raised when decide() is called with a null state or no legal actions."""

    pass


def extract_action_value(tree, action: Hashable) -> float:
    """
    Mean return of `action` at the root of a completed search tree.

    Args:
        tree: Search tree root exposing child_for(action)
        action: Action to look up

    Returns:
        total_value / visit_count of the root child reached by `action`,
        or 0.0 if the action was never expanded or never visited

    Example:
        >>> extract_action_value(root, action)  # child with 12.0 over 4 visits
        3.0
    """
    stats = tree.child_for(action)
    if stats is None:
        return 0.0
    if stats.visit_count == 0:
        return 0.0
    return stats.total_value / stats.visit_count


@dataclass
class DecisionStats:
    """Running counters of one engine, for monitoring."""

    decisions: int = 0
    fallback_decisions: int = 0
    single_action_decisions: int = 0
    completed_samples: int = 0
    failed_samples: int = 0
    timeouts: int = 0
    logging_failures: int = 0


@dataclass
class DecisionResult:
    """
    Outcome of one decision.

    Attributes:
        action: Chosen legal action
        mean_values: Average value per action that received samples
        samples_completed: Samples that contributed values
        samples_failed: Samples dropped because they raised
        fallback: True if the action was drawn at random
        timed_out: True if sampling stopped on the time budget
        elapsed_ms: Wall-clock time of the decision
    """

    action: Hashable
    mean_values: Dict[Hashable, float] = field(default_factory=dict)
    samples_completed: int = 0
    samples_failed: int = 0
    fallback: bool = False
    timed_out: bool = False
    elapsed_ms: float = 0.0


class DecisionEngine:
    """
    Base class holding the collaborators and the decide() contract.

    Subclasses implement _select().

    Attributes:
        player_id: Deciding player; only their information stays fixed
        search: Search procedure with run(state, player_id, actions, time_budget_ms)
        config: Agent configuration (samples, budget, safety margin)
        heuristic: Optional evaluator used for diagnostic action scores
        decision_logger: Optional DecisionLogger receiving one record per decision
        rng: Random source for determinizations and fallback choices
        diagnostic_rng: Random source for compute_action_scores(), split off rng
        stats: DecisionStats counters
    """

    def __init__(
        self,
        player_id: int,
        search,
        config: Optional[AgentConfig] = None,
        heuristic=None,
        decision_logger=None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.player_id = player_id
        self.search = search
        self.config = config if config is not None else AgentConfig()
        self.heuristic = heuristic
        self.decision_logger = decision_logger
        self.rng = rng if rng is not None else random.Random(self.config.seed)
        # Diagnostics draw from their own stream so logging never shifts decisions
        self.diagnostic_rng = random.Random(self.rng.getrandbits(64))
        self.clock = clock
        self.stats = DecisionStats()

    def decide(
        self,
        state,
        legal_actions: Sequence[Hashable],
        sample_count: Optional[int] = None,
        time_budget_ms: Optional[float] = None,
    ) -> Hashable:
        """
        Choose one of `legal_actions` for the true (partially observed) state.

        Args:
            state: True game state; never mutated
            legal_actions: Non-empty sequence of distinct actions
            sample_count: Determinizations to run (default: from config)
            time_budget_ms: Decision budget (default: from config)

        Returns:
            An element of legal_actions

        Raises:
            DecisionError: If state is None or legal_actions is empty
        """
        return self.decide_with_details(state, legal_actions, sample_count, time_budget_ms).action

    def decide_with_details(
        self,
        state,
        legal_actions: Sequence[Hashable],
        sample_count: Optional[int] = None,
        time_budget_ms: Optional[float] = None,
    ) -> DecisionResult:
        """Same as decide(), returning the full DecisionResult."""
        start = self.clock()

        if state is None:
            raise DecisionError("Cannot decide: state is None")
        actions = list(legal_actions) if legal_actions is not None else []
        if not actions:
            raise DecisionError("Cannot decide: no legal actions")

        if len(actions) == 1:
            result = DecisionResult(action=actions[0])
            self.stats.single_action_decisions += 1
        else:
            samples = sample_count if sample_count is not None else self.config.determinization_samples
            budget = time_budget_ms if time_budget_ms is not None else self.config.time_budget_ms
            result = self._select(state, actions, samples, budget, start)

        result.elapsed_ms = (self.clock() - start) * 1000.0

        self.stats.decisions += 1
        if result.fallback:
            self.stats.fallback_decisions += 1

        logger.debug(
            f"Player {self.player_id} chose {result.action} after "
            f"{result.samples_completed} samples ({result.samples_failed} failed) "
            f"in {result.elapsed_ms:.1f}ms"
        )

        self._log_decision(state, actions, result)
        return result

    def _select(
        self,
        state,
        legal_actions: List[Hashable],
        sample_count: int,
        time_budget_ms: float,
        start: float,
    ) -> DecisionResult:
        raise NotImplementedError

    def _fallback(self, legal_actions: List[Hashable], **details) -> DecisionResult:
        action = legal_actions[self.rng.randrange(len(legal_actions))]
        return DecisionResult(action=action, fallback=True, **details)

    def compute_action_scores(self, state, legal_actions: Sequence[Hashable]) -> Dict[Hashable, float]:
        """
        One-step heuristic score of every action, for diagnostics.

        Each action is applied to its own determinization, the turn is
        completed with random opponent choices, and the result is scored.
        """
        scores = {}
        for action in legal_actions:
            det_state = state.copy_determinized(self.player_id, self.diagnostic_rng)
            action.apply(det_state, self.player_id)
            det_state.complete_turn(self.diagnostic_rng)
            scores[action] = self.heuristic.evaluate(det_state, self.player_id)
        return scores

    def _log_decision(self, state, legal_actions: List[Hashable], result: DecisionResult) -> None:
        if self.decision_logger is None:
            return
        try:
            if self.heuristic is not None:
                scores = self.compute_action_scores(state, legal_actions)
            else:
                scores = dict(result.mean_values)
            self.decision_logger.record(
                round_index=state.round_index,
                turn_index=state.turn_index,
                agent_id=self.player_id,
                candidate_scores=scores,
                chosen_action=result.action,
                num_players=state.num_players,
                state_summary=str(state),
            )
        except Exception as e:
            self.stats.logging_failures += 1
            logger.warning(f"Failed to record decision for player {self.player_id}: {e}")


class EnsembleDecisionEngine(DecisionEngine):
    """
    Multi-world decision engine averaging Q-values over determinizations.

    Example:
        >>> engine = EnsembleDecisionEngine(0, MCTS(SushiGoHeuristic()))
        >>> action = engine.decide(game, game.get_legal_actions(0))
    """

    def _select(
        self,
        state,
        legal_actions: List[Hashable],
        sample_count: int,
        time_budget_ms: float,
        start: float,
    ) -> DecisionResult:
        deadline_ms = time_budget_ms - self.config.safety_margin_ms
        per_sample_budget_ms = self.config.per_sample_budget_ms(sample_count, time_budget_ms)

        value_sums = {action: 0.0 for action in legal_actions}
        value_counts = {action: 0 for action in legal_actions}

        completed = 0
        failed = 0
        timed_out = False

        for sample in range(sample_count):
            # Never start a sample past the deadline
            if (self.clock() - start) * 1000.0 >= deadline_ms:
                timed_out = True
                logger.debug(f"Determinization timeout after {sample} samples")
                break

            try:
                det_state = state.copy_determinized(self.player_id, self.rng)
                tree = self.search.run(det_state, self.player_id, legal_actions, per_sample_budget_ms)
                sample_values = {action: extract_action_value(tree, action) for action in legal_actions}
            except Exception as e:
                failed += 1
                logger.warning(f"Determinization sample {sample} failed: {e}")
                continue

            for action, value in sample_values.items():
                value_sums[action] += value
                value_counts[action] += 1
            completed += 1

        self.stats.completed_samples += completed
        self.stats.failed_samples += failed
        if timed_out:
            self.stats.timeouts += 1

        if completed == 0:
            logger.error(
                f"No determinization samples completed for player {self.player_id} "
                f"({failed} failed); falling back to a random action"
            )
            return self._fallback(legal_actions, samples_failed=failed, timed_out=timed_out)

        mean_values = {
            action: value_sums[action] / value_counts[action]
            for action in legal_actions
            if value_counts[action] > 0
        }

        # Seeded with the first sampled action so NaN means still yield a legal action
        sampled = [action for action in legal_actions if action in mean_values]
        best_action = sampled[0]
        best_value = mean_values[best_action]
        for action in sampled[1:]:
            value = mean_values[action]
            if value > best_value or (math.isnan(best_value) and not math.isnan(value)):
                best_value = value
                best_action = action

        return DecisionResult(
            action=best_action,
            mean_values=mean_values,
            samples_completed=completed,
            samples_failed=failed,
            timed_out=timed_out,
        )


class DelegatingDecisionEngine(DecisionEngine):
    """
    Single-search alternative: one determinization, the whole budget, and
    the most visited root action.
    """

    def _select(
        self,
        state,
        legal_actions: List[Hashable],
        sample_count: int,
        time_budget_ms: float,
        start: float,
    ) -> DecisionResult:
        budget_ms = max(0.0, time_budget_ms - self.config.safety_margin_ms)

        try:
            det_state = state.copy_determinized(self.player_id, self.rng)
            tree = self.search.run(det_state, self.player_id, legal_actions, budget_ms)
            visits = {}
            for action in legal_actions:
                stats = tree.child_for(action)
                visits[action] = stats.visit_count if stats is not None else 0
            mean_values = {action: extract_action_value(tree, action) for action in legal_actions}
        except Exception as e:
            self.stats.failed_samples += 1
            logger.warning(f"Search failed for player {self.player_id}: {e}")
            logger.error(f"Falling back to a random action for player {self.player_id}")
            return self._fallback(legal_actions, samples_failed=1)

        self.stats.completed_samples += 1

        best_action = None
        best_visits = 0
        for action in legal_actions:
            if visits[action] > best_visits:
                best_visits = visits[action]
                best_action = action

        if best_action is None:
            logger.error(f"Search visited no root action for player {self.player_id}")
            return self._fallback(legal_actions, samples_completed=1)

        return DecisionResult(
            action=best_action,
            mean_values=mean_values,
            samples_completed=1,
        )


ENGINE_VARIANTS = {
    "ensemble": EnsembleDecisionEngine,
    "delegating": DelegatingDecisionEngine,
}
