"""
Multi-component state heuristic for Sushi Go.

Turns a fully-observed game state into a scalar "goodness" value for one
player. Four independent sub-scores are combined with tunable weights:

    1. Current score: tanh((my score - best opponent score) / 20)
    2. Potential score: partial set bonuses, marginal dumpling value and a
       penalty for wasabi with nothing to land on, tanh(potential / 15)
    3. Opponent interference: maki lead over the leading opponent,
       tanh(diff / 5)
    4. Pudding strategy: small nudge before the final round, large
       asymmetric reward or penalty once the end-of-game payout is near

Every sub-score is bounded in [-1, 1], so the weighted total is bounded by
the sum of the weights.

The evaluator only reads the state through these accessors:
    get_score(player_id), round_index, num_players,
    get_played_count(card_type, player_id),
    get_cumulative_played_count(card_type, player_id)
"""

from dataclasses import dataclass, asdict
from typing import Dict, List, Optional
import numpy as np

from sushimaster.game.constants import CardType, DUMPLING_SCORES, NIGIRI_TYPES, NUM_ROUNDS

SCORE_SCALE = 20.0
POTENTIAL_SCALE = 15.0
MAKI_SCALE = 5.0

TEMPURA_HALF_SET_BONUS = 2.5
SASHIMI_PARTIAL_BONUS = {1: 2.0, 2: 5.0}
UNUSED_WASABI_PENALTY = 0.8

PUDDING_EARLY_NUDGE = 0.125


@dataclass
class HeuristicWeights:
    """Weights of the four sub-scores (need not sum to 1)."""

    current_score: float = 0.57
    potential_score: float = 0.18
    opponent_interference: float = 0.15
    pudding_strategy: float = 0.10

    def validate(self) -> None:
        for name, value in asdict(self).items():
            if value < 0:
                raise ValueError(f"{name} weight must be non-negative, got {value}")


@dataclass(frozen=True)
class HeuristicBreakdown:
    """Sub-scores of one evaluation, for diagnostics."""

    current_score: float
    potential_score: float
    opponent_interference: float
    pudding_strategy: float
    total: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def dumpling_marginal_value(count: int) -> float:
    """
    Points gained by adding one more dumpling to `count`.

    Examples:
        >>> [dumpling_marginal_value(c) for c in range(6)]
        [1.0, 2.0, 3.0, 4.0, 5.0, 0.0]
    """
    last = len(DUMPLING_SCORES) - 1
    current_value = DUMPLING_SCORES[min(max(count, 0), last)]
    next_value = DUMPLING_SCORES[min(max(count, 0) + 1, last)]
    return float(next_value - current_value)


class SushiGoHeuristic:
    """
    Deterministic state evaluator.

    Pure: no counters, caches or logging, so repeated calls on the same
    state return identical values.

    Attributes:
        weights: Sub-score weights
        total_rounds: Rounds in the game; the last one is the pudding
            "final round"
    """

    def __init__(
        self,
        weights: Optional[HeuristicWeights] = None,
        total_rounds: int = NUM_ROUNDS,
    ):
        if total_rounds < 1:
            raise ValueError(f"total_rounds must be at least 1, got {total_rounds}")
        self.weights = weights if weights is not None else HeuristicWeights()
        self.weights.validate()
        self.total_rounds = total_rounds

    def evaluate(self, state, player_id: int) -> float:
        """
        Score `state` from the point of view of `player_id`.

        Returns:
            Weighted sum of the four sub-scores
        """
        return self.evaluate_components(state, player_id).total

    def evaluate_components(self, state, player_id: int) -> HeuristicBreakdown:
        current = self.current_score(state, player_id)
        potential = self.potential_score(state, player_id)
        interference = self.opponent_interference(state, player_id)
        pudding = self.pudding_strategy(state, player_id)

        total = (
            self.weights.current_score * current
            + self.weights.potential_score * potential
            + self.weights.opponent_interference * interference
            + self.weights.pudding_strategy * pudding
        )
        return HeuristicBreakdown(
            current_score=current,
            potential_score=potential,
            opponent_interference=interference,
            pudding_strategy=pudding,
            total=float(total),
        )

    # ------------------------------------------------------------------
    # Sub-scores
    # ------------------------------------------------------------------

    def current_score(self, state, player_id: int) -> float:
        """Score lead over the best opponent, squashed into (-1, 1)."""
        my_score = state.get_score(player_id)
        opponent_scores = [state.get_score(i) for i in _opponents(state, player_id)]
        max_opponent_score = max(opponent_scores) if opponent_scores else 0

        return float(np.tanh((my_score - max_opponent_score) / SCORE_SCALE))

    def potential_score(self, state, player_id: int) -> float:
        """
        How close the player's unfinished sets are to paying out.

        Half-finished tempura and sashimi sets earn partial credit, the next
        dumpling is worth its marginal value, and wasabi beyond the number of
        nigiri played is penalised.
        """
        potential = 0.0

        if state.get_played_count(CardType.TEMPURA, player_id) == 1:
            potential += TEMPURA_HALF_SET_BONUS

        sashimi = state.get_played_count(CardType.SASHIMI, player_id)
        potential += SASHIMI_PARTIAL_BONUS.get(sashimi, 0.0)

        potential += dumpling_marginal_value(
            state.get_played_count(CardType.DUMPLING, player_id)
        )

        wasabi = state.get_played_count(CardType.WASABI, player_id)
        nigiri = sum(state.get_played_count(t, player_id) for t in NIGIRI_TYPES)
        potential -= max(0, wasabi - nigiri) * UNUSED_WASABI_PENALTY

        return float(np.tanh(potential / POTENTIAL_SCALE))

    def opponent_interference(self, state, player_id: int) -> float:
        """Maki icon lead over the leading opponent."""
        my_maki = state.get_played_count(CardType.MAKI, player_id)
        opponent_maki = [
            state.get_played_count(CardType.MAKI, i) for i in _opponents(state, player_id)
        ]
        max_opponent_maki = max(opponent_maki) if opponent_maki else 0

        return float(np.tanh((my_maki - max_opponent_maki) / MAKI_SCALE))

    def pudding_strategy(self, state, player_id: int) -> float:
        """
        Whole-game pudding standing.

        Before the final round: -0.125 when strictly behind every opponent,
        +0.125 otherwise. In the final round: +1.0 when strictly ahead of
        every opponent, -1.0 when strictly behind every opponent or tied
        with all of them, 0.0 anywhere in between.

        Tying the fewest puddings while some opponent holds more is
        deliberately 0.0, not -1.0: the player shares last place, so the
        -6 penalty is split and partly avoided.
        """
        my_pudding = state.get_cumulative_played_count(CardType.PUDDING, player_id)
        opponent_pudding = [
            state.get_cumulative_played_count(CardType.PUDDING, i)
            for i in _opponents(state, player_id)
        ]
        if not opponent_pudding:
            opponent_pudding = [0]
        max_opponent = max(opponent_pudding)
        min_opponent = min(opponent_pudding)

        if state.round_index < self.total_rounds - 1:
            if my_pudding < min_opponent:
                return -PUDDING_EARLY_NUDGE
            return PUDDING_EARLY_NUDGE

        if my_pudding > max_opponent:
            return 1.0
        if my_pudding < min_opponent or my_pudding == min_opponent == max_opponent:
            return -1.0
        return 0.0


def _opponents(state, player_id: int) -> List[int]:
    return [i for i in range(state.num_players) if i != player_id]
