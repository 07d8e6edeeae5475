"""
State evaluation for SushiMaster.

- SushiGoHeuristic: four-component weighted state evaluator
- HeuristicWeights: tunable sub-score weights
- HeuristicBreakdown: per-component values of one evaluation
"""

from sushimaster.heuristics.state_heuristic import (
    SushiGoHeuristic,
    HeuristicWeights,
    HeuristicBreakdown,
    dumpling_marginal_value,
)

__all__ = [
    "SushiGoHeuristic",
    "HeuristicWeights",
    "HeuristicBreakdown",
    "dumpling_marginal_value",
]
