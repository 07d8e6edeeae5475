"""
Decision-making agents for SushiMaster.

- EnsembleDecisionEngine: averages search values over many determinizations
- DelegatingDecisionEngine: single-search alternative behind the same contract
- extract_action_value: Q-value of a root action in a completed search tree
- DecisionLogger: per-decision CSV/JSONL diagnostic trace
- SushiGoAgent / RandomAgent: ready-to-play seats
"""

from sushimaster.agents.ensemble import (
    DecisionEngine,
    EnsembleDecisionEngine,
    DelegatingDecisionEngine,
    DecisionError,
    DecisionResult,
    DecisionStats,
    ENGINE_VARIANTS,
    extract_action_value,
)
from sushimaster.agents.decision_log import DecisionLogger, DecisionLoggerError
from sushimaster.agents.agent import SushiGoAgent, RandomAgent

__all__ = [
    "DecisionEngine",
    "EnsembleDecisionEngine",
    "DelegatingDecisionEngine",
    "DecisionError",
    "DecisionResult",
    "DecisionStats",
    "ENGINE_VARIANTS",
    "extract_action_value",
    "DecisionLogger",
    "DecisionLoggerError",
    "SushiGoAgent",
    "RandomAgent",
]
