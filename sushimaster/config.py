"""
Agent Configuration System

Centralized configuration for the Sushi Go decision agent.
"""

import json
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional

from sushimaster.heuristics.state_heuristic import HeuristicWeights


@dataclass
class AgentConfig:
    """Configuration for the ensemble determinization agent."""

    # Ensemble settings
    determinization_samples: int = 10
    time_budget_ms: float = 1000.0
    safety_margin_ms: float = 50.0  # Stop sampling this long before the budget runs out

    # Search settings
    simulations_per_determinization: int = 200  # Cap; the time sub-budget usually binds first
    c_puct: float = 1.5
    rollout_length: int = 0

    # Heuristic settings
    current_score_weight: float = 0.57
    potential_score_weight: float = 0.18
    opponent_interference_weight: float = 0.15
    pudding_strategy_weight: float = 0.10
    total_rounds: int = 3

    # Diagnostics
    debug_logging: bool = False
    log_dir: str = 'logs'
    run_name: Optional[str] = None
    seed: Optional[int] = None

    def per_sample_budget_ms(
        self,
        sample_count: Optional[int] = None,
        time_budget_ms: Optional[float] = None,
    ) -> float:
        """
        Time budget handed to each search invocation.

        The usable budget (total minus safety margin) is split evenly across
        the determinization samples. Per-call overrides default to the
        configured values.

        Examples:
            >>> AgentConfig().per_sample_budget_ms()
            95.0
            >>> AgentConfig().per_sample_budget_ms(sample_count=5, time_budget_ms=550)
            100.0
        """
        samples = sample_count if sample_count is not None else self.determinization_samples
        budget = time_budget_ms if time_budget_ms is not None else self.time_budget_ms
        usable = budget - self.safety_margin_ms
        return max(0.0, usable) / max(1, samples)

    def heuristic_weights(self) -> HeuristicWeights:
        return HeuristicWeights(
            current_score=self.current_score_weight,
            potential_score=self.potential_score_weight,
            opponent_interference=self.opponent_interference_weight,
            pudding_strategy=self.pudding_strategy_weight,
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert config to dictionary.

        Returns:
            Dictionary representation of config
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'AgentConfig':
        """
        Create config from dictionary.

        Args:
            config_dict: Dictionary of configuration values

        Returns:
            AgentConfig instance
        """
        # Filter out keys that aren't valid config fields
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_keys}
        return cls(**filtered_dict)

    @classmethod
    def from_file(cls, filepath: str) -> 'AgentConfig':
        """
        Load config from JSON file.

        Args:
            filepath: Path to JSON config file

        Returns:
            AgentConfig instance
        """
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def save(self, filepath: str):
        """
        Save config to JSON file.

        Args:
            filepath: Path to save config to
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if config is valid

        Raises:
            ValueError: If config values are invalid
        """
        if self.determinization_samples < 1:
            raise ValueError(
                f"determinization_samples must be at least 1, got {self.determinization_samples}"
            )

        if self.time_budget_ms < 0:
            raise ValueError(f"time_budget_ms must be non-negative, got {self.time_budget_ms}")

        if self.safety_margin_ms < 0:
            raise ValueError(
                f"safety_margin_ms must be non-negative, got {self.safety_margin_ms}"
            )

        if self.simulations_per_determinization < 1:
            raise ValueError(
                f"simulations_per_determinization must be positive, "
                f"got {self.simulations_per_determinization}"
            )

        if self.c_puct < 0:
            raise ValueError(f"c_puct must be non-negative, got {self.c_puct}")

        if self.rollout_length < 0:
            raise ValueError(f"rollout_length must be non-negative, got {self.rollout_length}")

        if self.total_rounds < 1:
            raise ValueError(f"total_rounds must be at least 1, got {self.total_rounds}")

        self.heuristic_weights().validate()

        return True

    def __str__(self) -> str:
        """String representation of config."""
        lines = ["Agent Configuration:"]
        lines.append(
            f"  Ensemble: {self.determinization_samples} determinizations, "
            f"budget={self.time_budget_ms}ms (margin {self.safety_margin_ms}ms)"
        )
        lines.append(
            f"  Search: {self.simulations_per_determinization} sims/det, "
            f"c_puct={self.c_puct}, rollout={self.rollout_length}"
        )
        lines.append(
            f"  Heuristic: weights=({self.current_score_weight}, {self.potential_score_weight}, "
            f"{self.opponent_interference_weight}, {self.pudding_strategy_weight}), "
            f"rounds={self.total_rounds}"
        )
        lines.append(f"  Diagnostics: debug={self.debug_logging}, log_dir={self.log_dir}")
        return "\n".join(lines)


def get_fast_config() -> AgentConfig:
    """
    Get a fast config for testing/debugging.

    Returns:
        AgentConfig with a small sample count and budget
    """
    return AgentConfig(
        determinization_samples=2,
        time_budget_ms=200.0,
        safety_margin_ms=20.0,
        simulations_per_determinization=20,
    )


def get_competition_config() -> AgentConfig:
    """
    Get the full competition config (1s per decision, no diagnostics).

    Returns:
        AgentConfig with default settings
    """
    return AgentConfig()  # Uses defaults
