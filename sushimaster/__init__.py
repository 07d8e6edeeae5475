"""
SushiMaster: ensemble determinization agent for Sushi Go.

Subpackages:
    game: Sushi Go rules, scoring and determinized copies
    heuristics: four-component state evaluator
    mcts: reference heuristic-guided tree search
    agents: decision engines, diagnostic logger and ready-to-play agents
"""

__version__ = "0.1.0"
