"""
SushiMaster Game Engine Package.

This package contains the Sushi Go game logic used by the agent,
including card definitions, rules, scoring and state copies.
"""

from sushimaster.game.constants import (
    CardType,
    NIGIRI_TYPES,
    DECK_SIZE,
    MIN_PLAYERS,
    MAX_PLAYERS,
    NUM_ROUNDS,
    DUMPLING_SCORES,
    cards_per_player,
    dumpling_score,
)
from sushimaster.game.sushigo import (
    Card,
    Deck,
    Player,
    PlayCard,
    SushiGoGame,
    SushiGoException,
    IllegalPlayException,
    GameStateException,
)

__all__ = [
    "CardType",
    "NIGIRI_TYPES",
    "DECK_SIZE",
    "MIN_PLAYERS",
    "MAX_PLAYERS",
    "NUM_ROUNDS",
    "DUMPLING_SCORES",
    "cards_per_player",
    "dumpling_score",
    "Card",
    "Deck",
    "Player",
    "PlayCard",
    "SushiGoGame",
    "SushiGoException",
    "IllegalPlayException",
    "GameStateException",
]
