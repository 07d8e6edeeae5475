"""
Game constants for Sushi Go.

This module defines all the core constants used throughout the game,
including card types, deck composition, hand sizes, and scoring tables.
"""

from enum import Enum
from typing import Dict, Tuple


class CardType(Enum):
    """Kinds of sushi card in the deck."""

    MAKI = "Maki"
    TEMPURA = "Tempura"
    SASHIMI = "Sashimi"
    DUMPLING = "Dumpling"
    SQUID_NIGIRI = "SquidNigiri"
    SALMON_NIGIRI = "SalmonNigiri"
    EGG_NIGIRI = "EggNigiri"
    WASABI = "Wasabi"
    CHOPSTICKS = "Chopsticks"
    PUDDING = "Pudding"

    def __str__(self) -> str:
        return self.value


NIGIRI_TYPES = (CardType.EGG_NIGIRI, CardType.SALMON_NIGIRI, CardType.SQUID_NIGIRI)

# Deck composition: (card type, icon count) → number of copies
DECK_COMPOSITION: Dict[Tuple[CardType, int], int] = {
    (CardType.MAKI, 1): 6,
    (CardType.MAKI, 2): 12,
    (CardType.MAKI, 3): 8,
    (CardType.TEMPURA, 1): 14,
    (CardType.SASHIMI, 1): 14,
    (CardType.DUMPLING, 1): 14,
    (CardType.SQUID_NIGIRI, 1): 5,
    (CardType.SALMON_NIGIRI, 1): 10,
    (CardType.EGG_NIGIRI, 1): 5,
    (CardType.WASABI, 1): 6,
    (CardType.CHOPSTICKS, 1): 4,
    (CardType.PUDDING, 1): 10,
}
DECK_SIZE = sum(DECK_COMPOSITION.values())  # 108

# Game constraints
MIN_PLAYERS = 2
MAX_PLAYERS = 5
NUM_ROUNDS = 3
CARDS_PER_PLAYER = {2: 10, 3: 9, 4: 8, 5: 7}

# Scoring
TEMPURA_SET_SIZE = 2
TEMPURA_SET_VALUE = 5
SASHIMI_SET_SIZE = 3
SASHIMI_SET_VALUE = 10
DUMPLING_SCORES = (0, 1, 3, 6, 10, 15)  # cumulative, index = dumplings held (capped at 5)
NIGIRI_VALUES = {
    CardType.EGG_NIGIRI: 1,
    CardType.SALMON_NIGIRI: 2,
    CardType.SQUID_NIGIRI: 3,
}
WASABI_MULTIPLIER = 3
MAKI_FIRST_PLACE = 6
MAKI_SECOND_PLACE = 3
PUDDING_MOST = 6
PUDDING_LEAST = -6


def cards_per_player(num_players: int) -> int:
    """
    Hand size dealt at the start of every round.

    Args:
        num_players: Number of players in game (2-5)

    Returns:
        Number of cards dealt to each player

    Raises:
        ValueError: If num_players not in valid range [MIN_PLAYERS, MAX_PLAYERS]

    Examples:
        >>> cards_per_player(4)
        8
    """
    if num_players < MIN_PLAYERS or num_players > MAX_PLAYERS:
        raise ValueError(
            f"num_players must be between {MIN_PLAYERS} and {MAX_PLAYERS}, "
            f"got {num_players}"
        )
    return CARDS_PER_PLAYER[num_players]


def dumpling_score(count: int) -> int:
    """Cumulative dumpling points for holding `count` dumplings."""
    return DUMPLING_SCORES[max(0, min(count, len(DUMPLING_SCORES) - 1))]
