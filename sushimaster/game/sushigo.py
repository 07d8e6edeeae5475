"""
Core game logic for Sushi Go.

This module implements the game engine used by the agent: Card, Deck,
Player, the PlayCard action and the SushiGoGame state machine.

Turn structure:
    Every player secretly chooses one card from their hand. Choices stay
    hidden until the last player has chosen, then all cards are revealed at
    once, added to each player's played area, and the remaining hands are
    passed to the left. When the hands run out the round is scored and the
    next round is dealt. Puddings are kept across rounds and scored once
    after the final round.

The state doubles as the GameState contract of the decision engine:
    - get_score(), round_index, turn_index, num_players
    - get_played_count() / get_cumulative_played_count()
    - copy_determinized() for hidden-information sampling

Chopsticks are dealt and counted but their swap ability is not modelled.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
import random
import copy
from sushimaster.game.constants import (
    CardType,
    DECK_COMPOSITION,
    NUM_ROUNDS,
    NIGIRI_VALUES,
    WASABI_MULTIPLIER,
    TEMPURA_SET_SIZE,
    TEMPURA_SET_VALUE,
    SASHIMI_SET_SIZE,
    SASHIMI_SET_VALUE,
    MAKI_FIRST_PLACE,
    MAKI_SECOND_PLACE,
    PUDDING_MOST,
    PUDDING_LEAST,
    cards_per_player,
    dumpling_score,
)


# ============================================================================
# Custom Exceptions
# ============================================================================


class SushiGoException(Exception):
    """Base exception for Sushi Go game errors."""

    pass


class IllegalPlayException(SushiGoException):
    """Raised when a player attempts an illegal card play."""

    def __init__(self, player_id: int, card: Optional["Card"], reason: str):
        self.player_id = player_id
        self.card = card
        self.reason = reason
        super().__init__(f"Player {player_id} played {card} illegally: {reason}")


class GameStateException(SushiGoException):
    """Raised when game is in invalid state for requested action."""

    pass


# ============================================================================
# Card and Action
# ============================================================================


@dataclass(frozen=True)
class Card:
    """
    Immutable sushi card.

    Attributes:
        card_type: Kind of card
        count: Maki icons on the card (1-3); always 1 for other types
    """

    card_type: CardType
    count: int = 1

    def __post_init__(self):
        """Validate card creation."""
        if not isinstance(self.card_type, CardType):
            raise ValueError(f"Invalid card type: {self.card_type}")
        max_count = 3 if self.card_type == CardType.MAKI else 1
        if self.count < 1 or self.count > max_count:
            raise ValueError(
                f"Invalid count {self.count} for {self.card_type} "
                f"(must be 1-{max_count})"
            )

    def __str__(self) -> str:
        """String representation: 'Maki-2', 'Tempura'"""
        if self.card_type == CardType.MAKI:
            return f"{self.card_type}-{self.count}"
        return str(self.card_type)


@dataclass(frozen=True)
class PlayCard:
    """
    Action: choose `card` from hand for the current turn.

    Equal cards are interchangeable, so two PlayCard actions for identical
    cards compare (and hash) equal.
    """

    card: Card

    def apply(self, state: "SushiGoGame", player_id: int) -> "SushiGoGame":
        """Apply this choice to `state` (mutates it) and return it."""
        state.apply_action(player_id, self)
        return state

    def __str__(self) -> str:
        return f"Play({self.card})"


# ============================================================================
# Deck Class
# ============================================================================


class Deck:
    """
    The 108-card Sushi Go deck.

    Attributes:
        cards: Undealt cards (drawn from the end)
        rng: Random source used for shuffling
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()
        self.cards: List[Card] = []
        self.reset()

    def reset(self) -> None:
        """Restore the full deck (unshuffled)."""
        self.cards = []
        for (card_type, count), copies in DECK_COMPOSITION.items():
            self.cards.extend(Card(card_type, count) for _ in range(copies))

    def shuffle(self) -> None:
        self.rng.shuffle(self.cards)

    def draw(self, num_cards: int) -> List[Card]:
        """
        Draw cards from the top of the deck.

        Raises:
            GameStateException: If the deck holds fewer than num_cards
        """
        if num_cards > len(self.cards):
            raise GameStateException(
                f"Cannot draw {num_cards} cards, only {len(self.cards)} left"
            )
        drawn = self.cards[-num_cards:] if num_cards else []
        del self.cards[len(self.cards) - num_cards:]
        return drawn

    def remaining_cards(self) -> int:
        return len(self.cards)


# ============================================================================
# Player Class
# ============================================================================


class Player:
    """
    One seat at the table.

    Attributes:
        position: Seat index (0 to num_players-1)
        hand: Cards currently held
        played: Cards revealed this round, in reveal order
        pending: Hidden choice for the current turn (None until chosen)
        score: Total score so far
        round_counts: Played counts per card type this round (maki counts icons)
        cumulative_counts: Played counts per card type across the whole game
    """

    def __init__(self, position: int):
        self.position = position
        self.hand: List[Card] = []
        self.played: List[Card] = []
        self.pending: Optional[Card] = None
        self.score = 0
        self.round_counts: Dict[CardType, int] = {t: 0 for t in CardType}
        self.cumulative_counts: Dict[CardType, int] = {t: 0 for t in CardType}

    def reveal(self) -> Card:
        """Move the pending choice from hand to the played area."""
        card = self.pending
        self.hand.remove(card)
        self.played.append(card)
        self.round_counts[card.card_type] += card.count
        self.cumulative_counts[card.card_type] += card.count
        self.pending = None
        return card

    def calculate_round_score(self) -> int:
        """
        Score everything played this round except maki (scored by majority).

        Returns:
            Tempura, sashimi, dumpling and nigiri/wasabi points
        """
        score = 0
        score += (self.round_counts[CardType.TEMPURA] // TEMPURA_SET_SIZE) * TEMPURA_SET_VALUE
        score += (self.round_counts[CardType.SASHIMI] // SASHIMI_SET_SIZE) * SASHIMI_SET_VALUE
        score += dumpling_score(self.round_counts[CardType.DUMPLING])

        # A nigiri lands on the oldest unused wasabi played before it
        free_wasabi = 0
        for card in self.played:
            if card.card_type == CardType.WASABI:
                free_wasabi += 1
            elif card.card_type in NIGIRI_VALUES:
                value = NIGIRI_VALUES[card.card_type]
                if free_wasabi > 0:
                    value *= WASABI_MULTIPLIER
                    free_wasabi -= 1
                score += value
        return score

    def reset_round(self) -> None:
        self.hand = []
        self.played = []
        self.pending = None
        self.round_counts = {t: 0 for t in CardType}

    def __repr__(self) -> str:
        return (
            f"Player(position={self.position}, score={self.score}, "
            f"hand={len(self.hand)}, played={len(self.played)})"
        )


# ============================================================================
# Main Game Class
# ============================================================================


def _split_award(points: int, winners: List[int]) -> Dict[int, int]:
    """Split `points` among tied winners, rounding toward zero."""
    share = int(points / len(winners))
    return {position: share for position in winners}


class SushiGoGame:
    """
    Complete Sushi Go game state.

    Attributes:
        num_players: Number of players (2-5)
        players: Player seats
        deck: Undealt cards
        round_index: Current round (0-based, 0 to NUM_ROUNDS-1)
        turn_index: Turns revealed so far in the current round
        game_phase: 'setup', 'playing' or 'complete'
        round_results: Per-round score breakdown
        rng: Random source for shuffling and random completions
    """

    def __init__(self, num_players: int, rng: Optional[random.Random] = None):
        self.hand_size = cards_per_player(num_players)
        self.num_players = num_players
        self.rng = rng if rng is not None else random.Random()
        self.players = [Player(i) for i in range(num_players)]
        self.deck = Deck(self.rng)
        self.deck.shuffle()
        self.round_index = 0
        self.turn_index = 0
        self.game_phase = "setup"
        self.round_results: List[Dict] = []

    # ------------------------------------------------------------------
    # Read accessors used by the heuristic
    # ------------------------------------------------------------------

    def get_score(self, player_id: int) -> int:
        return self.players[player_id].score

    def get_played_count(self, card_type: CardType, player_id: int) -> int:
        """Cards of `card_type` revealed by the player this round."""
        return self.players[player_id].round_counts[card_type]

    def get_cumulative_played_count(self, card_type: CardType, player_id: int) -> int:
        """Cards of `card_type` revealed by the player over the whole game."""
        return self.players[player_id].cumulative_counts[card_type]

    def is_game_over(self) -> bool:
        return self.game_phase == "complete"

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def setup_round(self) -> None:
        """
        Deal a fresh hand to every player for the current round.

        Raises:
            GameStateException: If the game is already complete
        """
        if self.game_phase == "complete":
            raise GameStateException("Cannot set up a round: game is complete")

        for player in self.players:
            player.reset_round()
            player.hand = self.deck.draw(self.hand_size)

        self.turn_index = 0
        self.game_phase = "playing"

    def get_legal_actions(self, player_id: int) -> List[PlayCard]:
        """
        Legal choices for a player: one action per distinct card in hand.

        Returns:
            Actions in hand order; empty when the game is not in play
        """
        if self.game_phase != "playing":
            return []

        actions = []
        seen = set()
        for card in self.players[player_id].hand:
            if card not in seen:
                seen.add(card)
                actions.append(PlayCard(card))
        return actions

    def apply_action(self, player_id: int, action: PlayCard) -> None:
        """
        Record a player's hidden choice for this turn.

        When the last player has chosen, every choice is revealed and the
        turn advances (see module docstring).

        Raises:
            GameStateException: If the game is not in the playing phase
            IllegalPlayException: If the player already chose this turn or
                the card is not in their hand
        """
        if self.game_phase != "playing":
            raise GameStateException(
                f"Cannot apply action in phase '{self.game_phase}'"
            )
        if not isinstance(action, PlayCard):
            raise IllegalPlayException(player_id, None, f"Unknown action: {action!r}")

        player = self.players[player_id]
        if player.pending is not None:
            raise IllegalPlayException(player_id, action.card, "already chose this turn")
        if action.card not in player.hand:
            raise IllegalPlayException(player_id, action.card, "card not in hand")

        player.pending = action.card

        if all(p.pending is not None for p in self.players):
            self._reveal_and_pass()

    def complete_turn(self, rng: Optional[random.Random] = None) -> None:
        """Choose uniformly at random for every player who has not chosen yet."""
        if self.game_phase != "playing":
            return
        rng = rng if rng is not None else self.rng
        # Fix the waiting list first: the last choice reveals the turn
        waiting = [p.position for p in self.players if p.pending is None]
        for position in waiting:
            self.apply_action(position, rng.choice(self.get_legal_actions(position)))

    def _reveal_and_pass(self) -> None:
        for player in self.players:
            player.reveal()

        # Pass hands to the left
        hands = [p.hand for p in self.players]
        for i, player in enumerate(self.players):
            player.hand = hands[(i - 1) % self.num_players]

        self.turn_index += 1

        if not self.players[0].hand:
            self._end_round()

    def _end_round(self) -> None:
        round_points = {p.position: p.calculate_round_score() for p in self.players}
        for position, points in self._score_maki().items():
            round_points[position] += points

        for player in self.players:
            player.score += round_points[player.position]

        self.round_results.append({
            "round": self.round_index,
            "round_points": [round_points[p.position] for p in self.players],
            "scores": [p.score for p in self.players],
        })

        if self.round_index + 1 >= NUM_ROUNDS:
            for position, points in self._score_pudding().items():
                self.players[position].score += points
            self.game_phase = "complete"
        else:
            self.round_index += 1
            self.setup_round()

    def _score_maki(self) -> Dict[int, int]:
        """Majority payout: 6 split among most icons, 3 among runners-up."""
        icons = {p.position: p.round_counts[CardType.MAKI] for p in self.players}
        distinct = sorted({n for n in icons.values() if n > 0}, reverse=True)
        if not distinct:
            return {}

        first = [pos for pos, n in icons.items() if n == distinct[0]]
        awards = _split_award(MAKI_FIRST_PLACE, first)
        # Second place is only paid when first place is not shared
        if len(first) == 1 and len(distinct) > 1:
            second = [pos for pos, n in icons.items() if n == distinct[1]]
            awards.update(_split_award(MAKI_SECOND_PLACE, second))
        return awards

    def _score_pudding(self) -> Dict[int, int]:
        """End-of-game pudding payout: +6 for most, -6 for fewest (3+ players)."""
        puddings = {p.position: p.cumulative_counts[CardType.PUDDING] for p in self.players}
        most = max(puddings.values())
        least = min(puddings.values())
        if most == least:
            return {}

        awards = _split_award(PUDDING_MOST, [pos for pos, n in puddings.items() if n == most])
        if self.num_players > 2:
            awards.update(
                _split_award(PUDDING_LEAST, [pos for pos, n in puddings.items() if n == least])
            )
        return awards

    # ------------------------------------------------------------------
    # Copies
    # ------------------------------------------------------------------

    def copy(self) -> "SushiGoGame":
        """
        Create deep copy of game state for MCTS simulation.

        Modifications to the copy never affect the original game state.
        """
        return copy.deepcopy(self)

    def copy_determinized(
        self, observer: int, rng: Optional[random.Random] = None
    ) -> "SushiGoGame":
        """
        Copy the state with everything hidden from `observer` re-sampled.

        The observer's hand and pending choice, every revealed card, scores
        and counters stay fixed. Other players' unrevealed choices go back
        to their hands, then all opponent hands and the undealt deck are
        pooled, shuffled and re-dealt with the same hand sizes.

        Args:
            observer: Position of the player whose information stays fixed
            rng: Random source for the shuffle (defaults to the copy's own)

        Returns:
            Independent, fully-observed game state
        """
        det_game = self.copy()
        if det_game.game_phase != "playing":
            return det_game

        rng = rng if rng is not None else det_game.rng
        pool = list(det_game.deck.cards)
        hand_sizes = {}
        for player in det_game.players:
            if player.position == observer:
                continue
            player.pending = None
            hand_sizes[player.position] = len(player.hand)
            pool.extend(player.hand)

        rng.shuffle(pool)

        start = 0
        for position, size in hand_sizes.items():
            det_game.players[position].hand = pool[start:start + size]
            start += size
        det_game.deck.cards = pool[start:]

        return det_game

    # ------------------------------------------------------------------
    # Game loop
    # ------------------------------------------------------------------

    def play_full_game(
        self, get_action_func: Callable[["SushiGoGame", int], PlayCard]
    ) -> Dict:
        """
        Play the game to completion.

        Args:
            get_action_func: Callback (game, player_id) → PlayCard, called
                once per player per turn in seat order

        Returns:
            {
                'num_rounds': int,
                'num_players': int,
                'round_results': [result_dict_per_round],
                'final_scores': [{'position': int, 'total_score': int}, ...],
                'winner': {'position': int, 'score': int}
            }
        """
        if self.game_phase == "setup":
            self.setup_round()

        while not self.is_game_over():
            for position in range(self.num_players):
                if self.is_game_over():
                    break
                action = get_action_func(self, position)
                self.apply_action(position, action)

        final_scores = sorted(
            [{"position": p.position, "total_score": p.score} for p in self.players],
            key=lambda x: x["total_score"],
            reverse=True,
        )
        winner = final_scores[0]

        return {
            "num_rounds": len(self.round_results),
            "num_players": self.num_players,
            "round_results": self.round_results,
            "final_scores": final_scores,
            "winner": {"position": winner["position"], "score": winner["total_score"]},
        }

    def __str__(self) -> str:
        scores = [p.score for p in self.players]
        return (
            f"SushiGoGame(round={self.round_index}, turn={self.turn_index}, "
            f"phase={self.game_phase}, scores={scores})"
        )
