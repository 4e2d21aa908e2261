from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

RANKS = tuple(range(2, 15))
SUITS = ("Hearts", "Diamonds", "Clubs", "Spades")

RANK_CHARS = "23456789TJQKA"
SUIT_CHARS = {"h": "Hearts", "d": "Diamonds", "c": "Clubs", "s": "Spades"}
_SUIT_TO_CHAR = {name: char for char, name in SUIT_CHARS.items()}


@dataclass(frozen=True)
class Card:
    rank: int
    suit: str

    def __post_init__(self) -> None:
        if self.rank not in RANKS:
            raise ValueError(f"Invalid rank: {self.rank}")
        if self.suit not in SUITS:
            raise ValueError(f"Invalid suit: {self.suit}")

    @property
    def label(self) -> str:
        return f"{RANK_CHARS[self.rank - 2]}{_SUIT_TO_CHAR[self.suit]}"

    def to_payload(self) -> dict:
        return {"rank": self.rank, "suit": self.suit, "label": self.label}


def new_deck() -> List[Card]:
    """All 52 cards in suit-major order; shuffle happens in `deal`."""
    return [Card(rank, suit) for suit in SUITS for rank in RANKS]


def deal(
    deck: List[Card],
    count: int,
    rng: Optional[random.Random] = None,
) -> List[Card]:
    """Shuffle `deck` in place and remove the first `count` cards from it."""
    if count < 0:
        raise ValueError("Card count must not be negative")
    if len(deck) < count:
        raise ValueError("Not enough cards left in deck")
    (rng or random).shuffle(deck)
    cards = deck[:count]
    del deck[:count]
    return cards


def deck_without(held: Iterable[Card]) -> List[Card]:
    held_set = set(held)
    return [card for card in new_deck() if card not in held_set]


def cards_to_labels(cards: Sequence[Card]) -> List[str]:
    return [card.label for card in cards]


def parse_label(label: str) -> Card:
    if len(label) != 2:
        raise ValueError(f"Invalid card label: {label}")
    rank_char, suit_char = label[0].upper(), label[1].lower()
    if rank_char not in RANK_CHARS:
        raise ValueError(f"Invalid rank: {label[0]}")
    if suit_char not in SUIT_CHARS:
        raise ValueError(f"Invalid suit: {label[1]}")
    return Card(RANK_CHARS.index(rank_char) + 2, SUIT_CHARS[suit_char])


def parse_cards(labels: Sequence[str]) -> List[Card]:
    return [parse_label(label) for label in labels]
