from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .cards import Card

WHEEL = [2, 3, 4, 5, 14]
JACKS = 11


class HandCategory(str, Enum):
    HIGH_CARD = "HighCard"
    PAIR = "Pair"
    TWO_PAIR = "TwoPair"
    TRIPS = "Trips"
    STRAIGHT = "Straight"
    FLUSH = "Flush"
    FULL_HOUSE = "FullHouse"
    FOUR_KIND = "FourKind"
    STRAIGHT_FLUSH = "StraightFlush"


PAYOUT_TABLE = {
    HandCategory.HIGH_CARD: 0,
    HandCategory.PAIR: 1,
    HandCategory.TWO_PAIR: 2,
    HandCategory.TRIPS: 3,
    HandCategory.STRAIGHT: 5,
    HandCategory.FLUSH: 6,
    HandCategory.FULL_HOUSE: 9,
    HandCategory.FOUR_KIND: 25,
    HandCategory.STRAIGHT_FLUSH: 50,
}

MAX_MULTIPLIER = max(PAYOUT_TABLE.values())


@dataclass(frozen=True)
class HandRank:
    category: HandCategory
    # Only set for PAIR: the rank that is paired.
    pair_rank: Optional[int] = None

    @property
    def label(self) -> str:
        if self.category is HandCategory.PAIR:
            return f"Pair({self.pair_rank})"
        return self.category.value


def evaluate(cards: Sequence[Card]) -> HandRank:
    """Classify exactly five cards into a video-poker hand tier."""
    if len(cards) != 5:
        raise ValueError(f"Expected 5 cards, got {len(cards)}")

    counts = Counter(card.rank for card in cards)
    shape = sorted(counts.values(), reverse=True)
    is_flush = len({card.suit for card in cards}) == 1
    is_straight = _is_straight(counts.keys())

    # Straight/flush checks must run before the shape-only checks.
    if is_straight and is_flush:
        return HandRank(HandCategory.STRAIGHT_FLUSH)
    if shape == [4, 1]:
        return HandRank(HandCategory.FOUR_KIND)
    if shape == [3, 2]:
        return HandRank(HandCategory.FULL_HOUSE)
    if is_flush:
        return HandRank(HandCategory.FLUSH)
    if is_straight:
        return HandRank(HandCategory.STRAIGHT)
    if shape == [3, 1, 1]:
        return HandRank(HandCategory.TRIPS)
    if shape == [2, 2, 1]:
        return HandRank(HandCategory.TWO_PAIR)
    if shape == [2, 1, 1, 1]:
        paired = next(rank for rank, count in counts.items() if count == 2)
        return HandRank(HandCategory.PAIR, pair_rank=paired)
    return HandRank(HandCategory.HIGH_CARD)


def _is_straight(distinct_ranks) -> bool:
    ordered = sorted(distinct_ranks)
    if len(ordered) != 5:
        return False
    return ordered[4] - ordered[0] == 4 or ordered == WHEEL


def payout_multiplier(hand: HandRank) -> int:
    """Jacks-or-better: a pair below jacks pays nothing."""
    if hand.category is HandCategory.PAIR:
        return 1 if (hand.pair_rank or 0) >= JACKS else 0
    return PAYOUT_TABLE[hand.category]
