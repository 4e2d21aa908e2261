"""Video-poker round lifecycle and economy engine (no networking)."""

from .cards import Card, RANKS, SUITS, deal, new_deck, parse_cards
from .errors import EconomyError
from .evaluator import HandCategory, HandRank, evaluate, payout_multiplier
from .models import EconomyConfig, Pools, Round, RoundStatus, User
from .rounds import RoundOrchestrator
from .store import EconomyStore

__all__ = [
    "Card",
    "RANKS",
    "SUITS",
    "deal",
    "new_deck",
    "parse_cards",
    "EconomyError",
    "HandCategory",
    "HandRank",
    "evaluate",
    "payout_multiplier",
    "EconomyConfig",
    "Pools",
    "Round",
    "RoundStatus",
    "User",
    "RoundOrchestrator",
    "EconomyStore",
]
