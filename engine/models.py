from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from .cards import Card


class RoundStatus(str, Enum):
    ACTIVE = "Active"
    REVEALED = "Revealed"


@dataclass
class EconomyConfig:
    starting_wallet: int = 1000
    initial_win_pool: int = 50_000
    initial_house_profit: int = 0
    house_cut_percent: int = 25
    hand_size: int = 5
    seed_demo_user: bool = True


@dataclass
class User:
    id: str
    name: str
    password: str
    wallet: int

    def public_payload(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "wallet": self.wallet}


@dataclass
class Round:
    id: str
    user_id: str
    cards: List[Card]
    ante: int
    status: RoundStatus = RoundStatus.ACTIVE


@dataclass
class Pools:
    win_pool: int = 0
    house_profit: int = 0


# Result DTOs handed back to the transport layer.


@dataclass
class StatusResult:
    wallet: int
    win_pool: int
    house_profit: int


@dataclass
class StartResult:
    round_id: str
    cards: List[Card]
    wallet: int
    win_pool: int


@dataclass
class DiscardResult:
    cards: List[Card]
    wallet: int
    total_bet: int
    cost: int = 0


@dataclass
class RevealResult:
    wallet: int
    win_pool: int
    house_profit: int
    hand_rank: str
    multiplier: int
    payout: int
    cards: List[Card] = field(default_factory=list)
