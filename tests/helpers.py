from __future__ import annotations

import random
from typing import Sequence, Tuple

from engine.cards import parse_cards
from engine.models import EconomyConfig
from engine.rounds import RoundOrchestrator
from engine.store import EconomyStore


def create_orchestrator(
    *,
    starting_wallet: int = 1_000,
    win_pool: int = 50_000,
    house_profit: int = 0,
    seed: int = 42,
    demo_user: bool = False,
) -> RoundOrchestrator:
    """Instantiate an orchestrator over a fresh store with a seeded RNG."""
    store = EconomyStore(
        EconomyConfig(
            starting_wallet=starting_wallet,
            initial_win_pool=win_pool,
            initial_house_profit=house_profit,
            seed_demo_user=demo_user,
        )
    )
    return RoundOrchestrator(store, rng=random.Random(seed))


def signed_up(orchestrator: RoundOrchestrator, name: str = "alice") -> str:
    return orchestrator.sign_up(name, f"{name}-secret").id


def start_rigged(
    orchestrator: RoundOrchestrator,
    user_id: str,
    labels: Sequence[str],
    ante: int = 10,
) -> Tuple[str, int]:
    """Start a round, then swap in a known hand. Returns (round_id, wallet)."""
    result = orchestrator.start(user_id, ante)
    orchestrator.store.replace_round_cards(result.round_id, parse_cards(labels))
    return result.round_id, result.wallet
