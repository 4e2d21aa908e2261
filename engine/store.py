from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from .cards import Card
from .errors import (
    AuthorizationError,
    ResourceExhausted,
    ValidationError,
    round_not_active,
    round_not_found,
    user_not_found,
)
from .models import EconomyConfig, Pools, Round, RoundStatus, User

# EconomyStore is the only owner of shared mutable state. Every public method
# is one critical section; callers only ever see copies.

DEMO_USER_ID = "user1"
DEMO_USER_NAME = "user1"
DEMO_USER_PASSWORD = "pass1"


class EconomyStore:
    """Volatile in-memory users, rounds and pools.

    Users, rounds and pools each sit behind their own lock so that a wallet
    debit never waits on a round update and vice versa. No method calls out
    to other components while holding a lock.
    """

    def __init__(self, config: Optional[EconomyConfig] = None) -> None:
        self.config = config or EconomyConfig()
        self._users: Dict[str, User] = {}
        self._rounds: Dict[str, Round] = {}
        self._pools = Pools(
            win_pool=self.config.initial_win_pool,
            house_profit=self.config.initial_house_profit,
        )
        self._users_lock = threading.Lock()
        self._rounds_lock = threading.Lock()
        self._pools_lock = threading.Lock()
        if self.config.seed_demo_user:
            self._users[DEMO_USER_ID] = User(
                id=DEMO_USER_ID,
                name=DEMO_USER_NAME,
                password=DEMO_USER_PASSWORD,
                wallet=self.config.starting_wallet,
            )

    # Users -----------------------------------------------------------

    def create_user_if_unique(self, name: str, password: str) -> User:
        with self._users_lock:
            if any(user.name == name for user in self._users.values()):
                raise ValidationError("DUPLICATE_NAME", "name already exists")
            user = User(
                id=str(uuid.uuid4()),
                name=name,
                password=password,
                wallet=self.config.starting_wallet,
            )
            self._users[user.id] = user
            return replace(user)

    def authenticate(self, name: str, password: str) -> User:
        with self._users_lock:
            for user in self._users.values():
                if user.name == name and user.password == password:
                    return replace(user)
        raise AuthorizationError("INVALID_CREDENTIALS", "invalid credentials")

    def get_user(self, user_id: str) -> Optional[User]:
        with self._users_lock:
            user = self._users.get(user_id)
            return replace(user) if user else None

    def list_users(self) -> List[User]:
        with self._users_lock:
            return [replace(user) for user in self._users.values()]

    def debit_wallet(self, user_id: str, amount: int) -> int:
        """Subtract `amount` after checking the live balance; return the new balance."""
        if amount < 0:
            raise ValueError("Debit amount must not be negative")
        with self._users_lock:
            user = self._users.get(user_id)
            if user is None:
                raise user_not_found(user_id)
            if user.wallet < amount:
                raise ResourceExhausted(
                    "INSUFFICIENT_FUNDS",
                    "insufficient wallet",
                    {"wallet": user.wallet, "required": amount},
                )
            user.wallet -= amount
            return user.wallet

    def credit_wallet(self, user_id: str, amount: int) -> int:
        if amount < 0:
            raise ValueError("Credit amount must not be negative")
        with self._users_lock:
            user = self._users.get(user_id)
            if user is None:
                raise user_not_found(user_id)
            user.wallet += amount
            return user.wallet

    # Rounds ----------------------------------------------------------

    def create_round(self, user_id: str, ante: int, cards: Sequence[Card]) -> str:
        round_id = str(uuid.uuid4())
        with self._rounds_lock:
            self._rounds[round_id] = Round(
                id=round_id,
                user_id=user_id,
                cards=list(cards),
                ante=ante,
                status=RoundStatus.ACTIVE,
            )
        return round_id

    def get_round(self, round_id: str) -> Optional[Round]:
        with self._rounds_lock:
            found = self._rounds.get(round_id)
            return self._copy_round(found) if found else None

    def replace_round_cards(
        self,
        round_id: str,
        cards: Sequence[Card],
        expected: Optional[Sequence[Card]] = None,
    ) -> None:
        """Overwrite an Active round's hand.

        When `expected` is given the write only lands if the stored hand still
        equals it, so two redraws started from the same hand cannot both win.
        """
        with self._rounds_lock:
            found = self._rounds.get(round_id)
            if found is None:
                raise round_not_found(round_id)
            if found.status is not RoundStatus.ACTIVE:
                raise round_not_active(round_id)
            if expected is not None and found.cards != list(expected):
                raise ValidationError("HAND_CHANGED", f"round hand changed during discard: {round_id}")
            found.cards = list(cards)

    def claim_round_for_reveal(self, round_id: str) -> Round:
        """Flip an Active round to Revealed and return its pre-claim snapshot.

        Only one caller can ever win the claim for a given round.
        """
        with self._rounds_lock:
            found = self._rounds.get(round_id)
            if found is None:
                raise round_not_found(round_id)
            if found.status is not RoundStatus.ACTIVE:
                raise round_not_active(round_id)
            snapshot = self._copy_round(found)
            found.status = RoundStatus.REVEALED
            return snapshot

    # Pools -----------------------------------------------------------

    def get_pools(self) -> Pools:
        with self._pools_lock:
            return replace(self._pools)

    def adjust_pools(self, win_delta: int, house_delta: int) -> Pools:
        with self._pools_lock:
            if self._pools.win_pool + win_delta < 0 or self._pools.house_profit + house_delta < 0:
                raise ResourceExhausted("POOL_INSUFFICIENT", "pool adjustment would go negative")
            self._pools.win_pool += win_delta
            self._pools.house_profit += house_delta
            return replace(self._pools)

    def debit_win_pool(self, amount: int) -> Pools:
        if amount < 0:
            raise ValueError("Debit amount must not be negative")
        with self._pools_lock:
            if self._pools.win_pool < amount:
                raise ResourceExhausted(
                    "POOL_INSUFFICIENT",
                    "win_pool short",
                    {"win_pool": self._pools.win_pool, "required": amount},
                )
            self._pools.win_pool -= amount
            return replace(self._pools)

    # Audit -----------------------------------------------------------

    def ledger_total(self) -> int:
        """Every unit of currency the store knows about: wallets plus both pools."""
        with self._users_lock:
            wallets = sum(user.wallet for user in self._users.values())
        with self._pools_lock:
            pools = self._pools.win_pool + self._pools.house_profit
        return wallets + pools

    @staticmethod
    def _copy_round(found: Round) -> Round:
        return replace(found, cards=list(found.cards))
