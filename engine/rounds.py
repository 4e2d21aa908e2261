from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence

from .cards import deal, deck_without, new_deck
from .errors import (
    AuthorizationError,
    EconomyError,
    InternalInconsistency,
    NotFoundError,
    ResourceExhausted,
    ValidationError,
    round_not_active,
    round_not_found,
    user_not_found,
)
from .evaluator import MAX_MULTIPLIER, evaluate, payout_multiplier
from .models import (
    DiscardResult,
    RevealResult,
    RoundStatus,
    StartResult,
    StatusResult,
    User,
)
from .store import EconomyStore

LOGGER = logging.getLogger("video_poker_engine")

# RoundOrchestrator sequences store calls with the pure card logic. It holds
# no state of its own beyond the store and an optional RNG.


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RoundOrchestrator:
    """Start / discard / reveal lifecycle of a single-player draw round."""

    def __init__(self, store: EconomyStore, rng: Optional[random.Random] = None) -> None:
        self.store = store
        self.config = store.config
        self.rng = rng

    # Accounts --------------------------------------------------------

    def sign_up(self, name: str, password: str) -> User:
        name = self._require_text(name, "name")
        self._require_text(password, "password")
        user = self.store.create_user_if_unique(name, password)
        LOGGER.info("Created user %s (%s)", user.id, user.name)
        return user

    def sign_in(self, name: str, password: str) -> User:
        if not isinstance(name, str) or not isinstance(password, str):
            raise AuthorizationError("INVALID_CREDENTIALS", "invalid credentials")
        return self.store.authenticate(name.strip(), password)

    def status(self, user_id: str) -> StatusResult:
        user = self._require_user(user_id)
        pools = self.store.get_pools()
        return StatusResult(wallet=user.wallet, win_pool=pools.win_pool, house_profit=pools.house_profit)

    # Round lifecycle -------------------------------------------------

    def start(self, user_id: str, ante: int) -> StartResult:
        user = self._require_user(user_id)
        if not _is_int(ante) or ante <= 0:
            raise ValidationError("INVALID_ANTE", "invalid ante")
        if ante > user.wallet:
            raise ResourceExhausted(
                "INSUFFICIENT_FUNDS",
                "insufficient wallet",
                {"wallet": user.wallet, "required": ante},
            )

        # Refuse antes the pool could not honour at the top multiplier.
        pools = self.store.get_pools()
        if pools.win_pool < ante * MAX_MULTIPLIER:
            max_ante = pools.win_pool // MAX_MULTIPLIER
            raise ResourceExhausted(
                "POOL_TOO_SMALL",
                f"win pool too small, max ante allowed {max_ante}",
                {"max_ante": max_ante, "win_pool": pools.win_pool},
            )

        wallet = self.store.debit_wallet(user_id, ante)
        cards = deal(new_deck(), self.config.hand_size, self.rng)
        round_id = self.store.create_round(user_id, ante, cards)
        LOGGER.debug("Round %s started user=%s ante=%s", round_id, user_id, ante)
        return StartResult(
            round_id=round_id,
            cards=cards,
            wallet=wallet,
            win_pool=self.store.get_pools().win_pool,
        )

    def discard(self, user_id: str, round_id: str, indices: Sequence[int]) -> DiscardResult:
        current = self.store.get_round(round_id)
        if current is None:
            raise round_not_found(round_id)
        if current.user_id != user_id:
            raise AuthorizationError("OWNER_MISMATCH", "user mismatch")
        if current.status is not RoundStatus.ACTIVE:
            raise round_not_active(round_id)
        positions = self._validate_indices(indices)

        # Half the ante per listed index, truncated.
        cost = current.ante * len(positions) // 2
        try:
            wallet = self.store.debit_wallet(user_id, cost)
        except ResourceExhausted as exc:
            raise ResourceExhausted(
                "INSUFFICIENT_FUNDS",
                "insufficient wallet for discard",
                exc.details,
            ) from exc

        hand = list(current.cards)
        dealt = deal(deck_without(hand), len(positions), self.rng)
        # Indices past the end of the hand are paid for but ignored; repeats
        # overwrite the same slot again.
        for card, idx in zip(dealt, positions):
            if idx < len(hand):
                hand[idx] = card

        try:
            self.store.replace_round_cards(round_id, hand, expected=current.cards)
        except EconomyError:
            self.store.credit_wallet(user_id, cost)
            raise

        return DiscardResult(cards=hand, wallet=wallet, total_bet=current.ante, cost=cost)

    def reveal(self, user_id: str, round_id: str) -> RevealResult:
        current = self.store.get_round(round_id)
        if current is None:
            raise round_not_found(round_id)
        # Owner never changes after creation, so checking before the claim
        # keeps a stranger from burning the round's only reveal.
        if current.user_id != user_id:
            raise AuthorizationError("OWNER_MISMATCH", "user mismatch")

        claimed = self.store.claim_round_for_reveal(round_id)
        hand = evaluate(claimed.cards)
        multiplier = payout_multiplier(hand)
        ante = claimed.ante

        if multiplier == 0:
            house = ante * self.config.house_cut_percent // 100
            pools = self.store.adjust_pools(ante - house, house)
            user = self.store.get_user(claimed.user_id)
            if user is None:
                raise InternalInconsistency(f"owner of round {round_id} vanished")
            LOGGER.info("Round %s lost (%s) ante=%s house=%s", round_id, hand.label, ante, house)
            return RevealResult(
                wallet=user.wallet,
                win_pool=pools.win_pool,
                house_profit=pools.house_profit,
                hand_rank=hand.label,
                multiplier=0,
                payout=0,
                cards=claimed.cards,
            )

        payout = ante * multiplier
        try:
            pools = self.store.debit_win_pool(payout)
        except ResourceExhausted:
            wallet = self._credit_owner(claimed.user_id, ante)
            LOGGER.warning(
                "Round %s won %s x%s but win pool is short; refunded ante %s",
                round_id,
                hand.label,
                multiplier,
                ante,
            )
            raise ResourceExhausted(
                "POOL_SHORTFALL",
                "win_pool short, refunded",
                {
                    "wallet": wallet,
                    "refund": ante,
                    "hand_rank": hand.label,
                    "multiplier": multiplier,
                },
            )

        wallet = self._credit_owner(claimed.user_id, payout)
        LOGGER.info("Round %s won (%s) x%s payout=%s", round_id, hand.label, multiplier, payout)
        return RevealResult(
            wallet=wallet,
            win_pool=pools.win_pool,
            house_profit=pools.house_profit,
            hand_rank=hand.label,
            multiplier=multiplier,
            payout=payout,
            cards=claimed.cards,
        )

    # Helpers ---------------------------------------------------------

    def _require_user(self, user_id: str) -> User:
        user = self.store.get_user(user_id) if isinstance(user_id, str) else None
        if user is None:
            raise user_not_found(str(user_id))
        return user

    def _credit_owner(self, user_id: str, amount: int) -> int:
        try:
            return self.store.credit_wallet(user_id, amount)
        except NotFoundError as exc:
            raise InternalInconsistency(f"credit to missing user {user_id}") from exc

    def _validate_indices(self, indices: Sequence[int]) -> List[int]:
        if not isinstance(indices, (list, tuple)):
            raise ValidationError("BAD_INDICES", "discard indices must be a list")
        if len(indices) > self.config.hand_size:
            raise ValidationError(
                "BAD_INDICES",
                f"at most {self.config.hand_size} cards can be discarded",
            )
        if not all(_is_int(idx) and idx >= 0 for idx in indices):
            raise ValidationError("BAD_INDICES", "discard indices must be non-negative integers")
        return list(indices)

    @staticmethod
    def _require_text(value: object, field_name: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("INVALID_FIELD", f"{field_name} required")
        return value.strip()
