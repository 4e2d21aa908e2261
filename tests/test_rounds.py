from concurrent.futures import ThreadPoolExecutor
import threading

import pytest

from engine.errors import EconomyError, ResourceExhausted
from engine.models import Pools, RoundStatus

from .helpers import create_orchestrator, signed_up, start_rigged


def test_sign_up_then_sign_in_returns_same_account():
    orch = create_orchestrator()
    created = orch.sign_up("alice", "pw")
    assert created.wallet == 1_000
    assert orch.sign_in("alice", "pw").id == created.id
    assert len(orch.store.list_users()) == 1


def test_status_reports_wallet_and_pools():
    orch = create_orchestrator(win_pool=12_345, house_profit=7)
    user_id = signed_up(orch)
    status = orch.status(user_id)
    assert (status.wallet, status.win_pool, status.house_profit) == (1_000, 12_345, 7)


def test_start_debits_ante_and_creates_active_round():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    result = orch.start(user_id, 10)

    assert result.wallet == 990
    assert result.win_pool == 50_000
    assert len(result.cards) == 5
    assert len(set(result.cards)) == 5
    stored = orch.store.get_round(result.round_id)
    assert stored.status is RoundStatus.ACTIVE
    assert stored.ante == 10
    assert stored.user_id == user_id
    assert orch.store.get_user(user_id).wallet == 990


def test_start_with_ante_above_wallet_leaves_wallet_untouched():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    with pytest.raises(ResourceExhausted) as excinfo:
        orch.start(user_id, 1_001)
    assert excinfo.value.code == "INSUFFICIENT_FUNDS"
    assert orch.store.get_user(user_id).wallet == 1_000


def test_start_rejects_ante_the_pool_cannot_cover():
    orch = create_orchestrator(win_pool=400)
    user_id = signed_up(orch)
    with pytest.raises(ResourceExhausted) as excinfo:
        orch.start(user_id, 10)
    assert excinfo.value.code == "POOL_TOO_SMALL"
    assert "max ante allowed 8" in excinfo.value.msg
    assert excinfo.value.details["max_ante"] == 8
    assert orch.store.get_user(user_id).wallet == 1_000

    assert orch.start(user_id, 8).wallet == 992


def test_discard_charges_half_ante_per_card():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, wallet = start_rigged(orch, user_id, ["Ah", "Kd", "7c", "4s", "2h"])
    assert wallet == 990

    result = orch.discard(user_id, round_id, [1, 3])
    assert result.wallet == 980
    assert result.total_bet == 10
    assert result.cost == 10
    assert len(result.cards) == 5
    labels = [card.label for card in result.cards]
    assert (labels[0], labels[2], labels[4]) == ("Ah", "7c", "2h")
    assert len(set(labels)) == 5
    assert orch.store.get_round(round_id).cards == result.cards
    assert orch.store.get_round(round_id).status is RoundStatus.ACTIVE
    assert orch.store.get_pools() == Pools(win_pool=50_000, house_profit=0)
    assert orch.status(user_id).house_profit == 0


def test_discard_cost_truncates():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["Ah", "Kd", "7c", "4s", "2h"], ante=5)
    assert orch.discard(user_id, round_id, [0]).cost == 2


def test_discard_repeated_and_out_of_range_indices():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["Ah", "Kd", "7c", "4s", "2h"])

    result = orch.discard(user_id, round_id, [0, 0])
    assert result.cost == 10
    assert [card.label for card in result.cards[1:]] == ["Kd", "7c", "4s", "2h"]

    before = orch.store.get_round(round_id).cards
    result = orch.discard(user_id, round_id, [7])
    assert result.cost == 5
    assert result.cards == before


def test_discard_without_funds_changes_nothing():
    orch = create_orchestrator(starting_wallet=20)
    user_id = signed_up(orch)
    round_id, wallet = start_rigged(orch, user_id, ["Ah", "Kd", "7c", "4s", "2h"], ante=20)
    assert wallet == 0
    with pytest.raises(ResourceExhausted) as excinfo:
        orch.discard(user_id, round_id, [0])
    assert excinfo.value.code == "INSUFFICIENT_FUNDS"
    assert [card.label for card in orch.store.get_round(round_id).cards][0] == "Ah"
    assert orch.store.get_pools().house_profit == 0


def test_reveal_high_card_splits_ante_between_house_and_pool():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["Ah", "Kd", "7c", "4s", "2h"])

    result = orch.reveal(user_id, round_id)
    assert result.hand_rank == "HighCard"
    assert result.multiplier == 0
    assert result.payout == 0
    assert result.wallet == 990
    assert result.house_profit == 2
    assert result.win_pool == 50_008
    assert orch.store.get_round(round_id).status is RoundStatus.REVEALED


def test_reveal_low_pair_is_a_loss():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["Th", "Td", "7c", "4s", "2h"], ante=100)
    result = orch.reveal(user_id, round_id)
    assert result.hand_rank == "Pair(10)"
    assert result.payout == 0
    assert (result.house_profit, result.win_pool) == (25, 50_075)


def test_reveal_jacks_or_better_pays_even_money():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["Jh", "Jd", "7c", "4s", "2h"])
    result = orch.reveal(user_id, round_id)
    assert result.hand_rank == "Pair(11)"
    assert result.multiplier == 1
    assert result.payout == 10
    assert result.wallet == 1_000
    assert result.win_pool == 49_990


def test_reveal_flush_pays_six_times_ante():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["Ah", "Jh", "9h", "6h", "2h"])
    result = orch.reveal(user_id, round_id)
    assert (result.hand_rank, result.multiplier, result.payout) == ("Flush", 6, 60)
    assert result.wallet == 1_050
    assert result.win_pool == 49_940
    assert result.house_profit == 0


def test_reveal_refunds_ante_when_pool_cannot_pay():
    orch = create_orchestrator(win_pool=500)
    user_id = signed_up(orch)
    round_id, wallet = start_rigged(orch, user_id, ["As", "Ah", "Ad", "Ac", "Kd"])
    orch.store.debit_win_pool(480)

    with pytest.raises(ResourceExhausted) as excinfo:
        orch.reveal(user_id, round_id)
    assert excinfo.value.code == "POOL_SHORTFALL"
    assert excinfo.value.details["wallet"] == wallet + 10
    assert orch.store.get_user(user_id).wallet == 1_000
    assert orch.store.get_pools().win_pool == 20
    assert orch.store.get_round(round_id).status is RoundStatus.REVEALED


def test_reveal_twice_is_rejected():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["Ah", "Kd", "7c", "4s", "2h"])
    orch.reveal(user_id, round_id)
    with pytest.raises(EconomyError) as excinfo:
        orch.reveal(user_id, round_id)
    assert excinfo.value.code == "ROUND_NOT_ACTIVE"


def test_reveal_by_stranger_does_not_consume_round():
    orch = create_orchestrator()
    owner = signed_up(orch, "alice")
    stranger = signed_up(orch, "mallory")
    round_id, _ = start_rigged(orch, owner, ["Ah", "Kd", "7c", "4s", "2h"])

    with pytest.raises(EconomyError) as excinfo:
        orch.reveal(stranger, round_id)
    assert excinfo.value.code == "OWNER_MISMATCH"
    assert orch.store.get_round(round_id).status is RoundStatus.ACTIVE
    assert orch.reveal(owner, round_id).payout == 0


def test_concurrent_reveals_pay_out_once():
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["As", "Ks", "Qs", "Js", "Ts"])
    barrier = threading.Barrier(6)

    def attempt(_):
        barrier.wait()
        try:
            return orch.reveal(user_id, round_id).payout
        except EconomyError as exc:
            return exc.code

    with ThreadPoolExecutor(max_workers=6) as pool:
        outcomes = list(pool.map(attempt, range(6)))

    assert outcomes.count(500) == 1
    assert outcomes.count("ROUND_NOT_ACTIVE") == 5
    assert orch.store.get_user(user_id).wallet == 990 + 500
    assert orch.store.get_pools().win_pool == 50_000 - 500


def test_ledger_moves_only_by_discard_fees_and_winning_antes():
    orch = create_orchestrator(seed=99)
    users = [signed_up(orch, f"p{idx}") for idx in range(4)]
    expected_total = orch.store.ledger_total()
    wins = 0

    for turn in range(400):
        user_id = users[turn % len(users)]
        if orch.store.get_user(user_id).wallet < 10:
            continue
        started = orch.start(user_id, 10)
        if turn % 3 == 0:
            try:
                expected_total -= orch.discard(user_id, started.round_id, [turn % 5, (turn + 2) % 5]).cost
            except ResourceExhausted:
                pass
        try:
            result = orch.reveal(user_id, started.round_id)
        except ResourceExhausted as exc:
            assert exc.code == "POOL_SHORTFALL"
        else:
            # A win pays ante x multiplier from the pool; the ante itself stays spent.
            if result.payout:
                expected_total -= 10
                wins += 1

        pools = orch.store.get_pools()
        assert pools.win_pool >= 0
        assert pools.house_profit >= 0
        assert orch.store.ledger_total() == expected_total

    assert wins > 0


def test_overlapping_discards_only_one_redraw_lands(monkeypatch):
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["Ah", "Kd", "7c", "4s", "2h"])
    real_get_round = orch.store.get_round
    inner: list = []

    # The second discard runs after the first has read the hand but before it writes.
    def get_round_then_interleave(rid):
        snapshot = real_get_round(rid)
        if not inner:
            inner.append(None)
            inner[0] = orch.discard(user_id, rid, [4])
        return snapshot

    monkeypatch.setattr(orch.store, "get_round", get_round_then_interleave)
    with pytest.raises(EconomyError) as excinfo:
        orch.discard(user_id, round_id, [0])
    monkeypatch.undo()

    assert excinfo.value.code == "HAND_CHANGED"
    assert orch.store.get_round(round_id).cards == inner[0].cards
    assert [card.label for card in inner[0].cards][:4] == ["Ah", "Kd", "7c", "4s"]
    assert orch.store.get_user(user_id).wallet == 985


def test_discard_losing_race_to_reveal_refunds_fee(monkeypatch):
    orch = create_orchestrator()
    user_id = signed_up(orch)
    round_id, _ = start_rigged(orch, user_id, ["Ah", "Kd", "7c", "4s", "2h"])
    real_replace = orch.store.replace_round_cards

    def reveal_first(*args, **kwargs):
        orch.reveal(user_id, round_id)
        return real_replace(*args, **kwargs)

    monkeypatch.setattr(orch.store, "replace_round_cards", reveal_first)
    with pytest.raises(EconomyError) as excinfo:
        orch.discard(user_id, round_id, [0, 1])
    monkeypatch.undo()

    assert excinfo.value.code == "ROUND_NOT_ACTIVE"
    assert orch.store.get_user(user_id).wallet == 990
    assert orch.store.get_round(round_id).status is RoundStatus.REVEALED
    assert [card.label for card in orch.store.get_round(round_id).cards] == ["Ah", "Kd", "7c", "4s", "2h"]
    assert orch.store.get_pools() == Pools(win_pool=50_008, house_profit=2)
