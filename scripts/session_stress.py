#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List

import websockets

from casino.server import CasinoServer
from engine.models import EconomyConfig

LOGGER = logging.getLogger("session_stress")

# Spins up the host in-process, lets many players grind rounds concurrently
# (including racing duplicate reveals) and checks that the ledger only shrank
# by discard fees and the antes of winning rounds.


@dataclass
class PlayerStats:
    rounds: int = 0
    wins: int = 0
    double_reveal_rejections: int = 0
    errors: int = 0
    spent: int = 0


class PlayerClient:
    def __init__(self, websocket, name: str) -> None:
        self.websocket = websocket
        self.name = name
        self.next_req_id = 0
        self.pending: Dict[int, asyncio.Future] = {}
        self.reader = asyncio.create_task(self._read_loop())

    async def _read_loop(self) -> None:
        with contextlib.suppress(websockets.ConnectionClosed):
            async for raw in self.websocket:
                reply = json.loads(raw)
                future = self.pending.pop(reply.get("req_id"), None)
                if future is not None and not future.done():
                    future.set_result(reply)

    async def request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.next_req_id += 1
        req_id = self.next_req_id
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self.pending[req_id] = future
        await self.websocket.send(json.dumps({"v": 1, "req_id": req_id, **payload}))
        return await future


def choose_discards(rng: random.Random) -> List[int]:
    return sorted(rng.sample(range(5), rng.randint(0, 3)))


async def run_player(
    *,
    name: str,
    url: str,
    rounds: int,
    ante: int,
    rng: random.Random,
    stats: Dict[str, PlayerStats],
) -> None:
    stats[name] = PlayerStats()
    try:
        async with websockets.connect(url) as ws:
            client = PlayerClient(ws, name)
            reply = await client.request({"type": "signup", "name": name, "password": f"{name}-pw"})
            if reply["type"] == "error":
                LOGGER.error("Signup failed for %s: %s", name, reply)
                return
            for _ in range(rounds):
                started = await client.request({"type": "start", "ante": ante})
                if started["type"] == "error":
                    LOGGER.info("%s stopping: %s", name, started.get("msg"))
                    break
                round_id = started["round_id"]
                discards = choose_discards(rng)
                if discards:
                    reply = await client.request(
                        {"type": "discard", "round_id": round_id, "discard_indices": discards}
                    )
                    if reply["type"] == "discard/ok":
                        stats[name].spent += ante * len(discards) // 2

                first, second = await asyncio.gather(
                    client.request({"type": "reveal", "round_id": round_id}),
                    client.request({"type": "reveal", "round_id": round_id}),
                )
                results = [first, second]
                settled = [r for r in results if r["type"] == "reveal/ok" or r.get("code") == "POOL_SHORTFALL"]
                rejected = [r for r in results if r.get("code") == "ROUND_NOT_ACTIVE"]
                if len(settled) != 1 or len(rejected) != 1:
                    LOGGER.error("Double reveal not rejected for %s round %s: %s", name, round_id, results)
                    stats[name].errors += 1
                stats[name].double_reveal_rejections += len(rejected)
                stats[name].rounds += 1
                if any(r.get("payout", 0) > 0 for r in settled):
                    stats[name].wins += 1
                    # Only ante x multiplier comes back; the ante itself stays spent.
                    stats[name].spent += ante
            client.reader.cancel()
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Player %s terminated due to error: %s", name, exc)
        stats[name].errors += 1


async def run_simulation(args: argparse.Namespace) -> int:
    config = EconomyConfig(
        starting_wallet=args.starting_wallet,
        initial_win_pool=args.win_pool,
        seed_demo_user=False,
    )
    server = CasinoServer(config)
    url = f"ws://{args.host}:{args.port}/ws"
    stats: Dict[str, PlayerStats] = {}

    LOGGER.info("Starting host on %s:%s for %s players x %s rounds", args.host, args.port, args.players, args.rounds)
    server_task = asyncio.create_task(server.start(args.host, args.port))
    await asyncio.sleep(0.25)  # allow server socket to bind

    master = random.Random(args.seed)
    try:
        await asyncio.gather(
            *(
                run_player(
                    name=f"player{idx}",
                    url=url,
                    rounds=args.rounds,
                    ante=args.ante,
                    rng=random.Random(master.random()),
                    stats=stats,
                )
                for idx in range(args.players)
            )
        )
    finally:
        server_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await server_task

    expected = (
        config.initial_win_pool
        + config.initial_house_profit
        + len(stats) * config.starting_wallet
        - sum(player.spent for player in stats.values())
    )
    actual = server.store.ledger_total()
    pools = server.store.get_pools()
    LOGGER.info("Simulation complete. Summary:")
    for name, player in stats.items():
        LOGGER.info(
            "  %-10s -> %3d rounds, %3d wins, %3d rejected double reveals, %d errors",
            name,
            player.rounds,
            player.wins,
            player.double_reveal_rejections,
            player.errors,
        )
    LOGGER.info("Win pool %s | house profit %s", pools.win_pool, pools.house_profit)
    if actual != expected:
        LOGGER.error("Ledger mismatch: expected %s, found %s", expected, actual)
        return 1
    LOGGER.info("Ledger balanced at %s", actual)
    return 1 if any(player.errors for player in stats.values()) else 0


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Spin up the host and concurrent players for stress testing.")
    parser.add_argument("--host", default="127.0.0.1", help="Host interface for the embedded server.")
    parser.add_argument("--port", type=int, default=3101, help="Port for the embedded server.")
    parser.add_argument("--players", type=int, default=8, help="Number of concurrent players.")
    parser.add_argument("--rounds", type=int, default=50, help="Rounds each player attempts.")
    parser.add_argument("--ante", type=int, default=10, help="Ante per round.")
    parser.add_argument("--starting-wallet", type=int, default=1_000, help="Wallet per new player.")
    parser.add_argument("--win-pool", type=int, default=50_000, help="Initial win pool.")
    parser.add_argument("--seed", type=int, default=7, help="Seed for discard choices.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, etc.).")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO), format="%(message)s")
    raise SystemExit(asyncio.run(run_simulation(args)))


if __name__ == "__main__":
    main()
