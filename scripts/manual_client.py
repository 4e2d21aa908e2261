#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import websockets
from websockets.asyncio.client import ClientConnection

logging.basicConfig(level=logging.INFO)

SUIT_SYMBOLS = {"Hearts": "♥", "Diamonds": "♦", "Clubs": "♣", "Spades": "♠"}

# ManualClient plays a video poker session from the terminal.

HELP_TEXT = """Commands:
  signup NAME PASSWORD   create an account (1000 credits)
  signin NAME PASSWORD   log into an existing account
  status                 wallet and pool balances
  start ANTE             pay the ante and deal five cards
  discard I [I ...]      redraw the cards at positions I (0-4), half the ante each
  reveal                 settle the current round
  quit                   leave"""


@dataclass
class SessionState:
    user_id: Optional[str] = None
    name: Optional[str] = None
    wallet: Optional[int] = None
    round_id: Optional[str] = None
    cards: List[Dict[str, Any]] = field(default_factory=list)


class ManualClient:
    def __init__(self, url: str) -> None:
        self.url = url
        self.websocket: Optional[ClientConnection] = None
        self.state = SessionState()
        self.next_req_id = 0

    async def run(self) -> None:
        async with websockets.connect(self.url) as ws:
            self.websocket = ws
            print(HELP_TEXT)
            while True:
                line = await asyncio.to_thread(input, self._prompt())
                payload = self._parse_command(line.strip())
                if payload is None:
                    continue
                if payload.get("type") == "quit":
                    break
                reply = await self._request(payload)
                self._print_reply(reply)

    def _prompt(self) -> str:
        who = self.state.name or "guest"
        wallet = "?" if self.state.wallet is None else self.state.wallet
        return f"[{who} | wallet={wallet}]> "

    def _parse_command(self, line: str) -> Optional[Dict[str, Any]]:
        if not line:
            return None
        command, *args = line.split()
        command = command.lower()
        if command in ("quit", "exit"):
            return {"type": "quit"}
        if command in ("h", "help"):
            print(HELP_TEXT)
            return None
        if command in ("signup", "signin"):
            if len(args) != 2:
                print(f"Usage: {command} NAME PASSWORD")
                return None
            return {"type": command, "name": args[0], "password": args[1]}
        if command == "status":
            return {"type": "status"}
        if command == "start":
            try:
                ante = int(args[0])
            except (IndexError, ValueError):
                print("Usage: start ANTE")
                return None
            return {"type": "start", "ante": ante}
        if command in ("discard", "reveal"):
            if not self.state.round_id:
                print("No round in progress; use start first")
                return None
            payload: Dict[str, Any] = {"type": command, "round_id": self.state.round_id}
            if command == "discard":
                try:
                    payload["discard_indices"] = [int(value) for value in args]
                except ValueError:
                    print("Indices must be integers between 0 and 4")
                    return None
            return payload
        print("Unknown command (h=help)")
        return None

    async def _request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        assert self.websocket is not None
        self.next_req_id += 1
        payload = {"v": 1, "req_id": self.next_req_id, **payload}
        await self.websocket.send(json.dumps(payload))
        while True:
            reply = json.loads(await self.websocket.recv())
            if reply.get("req_id") == self.next_req_id:
                return reply

    def _print_reply(self, reply: Dict[str, Any]) -> None:
        msg_type = reply.get("type", "")
        if msg_type == "error":
            print(f"!! {reply.get('code')}: {reply.get('msg')}")
            if reply.get("code") == "POOL_SHORTFALL":
                self.state.round_id = None
            if "wallet" in reply:
                self.state.wallet = reply["wallet"]
            return

        if msg_type in ("signup/ok", "signin/ok"):
            self.state.user_id = reply["id"]
            self.state.name = reply["name"]
        if "wallet" in reply:
            self.state.wallet = reply["wallet"]

        if msg_type == "status/ok":
            print(f"Wallet {reply['wallet']} | win pool {reply['win_pool']} | house {reply['house_profit']}")
        elif msg_type == "start/ok":
            self.state.round_id = reply["round_id"]
            self.state.cards = reply["cards"]
            print(f"Round {reply['round_id']} (win pool {reply['win_pool']})")
            self._print_hand(reply["cards"])
        elif msg_type == "discard/ok":
            self.state.cards = reply["cards"]
            self._print_hand(reply["cards"])
            print(f"Total bet {reply['total_bet']}")
        elif msg_type == "reveal/ok":
            self.state.round_id = None
            self._print_hand(reply.get("cards", self.state.cards))
            print(f"{reply['hand_rank']} x{reply['multiplier']} → payout {reply['payout']}")
            print(f"Win pool {reply['win_pool']} | house {reply['house_profit']}")
        elif msg_type in ("signup/ok", "signin/ok"):
            print(f"Signed in as {reply['name']} ({reply['id']})")

    def _print_hand(self, cards: List[Dict[str, Any]]) -> None:
        faces = [f"{idx}:{card['label'][0]}{SUIT_SYMBOLS.get(card['suit'], '?')}" for idx, card in enumerate(cards)]
        print("Hand: " + "  ".join(faces))


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Video poker manual client")
    parser.add_argument("--url", default="ws://127.0.0.1:3001/ws")
    return parser.parse_args(argv)


def main(argv: list[str]) -> None:
    args = parse_args(argv)
    client = ManualClient(url=args.url)
    try:
        asyncio.run(client.run())
    except (KeyboardInterrupt, EOFError):
        print("\nSession closed")


if __name__ == "__main__":
    main(sys.argv[1:])
