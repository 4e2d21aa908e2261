from __future__ import annotations

import asyncio
import json
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Callable, Dict, List, Optional, Sequence

import websockets
from websockets.asyncio.server import ServerConnection, serve
from websockets.http11 import Request, Response

from engine.cards import Card
from engine.errors import EconomyError, ValidationError
from engine.models import EconomyConfig
from engine.rounds import RoundOrchestrator
from engine.store import EconomyStore

LOGGER = logging.getLogger("video_poker_host")

SERVICE_IDENTITY = {"status": "ok", "service": "poker-server", "version": "0.1"}
HEALTH_PATHS = {"/", "/health", "/healthz"}

# CasinoServer glues the round engine to WebSocket clients. Every network
# concern lives here; the orchestrator and store stay transport-free.


@dataclass
class ClientSession:
    websocket: ServerConnection
    user_id: Optional[str] = None


def cards_payload(cards: Sequence[Card]) -> List[Dict[str, object]]:
    return [card.to_payload() for card in cards]


class CasinoServer:
    def __init__(self, config: EconomyConfig, rng: Optional[random.Random] = None) -> None:
        self.config = config
        self.store = EconomyStore(config)
        self.rounds = RoundOrchestrator(self.store, rng)
        self.handlers: Dict[str, Callable[[ClientSession, Dict[str, Any]], Dict[str, object]]] = {
            "ping": self._op_ping,
            "signup": self._op_signup,
            "signin": self._op_signin,
            "status": self._op_status,
            "start": self._op_start,
            "discard": self._op_discard,
            "reveal": self._op_reveal,
        }

    async def start(self, host: str = "0.0.0.0", port: int = 3001) -> None:
        async with serve(self._handle_connection, host, port, process_request=self._process_request):
            LOGGER.info("Video poker host listening on %s:%s", host, port)
            await asyncio.Future()

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        session = ClientSession(websocket=websocket)
        LOGGER.info("Client connected from %s", websocket.remote_address)
        try:
            async for raw in websocket:
                await self._handle_message(session, self._decode(raw))
        except websockets.ConnectionClosed:
            pass
        finally:
            LOGGER.info("Client disconnected (user=%s)", session.user_id)

    async def _handle_message(self, session: ClientSession, message: Dict[str, Any]) -> None:
        websocket = session.websocket
        if not message:
            await self._send_error(websocket, code="BAD_SCHEMA", msg="Expected a JSON object")
            return
        msg_type = message.get("type")
        req_id = message.get("req_id")
        handler = self.handlers.get(msg_type) if isinstance(msg_type, str) else None
        if handler is None:
            await self._send_error(websocket, code="UNKNOWN_TYPE", msg="Unsupported message type", req_id=req_id)
            return

        try:
            payload = handler(session, message)
        except EconomyError as exc:
            LOGGER.warning(
                "Rejected %s user=%s code=%s reason=%s",
                msg_type,
                message.get("user_id") or session.user_id,
                exc.code,
                exc.msg,
            )
            await self._send_json(websocket, "error", {"op": msg_type, **exc.payload()}, req_id=req_id)
            return

        await self._send_json(websocket, f"{msg_type}/ok", payload, req_id=req_id)

    # Operations ------------------------------------------------------

    def _op_ping(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        return dict(SERVICE_IDENTITY)

    def _op_signup(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        user = self.rounds.sign_up(message.get("name"), message.get("password"))
        session.user_id = user.id
        return user.public_payload()

    def _op_signin(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        user = self.rounds.sign_in(message.get("name"), message.get("password"))
        session.user_id = user.id
        return user.public_payload()

    def _op_status(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        result = self.rounds.status(self._resolve_user(session, message))
        return {"wallet": result.wallet, "win_pool": result.win_pool, "house_profit": result.house_profit}

    def _op_start(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        result = self.rounds.start(self._resolve_user(session, message), message.get("ante"))
        return {
            "round_id": result.round_id,
            "cards": cards_payload(result.cards),
            "wallet": result.wallet,
            "win_pool": result.win_pool,
        }

    def _op_discard(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        user_id = self._resolve_user(session, message)
        result = self.rounds.discard(
            user_id,
            self._require_round_id(message),
            message.get("discard_indices", []),
        )
        return {
            "cards": cards_payload(result.cards),
            "wallet": result.wallet,
            "total_bet": result.total_bet,
        }

    def _op_reveal(self, session: ClientSession, message: Dict[str, Any]) -> Dict[str, object]:
        user_id = self._resolve_user(session, message)
        round_id = self._require_round_id(message)
        result = self.rounds.reveal(user_id, round_id)
        LOGGER.info(
            "Round %s settled user=%s rank=%s payout=%s",
            round_id,
            user_id,
            result.hand_rank,
            result.payout,
        )
        return {
            "wallet": result.wallet,
            "win_pool": result.win_pool,
            "house_profit": result.house_profit,
            "hand_rank": result.hand_rank,
            "multiplier": result.multiplier,
            "payout": result.payout,
            "cards": cards_payload(result.cards),
        }

    def _resolve_user(self, session: ClientSession, message: Dict[str, Any]) -> str:
        user_id = message.get("user_id") or session.user_id
        if not isinstance(user_id, str):
            raise ValidationError("BAD_SCHEMA", "user_id required")
        return user_id

    def _require_round_id(self, message: Dict[str, Any]) -> str:
        round_id = message.get("round_id")
        if not isinstance(round_id, str) or not round_id:
            raise ValidationError("BAD_SCHEMA", "round_id required")
        return round_id

    # Transport helpers -----------------------------------------------

    def _process_request(self, connection: ServerConnection, request: Request) -> Optional[Response]:
        """Answer plain HTTP health checks; let WebSocket upgrades through."""
        if request.headers.get("Upgrade", "").lower() == "websocket":
            return None
        path = request.path.split("?", 1)[0]
        if path in HEALTH_PATHS:
            return connection.respond(HTTPStatus.OK, json.dumps(SERVICE_IDENTITY) + "\n")
        return connection.respond(HTTPStatus.NOT_FOUND, "not found\n")

    async def _send_json(
        self,
        websocket: ServerConnection,
        msg_type: str,
        payload: Dict[str, object],
        req_id: Optional[object] = None,
    ) -> None:
        try:
            await websocket.send(self._envelope(msg_type, payload, req_id))
        except websockets.ConnectionClosed:
            pass

    async def _send_error(
        self,
        websocket: ServerConnection,
        code: str,
        msg: str,
        req_id: Optional[object] = None,
    ) -> None:
        await self._send_json(websocket, "error", {"code": code, "msg": msg}, req_id=req_id)

    def _envelope(self, msg_type: str, payload: Dict[str, object], req_id: Optional[object] = None) -> str:
        body: Dict[str, object] = {"type": msg_type, "v": 1, "ts": datetime.now(timezone.utc).isoformat()}
        if req_id is not None:
            body["req_id"] = req_id
        body.update(payload)
        return json.dumps(body)

    def _decode(self, raw: str) -> Dict[str, Any]:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return {}
        return message if isinstance(message, dict) else {}
