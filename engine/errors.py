from __future__ import annotations

from typing import Any, Dict, Optional


class EconomyError(Exception):
    """Base for every failure reported back to a caller.

    `code` is a stable machine-readable string sent over the wire, `msg` is
    for humans and `details` carries any extra fields the reply should include.
    """

    kind = "error"

    def __init__(self, code: str, msg: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(msg)
        self.code = code
        self.msg = msg
        self.details = dict(details or {})

    def payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "msg": self.msg, "kind": self.kind}
        body.update(self.details)
        return body


class ValidationError(EconomyError):
    kind = "validation"


class NotFoundError(EconomyError):
    kind = "not_found"


class AuthorizationError(EconomyError):
    kind = "authorization"


class ResourceExhausted(EconomyError):
    kind = "resource_exhausted"


class InternalInconsistency(EconomyError):
    kind = "internal"

    def __init__(self, msg: str) -> None:
        super().__init__("INTERNAL", msg)


def user_not_found(user_id: str) -> NotFoundError:
    return NotFoundError("USER_NOT_FOUND", f"user not found: {user_id}")


def round_not_found(round_id: str) -> NotFoundError:
    return NotFoundError("ROUND_NOT_FOUND", f"round not found: {round_id}")


def round_not_active(round_id: str) -> ValidationError:
    return ValidationError("ROUND_NOT_ACTIVE", f"round not active: {round_id}")
