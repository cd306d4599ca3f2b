"""Gacha error taxonomy.

Every ``GachaError`` carries the HTTP status it maps to and a machine-readable
code; ``garage.middleware.error_handler`` renders them as JSON.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class ConfigurationError(Exception):
    """The reward catalog is malformed (a deployment bug, not a client error)."""


class GachaError(Exception):
    """Base class for failures of a box-opening or box-listing request."""

    status_code: int = 500
    code: str = "gacha_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def context(self) -> dict[str, Any]:
        """Extra fields the client needs to self-correct."""
        return {}

    def detail(self) -> dict[str, Any]:
        return {"error": self.code, "detail": self.message, **self.context()}


class InvalidBoxType(GachaError):
    status_code = 400
    code = "invalid_box_type"

    def __init__(self, box_type: str, valid_types: Iterable[str]) -> None:
        self.box_type = box_type
        self.valid_types = list(valid_types)
        super().__init__(f"Invalid box type: {box_type!r}")

    def context(self) -> dict[str, Any]:
        return {"availableBoxes": self.valid_types}


class UserNotFound(GachaError):
    status_code = 404
    code = "user_not_found"

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__("User not found")


class InsufficientFunds(GachaError):
    status_code = 400
    code = "insufficient_funds"

    def __init__(self, required: int, current: int) -> None:
        self.required = required
        self.current = current
        self.shortfall = required - current
        super().__init__(f"Insufficient coins: need {required}, have {current}")

    def context(self) -> dict[str, Any]:
        return {"required": self.required, "current": self.current, "shortfall": self.shortfall}


class MintFailed(GachaError):
    """The minting collaborator failed. No coins were spent and no car was recorded."""

    status_code = 500
    code = "mint_failed"

    def __init__(self, reason: str = "") -> None:
        self.reason = reason
        super().__init__("Failed to mint car on-chain. No coins were spent, please retry.")


class SettlementInconsistency(GachaError):
    """The mint succeeded but recording it locally failed.

    The user owns an on-chain car that the database does not reflect yet.
    Operators reconcile using ``tx_hash`` and ``token_id``.
    """

    status_code = 500
    code = "settlement_inconsistency"

    def __init__(self, user_id: str, token_id: int, tx_hash: str, box_type: str) -> None:
        self.user_id = user_id
        self.token_id = token_id
        self.tx_hash = tx_hash
        self.box_type = box_type
        super().__init__("Car was minted but could not be recorded. Contact support.")

    def context(self) -> dict[str, Any]:
        return {"txHash": self.tx_hash, "tokenId": self.token_id}
