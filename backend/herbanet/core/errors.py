# backend/herbanet/core/errors.py
"""
Typed failures raised by the network core.

Every failure carries a user-facing ``detail`` that the HTTP adapter returns as-is,
so messages here must be specific and actionable ("reward already claimed",
"insufficient balance"), never a generic "error".
"""
from __future__ import annotations


class NetworkError(Exception):
    """Base failure of the network core."""

    code = "network_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(NetworkError):
    code = "not_found"


class Conflict(NetworkError):
    code = "conflict"


class AlreadyClaimed(Conflict):
    code = "already_claimed"


class InvalidState(NetworkError):
    code = "invalid_state"


class InsufficientBalance(NetworkError):
    code = "insufficient_balance"


class ValidationError(NetworkError):
    code = "validation_error"


class UpstreamFailure(NetworkError):
    code = "upstream_failure"
