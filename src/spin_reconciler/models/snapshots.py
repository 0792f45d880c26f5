"""JSON-serializable snapshot models for display clients."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class SessionSnapshot:
    """The coordinator's current state in one serializable object."""

    status: str
    session_id: int | None = None
    account: str | None = None
    stake_amount: str | None = None
    age_seconds: int = 0
    attempts: int = 0
    max_attempts: int = 0
    signing_uri: str | None = None
    error: str | None = None

    # Resolved outcome (None until resolved)
    outcome: dict[str, Any] | None = None
    verified: bool | None = None
    rotation_target: int | None = None

    def to_dict(self) -> dict:
        return asdict(self)
