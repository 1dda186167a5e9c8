from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class SocialEligibility:
    eligible: bool
    days_until_next: int
    last_activity_at: datetime | None
    next_available_at: datetime | None


@dataclass(frozen=True, slots=True)
class SocialStats:
    total_activations: int
    last_activity_at: datetime | None
    next_available_at: datetime | None
    eligible_now: bool
