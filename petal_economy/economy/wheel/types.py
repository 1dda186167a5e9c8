from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from petal_economy.economy.errors import RejectionReason

PRIZE_TYPES = frozenset({"petals", "discount", "gift"})


@dataclass(frozen=True, slots=True)
class WheelPrize:
    id: str
    type: str
    value: int
    label: str
    probability: float
    color: str

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> WheelPrize:
        prize_type = str(raw["type"])
        if prize_type not in PRIZE_TYPES:
            raise ValueError(f"unknown prize type: {prize_type}")
        return cls(
            id=str(raw["id"]),
            type=prize_type,
            value=int(raw["value"]),
            label=str(raw.get("label", raw["id"])),
            probability=float(raw["probability"]),
            color=str(raw.get("color", "#FFFFFF")),
        )

    def as_metadata(self) -> dict[str, object]:
        return {
            "prize_id": self.id,
            "prize_label": self.label,
            "prize_type": self.type,
            "prize_value": self.value,
        }


@dataclass(frozen=True, slots=True)
class SpinResult:
    success: bool
    message: str
    reason: RejectionReason | None = None
    prize: WheelPrize | None = None
    presentation_angle: float | None = None
    duration_ms: int | None = None
    petals: int | None = None
    spin_credits: int | None = None
    metadata: dict[str, object] = field(default_factory=dict)
