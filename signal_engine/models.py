from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class Action(Enum):
    STRONG_BUY = "strong_buy"
    BUY = "buy"
    HOLD = "hold"
    SELL = "sell"
    STRONG_SELL = "strong_sell"
    PROHIBITED = "prohibited"


class Direction(Enum):
    LONG = "long"
    SHORT = "short"
    NEUTRAL = "neutral"

    @property
    def sign(self) -> int:
        if self is Direction.LONG:
            return 1
        if self is Direction.SHORT:
            return -1
        return 0

    @classmethod
    def from_sign(cls, value: float) -> "Direction":
        if value > 0:
            return cls.LONG
        if value < 0:
            return cls.SHORT
        return cls.NEUTRAL


class Confidence(Enum):
    MAX = "MAX"
    HIGH = "HIGH"
    MED = "MED"
    LOW = "LOW"


class ScoreScale(Enum):
    WEIGHTED = "weighted"    # -100..100
    ALIGNMENT = "alignment"  # 0..12 points


@dataclass(frozen=True)
class PriceBar:
    open: float
    high: float
    low: float
    close: float
    volume: float
    timestamp: Optional[object] = None  # datetime, epoch or any orderable instant


@dataclass(frozen=True)
class CompositeResult:
    symbol: str
    timeframe: str
    scale: ScoreScale
    composite_score: float
    action: Action
    direction: Direction
    confidence: Confidence
    size_percent: int
    label: str = ""
    prohibition_active: bool = False
    components: Dict[str, float] = field(default_factory=dict)  # name -> sub-score
    skipped: Dict[str, str] = field(default_factory=dict)       # name -> reason

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "scale": self.scale.value,
            "composite_score": self.composite_score,
            "action": self.action.value,
            "direction": self.direction.value,
            "confidence": self.confidence.value,
            "size_percent": self.size_percent,
            "label": self.label,
            "prohibition_active": self.prohibition_active,
            "components": dict(sorted(self.components.items())),
            "skipped": dict(sorted(self.skipped.items())),
        }
