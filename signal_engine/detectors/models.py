"""
Detectors - Data Models
Result records produced by the individual detectors. All records are frozen:
a detector builds fresh records per evaluation instead of mutating old ones.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class OrderFlowSample:
    """Synthetic buy/sell split of a single bar."""
    buy_volume: float
    sell_volume: float

    @property
    def volume(self) -> float:
        return self.buy_volume + self.sell_volume

    @property
    def delta(self) -> float:
        return self.buy_volume - self.sell_volume

    @property
    def buy_percent(self) -> float:
        return self.buy_volume / self.volume * 100 if self.volume > 0 else 50.0

    def is_imbalanced(self, ratio: float = 2.0) -> bool:
        if self.buy_volume <= 0 or self.sell_volume <= 0:
            return False
        larger = max(self.buy_volume, self.sell_volume)
        smaller = min(self.buy_volume, self.sell_volume)
        return larger / smaller >= ratio


@dataclass(frozen=True)
class OrderFlowSummary:
    buy_volume: float          # last bar
    sell_volume: float         # last bar
    delta: float               # last bar
    cumulative_delta: float    # over the lookback window
    avg_abs_delta: float
    buy_pressure: float        # total buy volume in window
    sell_pressure: float       # total sell volume in window
    buy_percent: float
    strength_percent: float    # |delta| / volume * 100 on the last bar
    imbalance: bool
    significant_buying: bool
    significant_selling: bool


@dataclass(frozen=True)
class Injection:
    """A volume spike bar ("injection") classified by pressure."""
    index: int
    timestamp: object
    injection_type: str  # 'buy' | 'sell' | 'dark_pool'
    volume: float
    price: float
    delta_impact: float  # -100..100
    strength: str        # 'weak' | 'moderate' | 'strong' | 'extreme'
    source: str          # 'lit' | 'dark'


@dataclass(frozen=True)
class InjectionMetrics:
    current_strength: int         # -100..100 (negative = selling)
    strength_trend: str           # 'rising' | 'falling' | 'flat'
    net_injection_volume: float
    dark_pool_percent: float
    buy_wall_strength: float
    sell_wall_strength: float
    dominant_flow: str            # 'buyers' | 'sellers' | 'neutral'
    injections: Tuple[Injection, ...] = ()


@dataclass(frozen=True)
class GapZone:
    """Fair Value Gap - three-bar price discontinuity."""
    gap_type: str             # 'bullish' | 'bearish'
    top: float                # Upper boundary
    bottom: float             # Lower boundary
    created_at_index: int     # Index of the third bar
    delta_at_creation: float  # Order-flow delta of the creating bar
    is_liquidity_zone: bool
    gap_percent: float
    timestamp: object = None
    filled_at_index: Optional[int] = None  # First later bar that entered the gap

    @property
    def is_filled(self) -> bool:
        return self.filled_at_index is not None

    @property
    def mid(self) -> float:
        return (self.top + self.bottom) / 2

    @property
    def size(self) -> float:
        return self.top - self.bottom

    def age(self, as_of_index: int) -> int:
        return as_of_index - self.created_at_index

    def filled_as_of(self, as_of_index: int) -> bool:
        return self.filled_at_index is not None and self.filled_at_index <= as_of_index

    def contains_bar(self, high: float, low: float) -> bool:
        return low <= self.top and high >= self.bottom


@dataclass(frozen=True)
class GapAnalysis:
    zones: Tuple[GapZone, ...]       # most recent first
    active_count: int
    bullish_count: int
    bearish_count: int
    liquidity_zone_count: int
    liquidity_score: int             # 0-100
    signals: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Pivot:
    index: int
    price: float


@dataclass(frozen=True)
class DipRecoveryPattern:
    pattern_type: str        # 'accumulation' | 'distribution' | 'consolidation' | 'reversal'
    start_index: int
    end_index: int
    dip_depth_percent: float
    recovery_percent: float
    volume_profile: str      # 'increasing' | 'decreasing' | 'neutral'
    signal: str              # 'bullish_reversal' | 'bearish_continuation' | 'consolidation' | 'breakout_pending'
    strength: int            # 0-100
    pre_dip_high: float
    dip_low: float
    max_recovery: float
    resistance_levels: Tuple[float, ...] = ()
    support_levels: Tuple[float, ...] = ()


@dataclass(frozen=True)
class PatternAnalysis:
    patterns: Tuple[DipRecoveryPattern, ...]  # most recent first
    phase: str                                # 'dip' | 'recovery' | 'consolidation' | 'breakout' | 'none'
    overall_signal: str
    strength: int


@dataclass(frozen=True)
class SqueezeState:
    squeeze_on: bool
    squeeze_off: bool     # bands expanded outside the channel ("fired")
    no_squeeze: bool
    squeeze_count: int    # consecutive bars in compression ending at the last bar
    released: bool        # compressed on the previous bar, not any more
    upper_bb: float
    lower_bb: float
    upper_kc: float
    lower_kc: float

    @property
    def fired(self) -> bool:
        return self.squeeze_off


@dataclass(frozen=True)
class FearState:
    wvf: float
    upper_band: float
    range_high: float
    fear_extreme: bool


@dataclass(frozen=True)
class TrendState:
    core_value: float
    directional_score: float
    momentum_multiplier: float
    prohibition_active: bool
    adx: float
    atr_ratio: float
    volume_ratio: float
    ma_distance_percent: float
    volume_surge: bool
    prohibition_reasons: Tuple[str, ...] = ()
    sub_scores: Tuple[Tuple[str, float], ...] = ()


@dataclass(frozen=True)
class CciState:
    cci: float
    momentum: float
    bull_divergence: bool
    bear_divergence: bool


@dataclass(frozen=True)
class CrossAssetState:
    raw: float
    state: int            # 1 bull, -1 bear, 0 neutral
    strong: bool
    components: Tuple[Tuple[str, float], ...] = ()

    @property
    def label(self) -> str:
        return {1: 'bull', -1: 'bear'}.get(self.state, 'neutral')


@dataclass(frozen=True)
class StrikeQuote:
    strike: float
    call_oi: float = 0.0
    put_oi: float = 0.0
    call_gamma: float = 0.0
    put_gamma: float = 0.0
    call_volume: float = 0.0
    put_volume: float = 0.0
    call_premium: float = 0.0
    put_premium: float = 0.0

    @property
    def total_oi(self) -> float:
        return self.call_oi + self.put_oi

    @property
    def gamma_delta(self) -> float:
        return self.call_gamma - self.put_gamma


@dataclass(frozen=True)
class OptionsChain:
    """Options-chain snapshot for one expiry (or an aggregate) plus spot."""
    spot: float
    strikes: Tuple[StrikeQuote, ...] = ()
    gex: float = 0.0
    gamma_flip: Optional[float] = None


@dataclass(frozen=True)
class MagnetZone:
    price: float
    zone_type: str            # 'magnet' | 'liquidity_pull'
    strength: float           # 0-100
    open_interest: float
    call_open_interest: float
    put_open_interest: float
    gamma_delta: float
    pull_direction: str       # 'above' | 'below' | 'neutral'
    distance_percent: float


@dataclass(frozen=True)
class MagnetAnalysis:
    magnet_price: float
    magnet_strength: float
    zones: Tuple[MagnetZone, ...]   # nearest to spot first
    max_pain: float
    gamma_flip: Optional[float]
    expected_gravity: str           # strong_up | weak_up | neutral | weak_down | strong_down
    price_target: float
    confidence: float


@dataclass(frozen=True)
class StrikeActivity:
    strike: float
    call_volume: float
    put_volume: float
    call_oi: float
    put_oi: float
    total_premium: float
    net_flow: float
    gamma_at_strike: float
    loading_zone: bool
    loading_strength: float
    implied_move: float


@dataclass(frozen=True)
class StrikeSentiment:
    strikes: Tuple[StrikeActivity, ...]     # ascending by strike
    strongest_bull_strike: float
    strongest_bear_strike: float
    loading_zones: Tuple[float, ...]
    expected_low: float
    expected_high: float
    dominant_sentiment: str                 # 'bullish' | 'bearish' | 'neutral'
    key_levels: Tuple[float, ...] = field(default_factory=tuple)
