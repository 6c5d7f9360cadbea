"""
Signal Engine - Configuration
One dataclass per component, validated at construction time.

Every threshold used by the detectors lives here so callers can override it
per request (see EngineConfig.with_overrides) instead of editing code.
"""
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigurationOutOfRange

ALLOWED_SIZES = (0, 50, 75, 100)
VOLUME_METHODS = ("simple", "directional", "hybrid")


def _positive(name: str, value):
    if value is None or value <= 0:
        raise ConfigurationOutOfRange(name, value, "a value > 0")


def _non_negative(name: str, value):
    if value is None or value < 0:
        raise ConfigurationOutOfRange(name, value, "a value >= 0")


def _between(name: str, value, low, high):
    if value is None or not (low <= value <= high):
        raise ConfigurationOutOfRange(name, value, f"a value in [{low}, {high}]")


def _choice(name: str, value, choices):
    if value not in choices:
        raise ConfigurationOutOfRange(name, value, f"one of {', '.join(map(str, choices))}")


@dataclass(frozen=True)
class OrderFlowConfig:
    enabled: bool = True
    method: str = "directional"     # simple | directional | hybrid
    lookback: int = 20              # bars in the rolling flow window
    delta_threshold: float = 1000   # |delta| considered significant
    imbalance_ratio: float = 2.0    # max(buy,sell)/min(buy,sell) for an imbalance
    # Volume injection tracking
    spike_ratio: float = 1.5
    dark_pool_ratio: float = 2.5
    dark_pool_body_ratio: float = 0.3
    history_depth: int = 30
    trend_delta: float = 20.0
    wall_window: int = 20
    wall_distance: float = 0.01
    dominance_threshold: float = 20.0

    def __post_init__(self):
        _choice("order_flow.method", self.method, VOLUME_METHODS)
        _positive("order_flow.lookback", self.lookback)
        _non_negative("order_flow.delta_threshold", self.delta_threshold)
        if self.imbalance_ratio < 1:
            raise ConfigurationOutOfRange("order_flow.imbalance_ratio", self.imbalance_ratio, "a value >= 1")
        _positive("order_flow.spike_ratio", self.spike_ratio)
        _positive("order_flow.dark_pool_ratio", self.dark_pool_ratio)
        _between("order_flow.dark_pool_body_ratio", self.dark_pool_body_ratio, 0, 1)
        _positive("order_flow.history_depth", self.history_depth)
        _non_negative("order_flow.trend_delta", self.trend_delta)
        _positive("order_flow.wall_window", self.wall_window)
        _non_negative("order_flow.wall_distance", self.wall_distance)
        _between("order_flow.dominance_threshold", self.dominance_threshold, 0, 100)


@dataclass(frozen=True)
class GapConfig:
    enabled: bool = True
    threshold_percent: float = 0.5   # minimum gap size as % of the reference bar
    max_age: int = 50                # bars before a zone drops out of the view
    unfilled_only: bool = True
    delta_threshold: float = 1000
    liquidity_multiplier: float = 1.5
    require_middle_bar_gap: bool = False
    fill_mode: str = "full"          # full | touch

    def __post_init__(self):
        _non_negative("gaps.threshold_percent", self.threshold_percent)
        _positive("gaps.max_age", self.max_age)
        _non_negative("gaps.delta_threshold", self.delta_threshold)
        _non_negative("gaps.liquidity_multiplier", self.liquidity_multiplier)
        _choice("gaps.fill_mode", self.fill_mode, ("touch", "full"))

    @property
    def min_bars(self) -> int:
        return 3


@dataclass(frozen=True)
class PatternConfig:
    enabled: bool = True
    pivot_lookback: int = 3
    dip_threshold: float = 3.0        # percent
    recovery_threshold: float = 1.5   # percent
    lookback_period: int = 50
    volume_confirmation: bool = True
    max_patterns: int = 5
    reversal_ratio: float = 0.95
    v_shape_ratio: float = 0.4
    deep_dip_percent: float = 5.0
    phase_band: float = 0.02
    phase_dip_percent: float = 3.0
    phase_window: int = 10

    def __post_init__(self):
        _positive("patterns.pivot_lookback", self.pivot_lookback)
        _non_negative("patterns.dip_threshold", self.dip_threshold)
        _non_negative("patterns.recovery_threshold", self.recovery_threshold)
        _positive("patterns.lookback_period", self.lookback_period)
        _positive("patterns.max_patterns", self.max_patterns)
        _between("patterns.reversal_ratio", self.reversal_ratio, 0, 1)
        _between("patterns.v_shape_ratio", self.v_shape_ratio, 0, 1)
        _non_negative("patterns.deep_dip_percent", self.deep_dip_percent)
        _between("patterns.phase_band", self.phase_band, 0, 1)
        _non_negative("patterns.phase_dip_percent", self.phase_dip_percent)
        _positive("patterns.phase_window", self.phase_window)

    @property
    def min_bars(self) -> int:
        return 2 * self.pivot_lookback + 1


@dataclass(frozen=True)
class SqueezeConfig:
    enabled: bool = True
    length: int = 20
    bb_mult: float = 2.0
    kc_mult: float = 1.5

    def __post_init__(self):
        if self.length is None or self.length < 2:
            raise ConfigurationOutOfRange("squeeze.length", self.length, "a value >= 2")
        _positive("squeeze.bb_mult", self.bb_mult)
        _positive("squeeze.kc_mult", self.kc_mult)

    @property
    def min_bars(self) -> int:
        return self.length


@dataclass(frozen=True)
class FearConfig:
    enabled: bool = True
    period: int = 22
    band_length: int = 20
    band_mult: float = 2.0
    range_lookback: int = 50
    range_percentile: float = 0.85

    def __post_init__(self):
        _positive("fear.period", self.period)
        _positive("fear.band_length", self.band_length)
        _non_negative("fear.band_mult", self.band_mult)
        _positive("fear.range_lookback", self.range_lookback)
        _between("fear.range_percentile", self.range_percentile, 0, 1)

    @property
    def min_bars(self) -> int:
        return self.period


@dataclass(frozen=True)
class TrendConfig:
    enabled: bool = True
    ma_periods: Tuple[int, int, int, int] = (9, 21, 50, 200)
    trend_flag_period: int = 21
    rsi_period: int = 14
    rsi_overbought: float = 70
    rsi_midline: float = 50
    rsi_oversold: float = 30
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    vwap_length: int = 20
    vwap_band_percent: float = 1.0
    atr_period: int = 14
    atr_average: int = 50
    adx_period: int = 14
    volume_average: int = 20
    volume_surge_ratio: float = 1.5
    # Directional blend
    ma_weight: float = 0.30
    rsi_weight: float = 0.20
    macd_weight: float = 0.20
    vwap_weight: float = 0.15
    trend_flag_weight: float = 0.15
    # Momentum normalisation
    adx_norm: float = 50.0
    atr_norm: float = 2.0
    volume_norm: float = 1.5
    # Prohibition gate
    min_adx: float = 20.0
    min_atr_ratio: float = 0.8
    min_ma_distance_percent: float = 0.5
    min_volume_ratio: float = 0.5
    gate_ma_period: int = 50

    def __post_init__(self):
        if len(self.ma_periods) != 4:
            raise ConfigurationOutOfRange("trend.ma_periods", self.ma_periods, "four periods")
        for period in self.ma_periods:
            _positive("trend.ma_periods", period)
        for name in ("trend_flag_period", "rsi_period", "macd_fast", "macd_slow", "macd_signal",
                     "vwap_length", "atr_period", "atr_average", "adx_period", "volume_average",
                     "gate_ma_period"):
            _positive(f"trend.{name}", getattr(self, name))
        if self.macd_fast >= self.macd_slow:
            raise ConfigurationOutOfRange("trend.macd_fast", self.macd_fast, "a value < macd_slow")
        _between("trend.rsi_oversold", self.rsi_oversold, 0, self.rsi_midline)
        _between("trend.rsi_overbought", self.rsi_overbought, self.rsi_midline, 100)
        for name in ("ma_weight", "rsi_weight", "macd_weight", "vwap_weight", "trend_flag_weight",
                     "min_adx", "min_atr_ratio", "min_ma_distance_percent", "min_volume_ratio",
                     "vwap_band_percent"):
            _non_negative(f"trend.{name}", getattr(self, name))
        for name in ("adx_norm", "atr_norm", "volume_norm", "volume_surge_ratio"):
            _positive(f"trend.{name}", getattr(self, name))

    @property
    def min_bars(self) -> int:
        return max(max(self.ma_periods), self.macd_slow + self.macd_signal,
                   self.atr_period + self.atr_average, 2 * self.adx_period + 1,
                   self.gate_ma_period)


@dataclass(frozen=True)
class CciConfig:
    enabled: bool = True
    length: int = 20
    smoothing: int = 5
    final_smoothing: int = 2
    extreme: float = 100.0
    divergence_window: int = 10

    def __post_init__(self):
        _positive("cci.length", self.length)
        _positive("cci.smoothing", self.smoothing)
        _positive("cci.final_smoothing", self.final_smoothing)
        _positive("cci.extreme", self.extreme)
        _positive("cci.divergence_window", self.divergence_window)

    @property
    def min_bars(self) -> int:
        return max(self.length, 2 * self.divergence_window)


@dataclass(frozen=True)
class CrossAssetConfig:
    enabled: bool = True
    lookback: int = 252
    return_length: int = 63
    clamp: float = 3.0
    state_threshold: float = 0.5
    strong_threshold: float = 1.0

    def __post_init__(self):
        if self.lookback is None or self.lookback < 2:
            raise ConfigurationOutOfRange("cross_asset.lookback", self.lookback, "a value >= 2")
        _positive("cross_asset.return_length", self.return_length)
        _positive("cross_asset.clamp", self.clamp)
        _non_negative("cross_asset.state_threshold", self.state_threshold)
        _non_negative("cross_asset.strong_threshold", self.strong_threshold)


@dataclass(frozen=True)
class MagnetConfig:
    enabled: bool = True
    max_distance: float = 0.15        # fraction of spot
    min_open_interest: float = 1000
    gamma_weight: float = 1.2
    gamma_scale: float = 1000
    top_zones: int = 5
    magnet_distance_percent: float = 2.0
    strong_gravity_percent: float = 2.0
    weak_gravity_percent: float = 0.5

    def __post_init__(self):
        _positive("magnet.max_distance", self.max_distance)
        _non_negative("magnet.min_open_interest", self.min_open_interest)
        _non_negative("magnet.gamma_weight", self.gamma_weight)
        _non_negative("magnet.gamma_scale", self.gamma_scale)
        _positive("magnet.top_zones", self.top_zones)
        _non_negative("magnet.magnet_distance_percent", self.magnet_distance_percent)
        _non_negative("magnet.weak_gravity_percent", self.weak_gravity_percent)
        if self.strong_gravity_percent < self.weak_gravity_percent:
            raise ConfigurationOutOfRange("magnet.strong_gravity_percent", self.strong_gravity_percent,
                                          "a value >= weak_gravity_percent")


@dataclass(frozen=True)
class StrikeSentimentConfig:
    enabled: bool = True
    loading_ratio: float = 0.3
    min_loading_volume: float = 1000
    bullish_ratio: float = 1.3
    bearish_ratio: float = 0.7
    key_levels: int = 5

    def __post_init__(self):
        _non_negative("strike_sentiment.loading_ratio", self.loading_ratio)
        _non_negative("strike_sentiment.min_loading_volume", self.min_loading_volume)
        _positive("strike_sentiment.key_levels", self.key_levels)
        if not (0 < self.bearish_ratio <= self.bullish_ratio):
            raise ConfigurationOutOfRange("strike_sentiment.bearish_ratio", self.bearish_ratio,
                                          "0 < bearish_ratio <= bullish_ratio")


@dataclass(frozen=True)
class ActionBand:
    threshold: float
    strength: str            # strong | normal
    confidence: str          # MAX | HIGH | MED | LOW
    size_percent: int
    long_label: str = ""
    short_label: str = ""

    def __post_init__(self):
        _non_negative("scoring.bands.threshold", self.threshold)
        _choice("scoring.bands.strength", self.strength, ("strong", "normal"))
        _choice("scoring.bands.confidence", self.confidence, ("MAX", "HIGH", "MED", "LOW"))
        _choice("scoring.bands.size_percent", self.size_percent, ALLOWED_SIZES)


DEFAULT_WEIGHTS = {
    "trend": 25.0,
    "cross_asset": 15.0,
    "order_flow": 15.0,
    "pattern": 10.0,
    "magnet": 10.0,
    "strike_sentiment": 10.0,
    "gaps": 5.0,
    "squeeze": 5.0,
    "fear": 5.0,
}

# Scan-mode presets. Trend, cross-asset, squeeze and fear keep their default
# share (50); the flow, pattern, magnet, options and gap half is tilted to the
# horizon being scanned.
MODE_WEIGHTS = {
    "intraday": dict(DEFAULT_WEIGHTS, order_flow=17.5, pattern=5.0, magnet=15.0,
                     strike_sentiment=7.5, gaps=5.0),
    "swing": dict(DEFAULT_WEIGHTS, order_flow=7.5, pattern=17.5, magnet=7.5,
                  strike_sentiment=12.5, gaps=5.0),
    "longterm": dict(DEFAULT_WEIGHTS, order_flow=10.0, pattern=7.5, magnet=5.0,
                     strike_sentiment=20.0, gaps=7.5),
    "liquidity": dict(DEFAULT_WEIGHTS, order_flow=7.5, pattern=5.0, magnet=7.5,
                      strike_sentiment=5.0, gaps=25.0),
}

DEFAULT_WEIGHTED_BANDS = (
    ActionBand(70, "strong", "MAX", 100, "MAX LONG", "MAX SHORT"),
    ActionBand(50, "strong", "HIGH", 75, "STRONG LONG", "STRONG SHORT"),
    ActionBand(20, "normal", "MED", 50, "LONG BIAS", "SHORT BIAS"),
)

DEFAULT_ALIGNMENT_BANDS = (
    ActionBand(8, "strong", "MAX", 100, "MAX LONG", "MAX SHORT"),
    ActionBand(6, "strong", "HIGH", 75, "STRONG LONG", "STRONG SHORT"),
    ActionBand(4, "normal", "MED", 50, "LONG BIAS", "SHORT BIAS"),
)


@dataclass(frozen=True)
class ScoringConfig:
    scale: str = "weighted"   # weighted | alignment
    mode: Optional[str] = None                  # intraday | swing | longterm | liquidity
    weights: Optional[Dict[str, float]] = None  # on top of the mode preset (or DEFAULT_WEIGHTS)
    renormalize_missing: bool = False
    bands: Tuple[ActionBand, ...] = DEFAULT_WEIGHTED_BANDS
    alignment_bands: Tuple[ActionBand, ...] = DEFAULT_ALIGNMENT_BANDS
    core_point_bands: Tuple[float, float, float] = (80.0, 60.0, 40.0)
    flow_strength_points: float = 65.0

    def __post_init__(self):
        _choice("scoring.scale", self.scale, ("weighted", "alignment"))
        if self.mode is not None:
            _choice("scoring.mode", self.mode, tuple(MODE_WEIGHTS))

        weights = dict(MODE_WEIGHTS[self.mode] if self.mode else DEFAULT_WEIGHTS)
        for name, weight in (self.weights or {}).items():
            _choice("scoring.weights", name, tuple(DEFAULT_WEIGHTS))
            _non_negative(f"scoring.weights.{name}", weight)
            weights[name] = weight
        object.__setattr__(self, "weights", weights)

        for bands_name in ("bands", "alignment_bands"):
            bands = getattr(self, bands_name)
            thresholds = [band.threshold for band in bands]
            if thresholds != sorted(thresholds, reverse=True):
                raise ConfigurationOutOfRange(f"scoring.{bands_name}", thresholds,
                                              "thresholds in descending order")
        if len(self.core_point_bands) != 3:
            raise ConfigurationOutOfRange("scoring.core_point_bands", self.core_point_bands, "three thresholds")
        _between("scoring.flow_strength_points", self.flow_strength_points, 0, 100)


@dataclass(frozen=True)
class AlignmentConfig:
    min_strength: float = 40.0
    min_alignment_points: float = 4.0

    def __post_init__(self):
        _between("alignment.min_strength", self.min_strength, 0, 100)
        _between("alignment.min_alignment_points", self.min_alignment_points, 0, 12)


@dataclass(frozen=True)
class ScannerConfig:
    max_workers: int = 4
    timeout_seconds: Optional[float] = None

    def __post_init__(self):
        _positive("scanner.max_workers", self.max_workers)
        if self.timeout_seconds is not None:
            _positive("scanner.timeout_seconds", self.timeout_seconds)


SECTIONS = {
    "order_flow": OrderFlowConfig,
    "gaps": GapConfig,
    "patterns": PatternConfig,
    "squeeze": SqueezeConfig,
    "fear": FearConfig,
    "trend": TrendConfig,
    "cci": CciConfig,
    "cross_asset": CrossAssetConfig,
    "magnet": MagnetConfig,
    "strike_sentiment": StrikeSentimentConfig,
    "scoring": ScoringConfig,
    "alignment": AlignmentConfig,
    "scanner": ScannerConfig,
}


def _build_section(name: str, cls, values: Dict[str, Any]):
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationOutOfRange(name, sorted(unknown), f"keys among {', '.join(sorted(known))}")

    values = dict(values)
    if cls is ScoringConfig:
        for key in ("bands", "alignment_bands"):
            if key in values:
                values[key] = tuple(
                    band if isinstance(band, ActionBand) else ActionBand(**band)
                    for band in values[key]
                )
        if "core_point_bands" in values:
            values["core_point_bands"] = tuple(values["core_point_bands"])
    if cls is TrendConfig and "ma_periods" in values:
        values["ma_periods"] = tuple(values["ma_periods"])
    return cls(**values)


@dataclass(frozen=True)
class EngineConfig:
    order_flow: OrderFlowConfig = field(default_factory=OrderFlowConfig)
    gaps: GapConfig = field(default_factory=GapConfig)
    patterns: PatternConfig = field(default_factory=PatternConfig)
    squeeze: SqueezeConfig = field(default_factory=SqueezeConfig)
    fear: FearConfig = field(default_factory=FearConfig)
    trend: TrendConfig = field(default_factory=TrendConfig)
    cci: CciConfig = field(default_factory=CciConfig)
    cross_asset: CrossAssetConfig = field(default_factory=CrossAssetConfig)
    magnet: MagnetConfig = field(default_factory=MagnetConfig)
    strike_sentiment: StrikeSentimentConfig = field(default_factory=StrikeSentimentConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EngineConfig":
        """
        Builds a config from a plain dict (e.g. the 'engine' section of config.yaml).
        Missing sections fall back to defaults; unknown sections or keys are rejected.
        """
        data = data or {}
        unknown = set(data) - set(SECTIONS)
        if unknown:
            raise ConfigurationOutOfRange("engine", sorted(unknown), f"sections among {', '.join(SECTIONS)}")

        kwargs = {}
        for name, section_cls in SECTIONS.items():
            kwargs[name] = _build_section(name, section_cls, data.get(name) or {})
        return cls(**kwargs)

    def with_overrides(self, overrides: Dict[str, Any]) -> "EngineConfig":
        """
        Returns a copy with dotted-path overrides applied, e.g.
        {"gaps.threshold_percent": 1.0, "trend.min_adx": 25}.

        "scoring.weights" only needs the components that change; the others
        come from the scoring mode preset.
        """
        sections: Dict[str, Dict[str, Any]] = {}
        for path, value in overrides.items():
            section, _, key = path.partition(".")
            if section not in SECTIONS or not key:
                raise ConfigurationOutOfRange(path, value, "an override of the form 'section.field'")
            sections.setdefault(section, {})[key] = value

        updated = {}
        for section, values in sections.items():
            current = getattr(self, section)
            known = {f.name for f in fields(current)}
            unknown = set(values) - known
            if unknown:
                raise ConfigurationOutOfRange(section, sorted(unknown), f"keys among {', '.join(sorted(known))}")
            if section == "scoring" and "mode" in values and "weights" not in values:
                # A new mode starts again from its preset
                values["weights"] = None
            updated[section] = replace(current, **values)
        return replace(self, **updated)

    def enabled_components(self) -> List[str]:
        names = []
        for name in ("order_flow", "gaps", "patterns", "squeeze", "fear", "trend", "cci",
                     "cross_asset", "magnet", "strike_sentiment"):
            if getattr(self, name).enabled:
                names.append(name)
        return names
