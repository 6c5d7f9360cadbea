# Detectors - per-component analytics over a validated bar series
from .models import (GapZone, DipRecoveryPattern, MagnetZone, OptionsChain, OrderFlowSample,
                     StrikeQuote)
from .order_flow import estimate, order_flow_frame, summarize_order_flow, analyze_injections
from .fvg_detector import detect_gap_zones, active_view, analyze_gaps
from .pattern_detector import find_pivots, detect_dip_recovery_patterns, analyze_patterns
from .volatility import analyze_squeeze, analyze_fear
from .trend import analyze_trend, apply_prohibition_gate, analyze_cci
from .cross_asset import AuxiliarySeries, analyze_cross_asset
from .magnet import analyze_magnet, max_pain
from .strike_sentiment import analyze_strike_sentiment
