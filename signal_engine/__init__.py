# Signal Engine - composite technical-signal analytics
from .config import EngineConfig
from .engine import SignalEngine, EngineResult
from .errors import (SignalEngineError, InsufficientData, InvalidBar, MissingAuxiliarySeries,
                     ConfigurationOutOfRange)
from .models import Action, CompositeResult, Confidence, Direction, PriceBar, ScoreScale
