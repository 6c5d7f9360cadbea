"""
Signal Engine - Error Types
Failures raised by the validator, detectors and configuration layer.
"""


class SignalEngineError(Exception):
    """Base class for every engine failure."""


class InsufficientData(SignalEngineError):
    """Series is shorter than the lookback a component needs."""

    def __init__(self, component: str, required: int, available: int):
        self.component = component
        self.required = required
        self.available = available
        super().__init__(
            f"{component}: needs {required} bars, got {available}"
        )


class InvalidBar(SignalEngineError):
    """A bar violates the OHLC invariant or the series ordering."""

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Invalid bar at position {index}: {reason}")


class MissingAuxiliarySeries(SignalEngineError):
    """Optional input (macro series or options chain) was not supplied."""

    def __init__(self, component: str, missing):
        self.component = component
        self.missing = list(missing)
        super().__init__(f"{component}: missing {', '.join(self.missing)}")


class ConfigurationOutOfRange(SignalEngineError, ValueError):
    """A configuration value is outside its allowed range."""

    def __init__(self, field: str, value, expected: str):
        self.field = field
        self.value = value
        super().__init__(f"Config '{field}'={value!r} is invalid: expected {expected}")
