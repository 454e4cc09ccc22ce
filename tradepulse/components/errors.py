"""Typed errors for the signal pipeline."""


class TradePulseError(Exception):
    """Base class for TradePulse errors."""


class DataFetchError(TradePulseError):
    """Raised when no quote/history can be obtained (provider failure without cache, bad payload)."""


class IndicatorComputationError(TradePulseError):
    """Raised when the price series is too short for a requested window."""


class ChannelDeliveryError(TradePulseError):
    """Raised by a notification channel when delivery fails."""

    def __init__(self, channel: str, message: str):
        super().__init__(message)
        self.channel = channel
        self.message = message


class WorkflowFatalError(TradePulseError):
    """Raised for failures outside channel dispatch; aborts the workflow run."""
