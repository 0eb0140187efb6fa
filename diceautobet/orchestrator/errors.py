ERR_BUSY = "ERR_BUSY"
ERR_TIMEOUT = "ERR_TIMEOUT"
ERR_NO_SAMPLE = "ERR_NO_SAMPLE"
ERR_UNRECOGNIZED = "ERR_UNRECOGNIZED"
ERR_REJECTED = "ERR_REJECTED"
ERR_DISPATCH = "ERR_DISPATCH"
ERR_CONFIG = "ERR_CONFIG"
ERR_EXHAUSTED = "ERR_EXHAUSTED"
ERR_UNKNOWN = "ERR_UNKNOWN"

# Codes recovered locally by the round loop (retry with backoff)
TRANSIENT = frozenset({ERR_TIMEOUT, ERR_NO_SAMPLE, ERR_UNRECOGNIZED, ERR_REJECTED, ERR_DISPATCH})


class AutobetError(Exception):
    code = ERR_UNKNOWN

    def __init__(self, reason: str, code: str | None = None):
        super().__init__(reason)
        self.reason = reason
        if code is not None:
            self.code = code


class ConfigError(AutobetError):
    code = ERR_CONFIG


class DispatchError(AutobetError):
    code = ERR_DISPATCH


class TurnInFlightError(AutobetError):
    code = ERR_BUSY


class DetectionError(AutobetError):
    code = ERR_TIMEOUT


class SessionCancelled(Exception):
    """Raised at a suspension point once stop() has been requested."""
