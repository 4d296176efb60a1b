"""Error types raised by the report engine and event stores."""


class ReportError(Exception):
    """Base class for listening report failures."""


class InvalidParameterError(ReportError, ValueError):
    """A report parameter failed validation before any computation ran."""

    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        self.reason = message
        super().__init__(f"Invalid parameter '{parameter}': {message}")


class UpstreamUnavailableError(ReportError, RuntimeError):
    """The event accessor could not provide listen data."""

    def __init__(self, message: str = "listen data unavailable"):
        super().__init__(message)
