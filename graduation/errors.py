"""
GRADUATION ERRORS

Exception types raised inside the data-source adapters.

None of these cross the public adapter boundary: the adapters catch them,
log them and hand back an empty list, None, or a failed EnrichmentResult.
"""


class GraduationError(Exception):
    """Base class for every error raised by the graduation package."""


class UpstreamError(GraduationError):
    """An HTTP data source failed (non-2xx, timeout, malformed body)."""

    def __init__(self, source: str, message: str, status: int = None):
        self.source = source
        self.status = status
        if status is not None:
            message = f"HTTP {status}: {message}"
        super().__init__(f"[{source}] {message}")


class EnrichmentError(GraduationError):
    """Holder / security enrichment for a single mint could not be completed."""

    def __init__(self, mint: str, reason: str):
        self.mint = mint
        self.reason = reason
        super().__init__(f"Enrichment failed for {mint[:8]}...: {reason}")


class ConfigurationError(GraduationError):
    """A required credential or setting is missing."""
