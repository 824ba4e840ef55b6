# riot/errors.py – Taxonomie des erreurs Riot API

from typing import Optional


class RiotAPIError(Exception):
    """Base exception for Riot API errors. ``status`` is 0 when no HTTP status applies."""

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.status = status


class ConfigurationError(RiotAPIError):
    """No API key configured. Fatal, never retried."""

    def __init__(self, message: str = "RIOT_API_KEY is not configured"):
        super().__init__(message, status=0)


class NetworkError(RiotAPIError):
    """Riot API unreachable after all retries."""

    def __init__(self, message: str = "Network error: failed to reach Riot API"):
        super().__init__(message, status=0)


class RateLimitExhausted(RiotAPIError):
    """Still rate limited (429) after every allowed rate-limit retry."""

    def __init__(self, message: str = "Rate limit exceeded", retries: int = 0):
        super().__init__(message, status=429)
        self.retries = retries


class UpstreamError(RiotAPIError):
    """Any non-2xx answer that is not handled more specifically."""

    def __init__(self, status: int, reason: Optional[str] = None):
        self.reason = reason or ""
        super().__init__(f"Riot API error: {status} {self.reason}".rstrip(), status=status)


class UpstreamServerError(UpstreamError):
    """5xx still failing once the retry budget is spent."""


class AuthError(RiotAPIError):
    """401/403 – key missing, invalid or expired."""


class NotFoundError(RiotAPIError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, status=404)


class DecodeError(RiotAPIError):
    """Payload is not valid JSON or does not match the expected schema."""


class RequestCancelled(RiotAPIError):
    """The caller aborted the request (cancel event set)."""

    def __init__(self, message: str = "Request cancelled"):
        super().__init__(message, status=0)
