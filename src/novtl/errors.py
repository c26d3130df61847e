"""Error taxonomy for provider dispatch.

Raw provider failures (HTTP status errors, SDK exceptions, error strings)
are translated into this closed set at the adapter/engine boundary by
:func:`classify_error`. Everything user-facing goes through
:func:`error_message` so wording stays identical across providers.
"""

import re
from typing import Optional


class NovtlError(Exception):
    """Base class for all dispatch errors."""

    retryable = True


class MissingCredential(NovtlError):
    """No usable API key for the active provider. Raised before any network call."""

    retryable = False

    def __init__(self, provider: str):
        super().__init__(f"API Key for {provider} is missing.")
        self.provider = provider


class InvalidCredential(NovtlError):
    """The provider rejected the API key (401/403)."""

    retryable = False


class TransportError(NovtlError):
    """Network or HTTP failure: non-2xx status, broken stream, unreadable body."""

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class RateLimited(TransportError):
    """Provider throttled the request."""


class QuotaExceeded(TransportError):
    """Account quota exhausted."""


class ServiceOverloaded(TransportError):
    """Provider is temporarily overloaded or unavailable."""


class TokenLimitExceeded(NovtlError):
    """Request is too large for the model even after chunking."""

    retryable = False


class AbortedByUser(NovtlError):
    """Cancellation was observed. Never retried."""

    retryable = False

    def __init__(self, message: str = "AbortedByUser"):
        super().__init__(message)


class ToolCallMalformed(NovtlError):
    """Provider declared a tool call with invalid or missing arguments."""

    retryable = False


class RecursionLimitExceeded(NovtlError):
    """Tool-driven re-entry went deeper than the configured cap."""

    retryable = False


_STATUS_IN_MESSAGE = re.compile(r"\b(401|403|429|502|503)\b")


def _status_of(exc: BaseException) -> Optional[int]:
    """Best-effort HTTP status extraction across httpx, openai and google-genai errors."""
    for attr in ("status", "status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _status_from_message(message: str) -> Optional[int]:
    # Whole tokens only; request ids and hashes in the text must not match
    match = _STATUS_IN_MESSAGE.search(message)
    return int(match.group(1)) if match else None


def classify_error(exc: BaseException) -> NovtlError:
    """Map any provider exception onto the error taxonomy.

    Already-classified errors pass through unchanged, except plain
    :class:`TransportError` which is refined from its status and text.
    A known status code always wins; status codes are read from the
    message only when the exception carries none. Response bodies are
    searched for phrases, never for numbers.
    """
    if isinstance(exc, NovtlError) and type(exc) is not TransportError:
        return exc

    status = _status_of(exc)
    if status is None:
        status = _status_from_message(str(exc))
    body = getattr(exc, "body", "") if isinstance(exc, TransportError) else ""
    text = f"{exc} {body}".lower()

    if status in (401, 403) or "api key not valid" in text or "invalid api key" in text:
        return InvalidCredential("Invalid API Key. Please check your Settings.")
    if "tokenlimit" in text:
        return TokenLimitExceeded(str(exc))
    if "quota" in text or "resource_exhausted" in text:
        return QuotaExceeded(str(exc), status=status)
    if status == 429 or "rate limit" in text:
        return RateLimited(str(exc), status=status)
    if status in (502, 503) or "overloaded" in text or "unavailable" in text:
        return ServiceOverloaded(str(exc), status=status)
    if isinstance(exc, TransportError):
        return exc
    return TransportError(str(exc) or type(exc).__name__, status=status)


_MESSAGES: dict[str, dict[type, str]] = {
    "en": {
        InvalidCredential: "Invalid API Key. Please check your Settings.",
        QuotaExceeded: "API Quota Exceeded. Please wait a moment or check your plan.",
        RateLimited: "Too many requests. Please wait a moment and try again.",
        ServiceOverloaded: "AI Server is overloaded. Try again in 1 minute.",
        AbortedByUser: "Process stopped by user.",
        TokenLimitExceeded: "Input too long for this model. Try shortening the chapter.",
        RecursionLimitExceeded: "⚠️ *System Loop Detected.* Stopping context retrieval.",
        ToolCallMalformed: "Sorry, I don't understand that request.",
    },
    "id": {
        InvalidCredential: "API Key tidak valid. Silakan cek Setelan.",
        QuotaExceeded: "Kuota API habis. Tunggu sebentar atau cek paket Anda.",
        RateLimited: "Terlalu banyak permintaan. Tunggu sebentar lalu coba lagi.",
        ServiceOverloaded: "Server AI sedang sibuk. Coba lagi dalam 1 menit.",
        AbortedByUser: "Proses dihentikan oleh pengguna.",
        TokenLimitExceeded: "Teks terlalu panjang untuk model ini. Coba perpendek babnya.",
        RecursionLimitExceeded: "⚠️ *Loop Sistem Terdeteksi.* Pencarian konteks dihentikan.",
        ToolCallMalformed: "Maaf, Danggo tidak mengerti permintaan itu.",
    },
}


def error_message(exc: BaseException, language: str = "en") -> str:
    """Single error-to-message function used by every caller."""
    error = classify_error(exc)
    table = _MESSAGES.get(language, _MESSAGES["en"])

    if isinstance(error, MissingCredential):
        if language == "id":
            return f"API Key untuk {error.provider} belum diisi."
        return str(error)

    for kind in type(error).__mro__:
        if kind in table:
            return table[kind]

    detail = str(error)
    return f"AI Error: {detail[:50]}..."
