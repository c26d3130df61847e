"""Unit tests for error classification and user-facing messages."""

import asyncio

import pytest

from novtl.cancel import CancelToken
from novtl.errors import (
    AbortedByUser,
    InvalidCredential,
    MissingCredential,
    QuotaExceeded,
    RateLimited,
    ServiceOverloaded,
    TokenLimitExceeded,
    TransportError,
    classify_error,
    error_message,
)


class TestClassifyError:
    """Test classify_error."""

    def test_auth_status(self):
        assert isinstance(classify_error(TransportError("HTTP Error 403", status=403)), InvalidCredential)

    def test_auth_text(self):
        assert isinstance(classify_error(Exception("API key not valid. Please pass a valid API key.")), InvalidCredential)

    def test_quota(self):
        assert isinstance(classify_error(Exception("429 RESOURCE_EXHAUSTED: quota exceeded")), QuotaExceeded)

    def test_rate_limit(self):
        error = classify_error(TransportError("HTTP Error 429", status=429))
        assert isinstance(error, RateLimited)
        assert error.retryable

    def test_overloaded(self):
        assert isinstance(classify_error(Exception("The model is overloaded")), ServiceOverloaded)
        assert isinstance(classify_error(TransportError("HTTP Error 503", status=503)), ServiceOverloaded)

    def test_token_limit(self):
        error = classify_error(Exception("TokenLimit: Chunk is too complex."))
        assert isinstance(error, TokenLimitExceeded)
        assert not error.retryable

    def test_status_from_response_attribute(self):
        class FakeResponse:
            status_code = 401

        class SDKError(Exception):
            response = FakeResponse()

        assert isinstance(classify_error(SDKError("denied")), InvalidCredential)

    def test_known_status_ignores_digits_in_body(self):
        error = classify_error(
            TransportError("HTTP Error 500", status=500, body='{"error": "Request ID 9ac401fe2b"}')
        )
        assert type(error) is TransportError
        assert error.retryable

    def test_status_code_read_from_message_as_whole_token(self):
        assert isinstance(classify_error(Exception("401 Unauthorized")), InvalidCredential)
        assert isinstance(classify_error(Exception("503 Service Unavailable")), ServiceOverloaded)
        assert type(classify_error(Exception("failed, request id 9ac401fe2b"))) is TransportError

    def test_known_status_wins_over_message(self):
        error = classify_error(TransportError("upstream 429 from cache", status=500))
        assert type(error) is TransportError

    def test_unknown_becomes_transport_error(self):
        error = classify_error(ValueError("boom"))
        assert type(error) is TransportError
        assert error.retryable

    def test_classified_errors_pass_through(self):
        aborted = AbortedByUser()
        missing = MissingCredential("Gemini")
        assert classify_error(aborted) is aborted
        assert classify_error(missing) is missing


class TestErrorMessage:
    """Test error_message."""

    def test_missing_credential(self):
        assert error_message(MissingCredential("Gemini")) == "API Key for Gemini is missing."
        assert "Gemini" in error_message(MissingCredential("Gemini"), "id")

    def test_english_and_indonesian(self):
        error = RateLimited("slow down", status=429)
        assert error_message(error, "en") == "Too many requests. Please wait a moment and try again."
        assert error_message(error, "id") == "Terlalu banyak permintaan. Tunggu sebentar lalu coba lagi."

    def test_raw_exception_is_classified(self):
        assert error_message(Exception("Invalid API key"), "en") == "Invalid API Key. Please check your Settings."

    def test_aborted(self):
        assert error_message(AbortedByUser(), "en") == "Process stopped by user."

    def test_generic_fallback_is_truncated(self):
        message = error_message(TransportError("x" * 80), "en")
        assert message == "AI Error: " + "x" * 50 + "..."

    def test_unknown_language_falls_back_to_english(self):
        assert error_message(AbortedByUser(), "fr") == "Process stopped by user."


class TestCancelToken:
    """Test CancelToken."""

    def test_raise_if_cancelled(self):
        token = CancelToken()
        token.raise_if_cancelled()
        token.cancel()
        assert token.cancelled
        with pytest.raises(AbortedByUser):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_sleep_completes(self):
        token = CancelToken()
        await token.sleep(0.01)
        assert not token.cancelled

    @pytest.mark.asyncio
    async def test_sleep_wakes_on_cancel(self):
        token = CancelToken()
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, token.cancel)

        with pytest.raises(AbortedByUser):
            await token.sleep(10)
