"""
Tests for rate limiting and input validation.
"""

import pytest

from voicelink.shared.exceptions import RateLimitExceededError, ValidationError
from voicelink.voice.guards import (
    MAX_SMS_LENGTH,
    RateLimiter,
    get_rate_limiter,
    is_valid_phone_number,
    reset_rate_limiters,
    validate_phone_number,
    validate_sms_content,
    validate_twiml_url,
)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestRateLimiter:
    def test_allows_up_to_max_calls(self) -> None:
        limiter = RateLimiter(max_calls=3, window_seconds=3600, clock=FakeClock())

        assert limiter.hit("user-1") == 2
        assert limiter.hit("user-1") == 1
        assert limiter.hit("user-1") == 0

    def test_rejects_over_limit(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(max_calls=2, window_seconds=3600, clock=clock)
        limiter.hit("user-1")
        limiter.hit("user-1")
        clock.advance(600.5)

        with pytest.raises(RateLimitExceededError) as exc_info:
            limiter.hit("user-1")

        assert exc_info.value.message == "Rate limit exceeded. Maximum 2 calls per hour."
        assert exc_info.value.retry_after == 3000

    def test_keys_are_independent(self) -> None:
        limiter = RateLimiter(max_calls=1, window_seconds=60, clock=FakeClock())
        limiter.hit("user-1")

        assert limiter.hit("user-2") == 0
        with pytest.raises(RateLimitExceededError):
            limiter.hit("user-1")

    def test_window_still_closed_at_reset_instant(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(max_calls=1, window_seconds=60, clock=clock)
        limiter.hit("k")
        clock.advance(60)

        with pytest.raises(RateLimitExceededError):
            limiter.hit("k")

    def test_new_window_after_expiry(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(max_calls=1, window_seconds=60, clock=clock)
        limiter.hit("k")
        clock.advance(61)

        assert limiter.hit("k") == 0

    def test_rejected_hits_do_not_extend_window(self) -> None:
        clock = FakeClock()
        limiter = RateLimiter(max_calls=1, window_seconds=60, clock=clock)
        limiter.hit("k")
        for _ in range(5):
            clock.advance(10)
            with pytest.raises(RateLimitExceededError):
                limiter.hit("k")
        clock.advance(11)

        assert limiter.hit("k") == 0

    def test_reset(self) -> None:
        limiter = RateLimiter(max_calls=1, window_seconds=60, clock=FakeClock())
        limiter.hit("k")
        limiter.reset()

        assert limiter.hit("k") == 0


class TestLimiterRegistry:
    def test_same_name_returns_same_limiter(self) -> None:
        first = get_rate_limiter("voice", max_calls=5, window_seconds=60)
        second = get_rate_limiter("voice", max_calls=99, window_seconds=60)

        assert first is second
        assert first.max_calls == 5

    def test_reset_forgets_limiters(self) -> None:
        first = get_rate_limiter("voice", max_calls=5, window_seconds=60)
        reset_rate_limiters()

        assert get_rate_limiter("voice", max_calls=5, window_seconds=60) is not first


class TestPhoneNumbers:
    @pytest.mark.parametrize(
        "number",
        ["+9779862478859", "+14155551234", "14155551234", "+1 (415) 555-1234"],
    )
    def test_valid(self, number: str) -> None:
        assert is_valid_phone_number(number)
        assert validate_phone_number(number) == number

    @pytest.mark.parametrize("number", ["+0123456", "1", "+1234567890123456", "abc"])
    def test_invalid(self, number: str) -> None:
        assert not is_valid_phone_number(number)
        with pytest.raises(ValidationError) as exc_info:
            validate_phone_number(number)
        assert exc_info.value.message == (
            "Invalid phone number format. Use E.164 format (e.g., +9779862478859)"
        )

    @pytest.mark.parametrize("value", [None, "", 12345])
    def test_missing(self, value: object) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_phone_number(value)
        assert exc_info.value.message == "toNumber is required"


class TestSmsContent:
    def test_valid(self) -> None:
        assert validate_sms_content("Rice price is 50 today") == "Rice price is 50 today"

    def test_exact_limit_is_allowed(self) -> None:
        body = "x" * MAX_SMS_LENGTH

        assert validate_sms_content(body) == body

    def test_too_long(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_sms_content("x" * (MAX_SMS_LENGTH + 1))
        assert exc_info.value.message == "Message cannot exceed 1600 characters"

    def test_whitespace_only(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_sms_content("   ")
        assert exc_info.value.message == "Message cannot be empty"

    @pytest.mark.parametrize("value", [None, "", 42])
    def test_missing(self, value: object) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_sms_content(value)
        assert exc_info.value.message == "Message content is required and must be a string"


class TestTwimlUrl:
    def test_valid(self) -> None:
        url = "https://voicelink.example.org/api/twiml/main-menu"

        assert validate_twiml_url(url) == url

    @pytest.mark.parametrize("value", ["not a url", "/api/twiml/main-menu", "https://"])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_twiml_url(value)
        assert exc_info.value.message == "Invalid TwiML URL format"

    def test_missing(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_twiml_url(None)
        assert exc_info.value.message == "twimlUrl is required"
