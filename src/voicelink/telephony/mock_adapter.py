"""
Mock telephony provider adapter for local development and tests.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from voicelink.telephony.interface import (
    CallDetails,
    CallInitiationError,
    CallResult,
    MessageDetails,
    MessageSendError,
    ProviderLookupError,
    SmsResult,
    TelephonyProvider,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordedCall:
    to: str
    twiml_url: str


@dataclass(frozen=True)
class RecordedMessage:
    to: str
    body: str


class MockTelephonyAdapter(TelephonyProvider):
    """In-memory provider that records requests instead of dialing out."""

    def __init__(self, from_number: str = "+15005550006") -> None:
        self._from_number = from_number
        self._calls: list[RecordedCall] = []
        self._messages: list[RecordedMessage] = []
        self._next_call_id: int = 1
        self._next_message_id: int = 1
        self._should_fail: bool = False
        self._fail_error: str = "Mock failure"
        self._fail_code: str = "MOCK_ERROR"
        self._failing_numbers: set[str] = set()

    def reset(self) -> None:
        self._calls.clear()
        self._messages.clear()
        self._next_call_id = 1
        self._next_message_id = 1
        self._should_fail = False
        self._fail_error = "Mock failure"
        self._fail_code = "MOCK_ERROR"
        self._failing_numbers.clear()

    def configure_failure(
        self,
        should_fail: bool = True,
        error_message: str = "Mock failure",
        error_code: str = "MOCK_ERROR",
        numbers: set[str] | None = None,
    ) -> None:
        """Make every request fail, or only requests to ``numbers``."""
        self._should_fail = should_fail and not numbers
        self._fail_error = error_message
        self._fail_code = error_code
        self._failing_numbers = set(numbers or ())

    @property
    def calls(self) -> list[RecordedCall]:
        return self._calls.copy()

    @property
    def messages(self) -> list[RecordedMessage]:
        return self._messages.copy()

    def get_last_call(self) -> RecordedCall | None:
        return self._calls[-1] if self._calls else None

    def _fails_for(self, to: str) -> bool:
        return self._should_fail or to in self._failing_numbers

    def make_call_sync(self, to: str, twiml_url: str) -> CallResult:
        logger.info("Mock: Initiating call", extra={"to": to, "twiml_url": twiml_url})

        if self._fails_for(to):
            raise CallInitiationError(message=self._fail_error, error_code=self._fail_code)

        self._calls.append(RecordedCall(to=to, twiml_url=twiml_url))
        call_sid = f"MOCK_CALL_{self._next_call_id:06d}"
        self._next_call_id += 1

        return CallResult(
            call_sid=call_sid,
            to=to,
            status="queued",
            raw_response={"mock": True, "sid": call_sid},
        )

    def send_sms_sync(self, to: str, body: str) -> SmsResult:
        logger.info("Mock: Sending SMS", extra={"to": to, "length": len(body)})

        if self._fails_for(to):
            raise MessageSendError(message=self._fail_error, error_code=self._fail_code)

        self._messages.append(RecordedMessage(to=to, body=body))
        message_sid = f"MOCK_SMS_{self._next_message_id:06d}"
        self._next_message_id += 1

        return SmsResult(
            message_sid=message_sid,
            to=to,
            status="queued",
            raw_response={"mock": True, "sid": message_sid},
        )

    def get_call_sync(self, call_sid: str) -> CallDetails:
        index = self._index_from_sid(call_sid, "MOCK_CALL_")
        if index is None or index >= len(self._calls):
            raise ProviderLookupError(message=f"Call {call_sid} not found", error_code="20404")

        call = self._calls[index]
        now = datetime.now(timezone.utc)
        return CallDetails(
            call_sid=call_sid,
            to=call.to,
            from_number=self._from_number,
            status="completed",
            duration=0,
            direction="outbound-api",
            start_time=now,
            end_time=now,
        )

    def get_message_sync(self, message_sid: str) -> MessageDetails:
        index = self._index_from_sid(message_sid, "MOCK_SMS_")
        if index is None or index >= len(self._messages):
            raise ProviderLookupError(message=f"Message {message_sid} not found", error_code="20404")

        message = self._messages[index]
        now = datetime.now(timezone.utc)
        return MessageDetails(
            message_sid=message_sid,
            to=message.to,
            from_number=self._from_number,
            body=message.body,
            status="delivered",
            date_sent=now,
            date_updated=now,
        )

    def validate_webhook_signature(
        self,
        params: dict[str, str],
        signature: str,
        url: str,
    ) -> bool:
        return True

    @staticmethod
    def _index_from_sid(sid: str, prefix: str) -> int | None:
        if not sid.startswith(prefix):
            return None
        try:
            number = int(sid[len(prefix):])
        except ValueError:
            return None
        return number - 1 if number >= 1 else None
