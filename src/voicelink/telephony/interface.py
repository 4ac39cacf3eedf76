"""
Telephony provider interface definition.

Providers place outbound calls, send SMS and look up call/message records.
The async entry points used by the API delegate to the sync implementations
in a worker thread so adapters stay simple to test.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import anyio


@dataclass(frozen=True)
class CallResult:
    """Outcome of an outbound call request."""

    call_sid: str
    to: str
    status: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SmsResult:
    """Outcome of an outbound SMS request."""

    message_sid: str
    to: str
    status: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CallDetails:
    call_sid: str
    to: str
    from_number: str
    status: str
    duration: int | None
    direction: str
    start_time: datetime | None
    end_time: datetime | None


@dataclass(frozen=True)
class MessageDetails:
    message_sid: str
    to: str
    from_number: str
    body: str
    status: str
    date_sent: datetime | None
    date_updated: datetime | None


class TelephonyProviderError(Exception):
    """A provider request failed or could not be made.

    ``error_code`` is the provider's own code when it returned one and
    ``provider_response`` the decoded error body.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        provider_response: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.provider_response = provider_response or {}


class ProviderNotConfiguredError(TelephonyProviderError):
    """Credentials or sender number are missing."""


class CallInitiationError(TelephonyProviderError):
    """Twilio refused or failed to create the call."""


class MessageSendError(TelephonyProviderError):
    """Error while sending an SMS."""


class ProviderLookupError(TelephonyProviderError):
    """Error fetching a call or message record."""


class TelephonyProvider(ABC):
    """Abstract interface for telephony providers."""

    async def make_call(self, to: str, twiml_url: str) -> CallResult:
        return await anyio.to_thread.run_sync(self.make_call_sync, to, twiml_url)

    async def send_sms(self, to: str, body: str) -> SmsResult:
        return await anyio.to_thread.run_sync(self.send_sms_sync, to, body)

    async def get_call(self, call_sid: str) -> CallDetails:
        return await anyio.to_thread.run_sync(self.get_call_sync, call_sid)

    async def get_message(self, message_sid: str) -> MessageDetails:
        return await anyio.to_thread.run_sync(self.get_message_sync, message_sid)

    @abstractmethod
    def make_call_sync(self, to: str, twiml_url: str) -> CallResult:
        """Place an outbound call that fetches its TwiML from ``twiml_url``."""
        ...

    @abstractmethod
    def send_sms_sync(self, to: str, body: str) -> SmsResult:
        ...

    @abstractmethod
    def get_call_sync(self, call_sid: str) -> CallDetails:
        ...

    @abstractmethod
    def get_message_sync(self, message_sid: str) -> MessageDetails:
        ...

    @abstractmethod
    def validate_webhook_signature(
        self,
        params: dict[str, str],
        signature: str,
        url: str,
    ) -> bool:
        """Validate webhook signature for authenticity."""
        ...

    def close(self) -> None:
        """Release any network resources held by the adapter."""
