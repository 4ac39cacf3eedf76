from __future__ import annotations

"""
Twilio telephony provider adapter.

Talks to the Twilio REST API (2010-04-01) directly over httpx with basic
auth. Twilio returns RFC 2822 timestamps for call and message records.
"""

import hashlib
import hmac
import logging
from base64 import b64encode
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from voicelink.telephony.config import TelephonyConfig, get_telephony_config
from voicelink.telephony.interface import (
    CallDetails,
    CallInitiationError,
    CallResult,
    MessageDetails,
    MessageSendError,
    ProviderLookupError,
    ProviderNotConfiguredError,
    SmsResult,
    TelephonyProvider,
    TelephonyProviderError,
)

logger = logging.getLogger(__name__)

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"


def _parse_twilio_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None


def _parse_duration(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class TwilioAdapter(TelephonyProvider):
    """Twilio telephony provider adapter."""

    def __init__(
        self,
        config: TelephonyConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._config = config or get_telephony_config()
        self._http_client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(
                timeout=httpx.Timeout(self._config.request_timeout_seconds)
            )
        return self._http_client

    def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None

    def _get_auth(self) -> tuple[str, str]:
        return (self._config.twilio_account_sid, self._config.twilio_auth_token)

    def _get_api_url(self, endpoint: str) -> str:
        account_sid = self._config.twilio_account_sid
        return f"{TWILIO_API_BASE}/Accounts/{account_sid}{endpoint}"

    def _ensure_configured(self) -> None:
        if not self._config.is_configured:
            raise ProviderNotConfiguredError(
                message="Twilio credentials are not configured in backend environment variables.",
                error_code="NOT_CONFIGURED",
            )

    def _request(
        self,
        method: str,
        endpoint: str,
        error_cls: type[TelephonyProviderError],
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        self._ensure_configured()
        client = self._get_client()

        try:
            response = client.request(
                method,
                self._get_api_url(endpoint),
                data=data,
                auth=self._get_auth(),
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            logger.exception("HTTP error talking to Twilio", extra={"endpoint": endpoint})
            raise error_cls(message=f"HTTP error: {e!s}", error_code="HTTP_ERROR") from e

        if response.status_code >= 400:
            try:
                error_data = response.json() if response.content else {}
            except ValueError:
                error_data = {"message": response.text}
            logger.error(
                "Twilio request failed",
                extra={
                    "endpoint": endpoint,
                    "status_code": response.status_code,
                    "error": error_data,
                },
            )
            raise error_cls(
                message=error_data.get("message", f"Twilio request failed ({response.status_code})"),
                error_code=str(error_data.get("code", response.status_code)),
                provider_response=error_data,
            )

        return response.json()

    def make_call_sync(self, to: str, twiml_url: str) -> CallResult:
        logger.info("Initiating Twilio call", extra={"to": to, "twiml_url": twiml_url})

        data = self._request(
            "POST",
            "/Calls.json",
            CallInitiationError,
            data={
                "To": to,
                "From": self._config.twilio_from_number,
                "Url": twiml_url,
            },
        )

        logger.info("Voice call initiated", extra={"call_sid": data.get("sid")})
        return CallResult(
            call_sid=data["sid"],
            to=to,
            status=data.get("status", "queued"),
            raw_response=data,
        )

    def send_sms_sync(self, to: str, body: str) -> SmsResult:
        data = self._request(
            "POST",
            "/Messages.json",
            MessageSendError,
            data={
                "To": to,
                "From": self._config.twilio_from_number,
                "Body": body,
            },
        )

        logger.info("SMS sent", extra={"message_sid": data.get("sid"), "to": to})
        return SmsResult(
            message_sid=data["sid"],
            to=to,
            status=data.get("status", "queued"),
            raw_response=data,
        )

    def get_call_sync(self, call_sid: str) -> CallDetails:
        data = self._request("GET", f"/Calls/{call_sid}.json", ProviderLookupError)
        return CallDetails(
            call_sid=data["sid"],
            to=data.get("to", ""),
            from_number=data.get("from", ""),
            status=data.get("status", ""),
            duration=_parse_duration(data.get("duration")),
            direction=data.get("direction", ""),
            start_time=_parse_twilio_datetime(data.get("start_time")),
            end_time=_parse_twilio_datetime(data.get("end_time")),
        )

    def get_message_sync(self, message_sid: str) -> MessageDetails:
        data = self._request("GET", f"/Messages/{message_sid}.json", ProviderLookupError)
        return MessageDetails(
            message_sid=data["sid"],
            to=data.get("to", ""),
            from_number=data.get("from", ""),
            body=data.get("body", ""),
            status=data.get("status", ""),
            date_sent=_parse_twilio_datetime(data.get("date_sent")),
            date_updated=_parse_twilio_datetime(data.get("date_updated")),
        )

    def validate_webhook_signature(
        self,
        params: dict[str, str],
        signature: str,
        url: str,
    ) -> bool:
        """Check ``X-Twilio-Signature``: base64(HMAC-SHA1(url + sorted key/value pairs))."""
        if not self._config.twilio_auth_token:
            logger.warning("No auth token configured, rejecting webhook signature")
            return False

        data_str = url
        for key in sorted(params.keys()):
            data_str += key + params[key]

        computed = hmac.new(
            self._config.twilio_auth_token.encode("utf-8"),
            data_str.encode("utf-8"),
            hashlib.sha1,
        ).digest()

        computed_sig = b64encode(computed).decode("utf-8")
        return hmac.compare_digest(computed_sig, signature or "")
