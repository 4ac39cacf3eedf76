"""
API router for outbound voice calls and SMS.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from voicelink.shared.exceptions import ValidationError
from voicelink.shared.logging import get_logger
from voicelink.telephony.factory import get_telephony_provider
from voicelink.telephony.interface import TelephonyProvider
from voicelink.voice.guards import (
    log_voice_activity,
    rate_limit,
    validate_phone_number,
    validate_sms_content,
    validate_twiml_url,
)
from voicelink.voice.schemas import (
    CallDetailsResponse,
    CallResponse,
    MessageDetailsResponse,
    SmsRequest,
    SmsResponse,
    VoiceCallRequest,
)

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/voice",
    tags=["voice"],
    dependencies=[
        Depends(rate_limit("voice", "voice_rate_limit")),
        Depends(log_voice_activity),
    ],
)

Provider = Annotated[TelephonyProvider, Depends(get_telephony_provider)]


def _require_sid(value: str, label: str) -> str:
    if not value or not value.strip():
        raise ValidationError(message=f"Valid {label} is required")
    return value.strip()


@router.post("/call", response_model=CallResponse)
async def make_voice_call(request: VoiceCallRequest, provider: Provider) -> CallResponse:
    """Place a call that fetches its TwiML from ``twimlUrl``."""
    to_number = validate_phone_number(request.to_number)
    twiml_url = validate_twiml_url(request.twiml_url)

    result = await provider.make_call(to_number, twiml_url)
    return CallResponse(call_sid=result.call_sid, to=result.to, status=result.status)


@router.post("/sms", response_model=SmsResponse)
async def send_sms(request: SmsRequest, provider: Provider) -> SmsResponse:
    to_number = validate_phone_number(request.to_number)
    body = validate_sms_content(request.message)

    result = await provider.send_sms(to_number, body)
    return SmsResponse(message_sid=result.message_sid, to=result.to, status=result.status)


@router.get("/call/{call_sid}", response_model=CallDetailsResponse)
async def get_call_details(
    call_sid: Annotated[str, Path()],
    provider: Provider,
) -> CallDetailsResponse:
    details = await provider.get_call(_require_sid(call_sid, "Call SID"))
    return CallDetailsResponse(
        call_sid=details.call_sid,
        to=details.to,
        from_number=details.from_number,
        status=details.status,
        duration=details.duration,
        direction=details.direction,
        start_time=details.start_time,
        end_time=details.end_time,
    )


@router.get("/message/{message_sid}", response_model=MessageDetailsResponse)
async def get_message_details(
    message_sid: Annotated[str, Path()],
    provider: Provider,
) -> MessageDetailsResponse:
    details = await provider.get_message(_require_sid(message_sid, "Message SID"))
    return MessageDetailsResponse(
        message_sid=details.message_sid,
        to=details.to,
        from_number=details.from_number,
        body=details.body,
        status=details.status,
        date_sent=details.date_sent,
        date_updated=details.date_updated,
    )
