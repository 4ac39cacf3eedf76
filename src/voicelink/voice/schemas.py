"""
Pydantic schemas for the voice/SMS API.

Request fields are optional at the schema level; presence and format are
checked by the guards so clients get the 400 messages the dashboard expects
rather than a generic 422.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class VoiceCallRequest(_CamelModel):
    to_number: str | None = Field(None, alias="toNumber")
    twiml_url: str | None = Field(None, alias="twimlUrl")


class SmsRequest(_CamelModel):
    to_number: str | None = Field(None, alias="toNumber")
    message: str | None = None


class CallResponse(_CamelModel):
    success: bool = True
    call_sid: str = Field(..., alias="callSid")
    to: str
    status: str


class SmsResponse(_CamelModel):
    success: bool = True
    message_sid: str = Field(..., alias="messageSid")
    to: str
    status: str


class CallDetailsResponse(_CamelModel):
    success: bool = True
    call_sid: str = Field(..., alias="callSid")
    to: str
    from_number: str = Field(..., alias="from")
    status: str
    duration: int | None = None
    direction: str
    start_time: datetime | None = Field(None, alias="startTime")
    end_time: datetime | None = Field(None, alias="endTime")


class MessageDetailsResponse(_CamelModel):
    success: bool = True
    message_sid: str = Field(..., alias="messageSid")
    to: str
    from_number: str = Field(..., alias="from")
    body: str
    status: str
    date_sent: datetime | None = Field(None, alias="dateSent")
    date_updated: datetime | None = Field(None, alias="dateUpdated")
