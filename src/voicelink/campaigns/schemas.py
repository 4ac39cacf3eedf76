"""
Pydantic schemas for the campaign API.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ContentType(str, Enum):
    TEXT = "text"
    VOICE = "voice"


class CampaignStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    SCHEDULED = "scheduled"


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StartCampaignRequest(_CamelModel):
    """Raw campaign payload; checked by ``validate_campaign_data``."""

    name: Any = None
    content_type: Any = Field(None, alias="contentType")
    content: Any = None
    recipients: Any = None


class ScheduleCampaignRequest(StartCampaignRequest):
    scheduled_time: datetime | None = Field(None, alias="scheduledTime")


class EstimateCostRequest(_CamelModel):
    recipients: Any = None
    content_type: Any = Field(None, alias="contentType")


class CampaignRecord(_CamelModel):
    """Stored campaign metadata."""

    id: str
    name: str
    content_type: ContentType = Field(..., alias="contentType")
    content: str
    recipients: list[str]
    created_at: datetime = Field(..., alias="createdAt")
    status: CampaignStatus
    scheduled_for: datetime | None = Field(None, alias="scheduledFor")


class RecipientResult(_CamelModel):
    phone_number: str = Field(..., alias="phoneNumber")
    status: Literal["success", "failed"]
    message_sid: str | None = Field(None, alias="messageSid")
    call_sid: str | None = Field(None, alias="callSid")
    error: str | None = None


class CampaignStats(_CamelModel):
    total_sent: int = Field(..., alias="totalSent")
    successful: int
    failed: int
    pending: int = 0


class CampaignResult(_CamelModel):
    success: bool = True
    campaign_id: str = Field(..., alias="campaignId")
    name: str
    stats: CampaignStats
    results: list[RecipientResult]


class ScheduledCampaignResponse(_CamelModel):
    success: bool = True
    campaign_id: str = Field(..., alias="campaignId")
    scheduled_for: datetime = Field(..., alias="scheduledFor")


class CampaignListResponse(BaseModel):
    success: bool = True
    campaigns: list[CampaignRecord]
    total: int


class CampaignDetailResponse(BaseModel):
    success: bool = True
    campaign: CampaignRecord


class CostBreakdown(_CamelModel):
    recipients: int | float
    cost_per_message: float = Field(..., alias="costPerMessage")
    message_type: ContentType = Field(..., alias="messageType")


class CostEstimate(_CamelModel):
    success: bool = True
    estimated_cost: float = Field(..., alias="estimatedCost")
    currency: str = "USD"
    breakdown: CostBreakdown


class CampaignOverview(_CamelModel):
    total_campaigns: int = Field(..., alias="totalCampaigns")
    active_campaigns: int = Field(..., alias="activeCampaigns")
    completed_campaigns: int = Field(..., alias="completedCampaigns")
    scheduled_campaigns: int = Field(..., alias="scheduledCampaigns")


class CampaignOverviewResponse(BaseModel):
    success: bool = True
    stats: CampaignOverview


class VoiceUploadResponse(_CamelModel):
    success: bool = True
    file_url: str = Field(..., alias="fileUrl")
    file_name: str = Field(..., alias="fileName")
    file_size: int = Field(..., alias="fileSize")
    mime_type: str = Field(..., alias="mimeType")
