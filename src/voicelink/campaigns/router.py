"""
API router for SMS/voice campaigns.
"""

from __future__ import annotations

import os
import secrets
import time
from pathlib import Path
from typing import Annotated

import anyio
from fastapi import APIRouter, Depends, File, Query, UploadFile

from voicelink.campaigns.schemas import (
    CampaignDetailResponse,
    CampaignListResponse,
    CampaignOverviewResponse,
    CampaignResult,
    CostEstimate,
    EstimateCostRequest,
    ScheduleCampaignRequest,
    ScheduledCampaignResponse,
    StartCampaignRequest,
    VoiceUploadResponse,
)
from voicelink.campaigns.service import (
    CampaignService,
    CampaignStore,
    estimate_campaign_cost,
    get_campaign_store,
    parse_list_limit,
)
from voicelink.config import Settings, get_settings
from voicelink.shared.exceptions import ValidationError
from voicelink.shared.logging import get_logger
from voicelink.telephony.factory import get_telephony_config, get_telephony_provider
from voicelink.telephony.interface import TelephonyProvider
from voicelink.voice.guards import log_voice_activity, rate_limit

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/campaigns",
    tags=["campaigns"],
    dependencies=[
        Depends(rate_limit("campaigns", "campaign_rate_limit")),
        Depends(log_voice_activity),
    ],
)

ALLOWED_AUDIO_TYPES: frozenset[str] = frozenset(
    {"audio/mpeg", "audio/wav", "audio/ogg", "audio/webm"}
)


def get_campaign_service(
    store: Annotated[CampaignStore, Depends(get_campaign_store)],
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CampaignService:
    """Dependency for campaign service."""
    public_base_url = settings.public_base_url or get_telephony_config().webhook_base_url
    return CampaignService(
        store=store,
        provider=provider,
        public_base_url=public_base_url,
        send_delay_seconds=settings.campaign_send_delay_seconds,
    )


Service = Annotated[CampaignService, Depends(get_campaign_service)]


@router.post("/start", response_model=CampaignResult)
async def start_campaign(request: StartCampaignRequest, service: Service) -> CampaignResult:
    """Start a campaign immediately and wait for every send to finish."""
    return await service.start_campaign(request.model_dump(by_alias=True))


@router.post("/schedule", response_model=ScheduledCampaignResponse)
async def schedule_campaign(
    request: ScheduleCampaignRequest,
    service: Service,
) -> ScheduledCampaignResponse:
    data = request.model_dump(by_alias=True, exclude={"scheduled_time"})
    return service.schedule_campaign(data, request.scheduled_time)


@router.post("/upload-voice", response_model=VoiceUploadResponse)
async def upload_voice(
    settings: Annotated[Settings, Depends(get_settings)],
    file: Annotated[UploadFile | None, File(description="Audio file for a voice campaign")] = None,
) -> VoiceUploadResponse:
    """Store an audio file and return the URL it is served from."""
    if file is None or not file.filename:
        raise ValidationError(message="No file uploaded")

    if file.content_type not in ALLOWED_AUDIO_TYPES:
        raise ValidationError(message="Invalid audio format")

    content = await file.read(settings.max_voice_upload_bytes + 1)
    if len(content) > settings.max_voice_upload_bytes:
        limit_mb = settings.max_voice_upload_bytes // (1024 * 1024)
        raise ValidationError(message=f"File size exceeds {limit_mb}MB limit")

    suffix = Path(file.filename).suffix
    stored_name = f"voice-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"
    target_dir = anyio.Path(settings.uploads_dir) / "voice"
    await target_dir.mkdir(parents=True, exist_ok=True)
    await (target_dir / stored_name).write_bytes(content)

    logger.info(
        "Voice file uploaded",
        extra={
            "stored_name": stored_name,
            "original_name": os.path.basename(file.filename),
            "size": len(content),
        },
    )

    return VoiceUploadResponse(
        file_url=f"/uploads/voice/{stored_name}",
        file_name=file.filename,
        file_size=len(content),
        mime_type=file.content_type,
    )


@router.get("", response_model=CampaignListResponse)
@router.get("/", response_model=CampaignListResponse, include_in_schema=False)
async def list_campaigns(
    service: Service,
    limit: Annotated[str | None, Query()] = None,
) -> CampaignListResponse:
    campaigns = service.list_campaigns(parse_list_limit(limit))
    return CampaignListResponse(campaigns=campaigns, total=len(campaigns))


@router.post("/estimate-cost", response_model=CostEstimate)
async def estimate_cost(request: EstimateCostRequest) -> CostEstimate:
    return estimate_campaign_cost(request.recipients, request.content_type)


@router.get("/stats/overview", response_model=CampaignOverviewResponse)
async def campaign_overview(service: Service) -> CampaignOverviewResponse:
    return CampaignOverviewResponse(stats=service.overview())


@router.get("/{campaign_id}", response_model=CampaignDetailResponse)
async def get_campaign(campaign_id: str, service: Service) -> CampaignDetailResponse:
    return CampaignDetailResponse(campaign=service.get_campaign(campaign_id))
