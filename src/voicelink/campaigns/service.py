"""
Campaign service: bulk SMS and voice dispatch.

Campaigns are kept in an in-process registry. A campaign is sent to its
recipients one at a time; a failure for one recipient is recorded and the
run continues with the next.
"""

from __future__ import annotations

import asyncio
import math
import re
import secrets
import string
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

from voicelink.campaigns.schemas import (
    CampaignOverview,
    CampaignRecord,
    CampaignResult,
    CampaignStats,
    CampaignStatus,
    ContentType,
    CostBreakdown,
    CostEstimate,
    RecipientResult,
    ScheduledCampaignResponse,
)
from voicelink.shared.exceptions import NotFoundError, ValidationError
from voicelink.shared.logging import get_logger
from voicelink.telephony.interface import TelephonyProvider, TelephonyProviderError
from voicelink.voice.guards import is_valid_phone_number

logger = get_logger(__name__)

SMS_COST_PER_MESSAGE = 0.008
VOICE_COST_PER_MESSAGE = 0.025

_ID_ALPHABET = string.digits + string.ascii_lowercase

DEFAULT_LIST_LIMIT = 10
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def generate_campaign_id(clock: Callable[[], float] = time.time) -> str:
    """``CAMP_<epoch ms>_<9 base36 chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"CAMP_{int(clock() * 1000)}_{suffix}"


def parse_list_limit(raw: str | None) -> int:
    """Leading integer of ``raw``; missing, unparsable or non-positive gives the default."""
    match = _LEADING_INT.match(raw or "")
    limit = int(match.group(1)) if match else 0
    return limit if limit > 0 else DEFAULT_LIST_LIMIT


def validate_campaign_data(data: dict[str, Any]) -> list[str]:
    """Return every problem with a campaign payload (empty list when valid)."""
    errors: list[str] = []

    name = data.get("name")
    if not name or not isinstance(name, str):
        errors.append("Campaign name is required")

    if data.get("contentType") not in (ContentType.TEXT.value, ContentType.VOICE.value):
        errors.append("Invalid content type")

    content = data.get("content")
    if not content or not isinstance(content, str):
        errors.append("Campaign content is required")

    recipients = data.get("recipients")
    if not isinstance(recipients, list) or not recipients:
        errors.append("At least one recipient is required")
        return errors

    for phone in recipients:
        if not isinstance(phone, str) or not is_valid_phone_number(phone):
            errors.append(f"Invalid phone number format: {phone}")

    return errors


def estimate_campaign_cost(recipients: Any, content_type: Any) -> CostEstimate:
    """Price a campaign; any finite number of recipients from 1 up is accepted."""
    if (
        isinstance(recipients, bool)
        or not isinstance(recipients, (int, float))
        or not math.isfinite(recipients)
        or recipients < 1
    ):
        raise ValidationError(message="Invalid number of recipients")
    if content_type not in (ContentType.TEXT.value, ContentType.VOICE.value):
        raise ValidationError(message="Invalid content type")

    kind = ContentType(content_type)
    cost_per_message = SMS_COST_PER_MESSAGE if kind is ContentType.TEXT else VOICE_COST_PER_MESSAGE

    return CostEstimate(
        estimated_cost=round(recipients * cost_per_message, 2),
        currency="USD",
        breakdown=CostBreakdown(
            recipients=recipients,
            cost_per_message=cost_per_message,
            message_type=kind,
        ),
    )


class CampaignStore:
    """Insertion-ordered in-memory campaign registry."""

    def __init__(self) -> None:
        self._campaigns: dict[str, CampaignRecord] = {}

    def add(self, record: CampaignRecord) -> None:
        self._campaigns[record.id] = record

    def get(self, campaign_id: str) -> CampaignRecord | None:
        return self._campaigns.get(campaign_id)

    def set_status(self, campaign_id: str, status: CampaignStatus) -> None:
        record = self._campaigns.get(campaign_id)
        if record is not None:
            self._campaigns[campaign_id] = record.model_copy(update={"status": status})

    def recent(self, limit: int) -> list[CampaignRecord]:
        """Last ``limit`` campaigns, newest first."""
        if limit <= 0:
            return []
        return list(reversed(list(self._campaigns.values())[-limit:]))

    def clear(self) -> None:
        self._campaigns.clear()

    def __len__(self) -> int:
        return len(self._campaigns)


class CampaignService:
    def __init__(
        self,
        store: CampaignStore,
        provider: TelephonyProvider,
        public_base_url: str,
        send_delay_seconds: float = 0.1,
    ) -> None:
        self._store = store
        self._provider = provider
        self._public_base_url = public_base_url.rstrip("/")
        self._send_delay_seconds = send_delay_seconds

    def voice_twiml_url(self, content: str) -> str:
        """TwiML URL for a voice campaign.

        Content pointing at one of our TwiML endpoints is used as is; anything
        else is treated as an audio file and wrapped in the play endpoint.
        """
        if "/api/twiml/" in content:
            if content.startswith(("http://", "https://")):
                return content
            return f"{self._public_base_url}/{content.lstrip('/')}"
        return f"{self._public_base_url}/api/twiml/play?audioUrl={quote(content, safe='')}"

    def _new_record(self, data: dict[str, Any], status: CampaignStatus, **extra: Any) -> CampaignRecord:
        return CampaignRecord(
            id=generate_campaign_id(),
            name=data["name"],
            content_type=ContentType(data["contentType"]),
            content=data["content"],
            recipients=list(data["recipients"]),
            created_at=datetime.now(timezone.utc),
            status=status,
            **extra,
        )

    @staticmethod
    def _ensure_valid(data: dict[str, Any]) -> None:
        errors = validate_campaign_data(data)
        if errors:
            raise ValidationError(message="Invalid campaign data", details={"errors": errors})

    async def _send_one(self, record: CampaignRecord, phone_number: str) -> RecipientResult:
        try:
            if record.content_type is ContentType.TEXT:
                sms = await self._provider.send_sms(phone_number, record.content)
                return RecipientResult(
                    phone_number=phone_number, status="success", message_sid=sms.message_sid
                )

            call = await self._provider.make_call(phone_number, self.voice_twiml_url(record.content))
            return RecipientResult(phone_number=phone_number, status="success", call_sid=call.call_sid)

        except TelephonyProviderError as e:
            logger.warning(
                "Campaign send failed",
                extra={"campaign_id": record.id, "to": phone_number, "error": str(e)},
            )
            return RecipientResult(phone_number=phone_number, status="failed", error=str(e))

    async def start_campaign(self, data: dict[str, Any]) -> CampaignResult:
        self._ensure_valid(data)
        record = self._new_record(data, CampaignStatus.IN_PROGRESS)
        self._store.add(record)

        logger.info(
            "Starting campaign",
            extra={
                "campaign_id": record.id,
                "campaign_name": record.name,
                "recipients": len(record.recipients),
            },
        )

        results: list[RecipientResult] = []
        for index, phone_number in enumerate(record.recipients):
            if index and self._send_delay_seconds:
                await asyncio.sleep(self._send_delay_seconds)
            results.append(await self._send_one(record, phone_number))

        successful = sum(1 for r in results if r.status == "success")
        failed = len(results) - successful
        self._store.set_status(record.id, CampaignStatus.COMPLETED)

        logger.info(
            "Campaign completed",
            extra={"campaign_id": record.id, "successful": successful, "failed": failed},
        )

        return CampaignResult(
            campaign_id=record.id,
            name=record.name,
            stats=CampaignStats(
                total_sent=len(record.recipients),
                successful=successful,
                failed=failed,
                pending=0,
            ),
            results=results,
        )

    def schedule_campaign(
        self,
        data: dict[str, Any],
        scheduled_time: datetime | None,
    ) -> ScheduledCampaignResponse:
        """Register a campaign for later dispatch; nothing is sent now."""
        self._ensure_valid(data)
        if scheduled_time is None:
            raise ValidationError(message="scheduledTime is required")

        record = self._new_record(data, CampaignStatus.SCHEDULED, scheduled_for=scheduled_time)
        self._store.add(record)

        logger.info(
            "Campaign scheduled",
            extra={"campaign_id": record.id, "scheduled_for": scheduled_time.isoformat()},
        )
        return ScheduledCampaignResponse(campaign_id=record.id, scheduled_for=scheduled_time)

    def get_campaign(self, campaign_id: str) -> CampaignRecord:
        record = self._store.get(campaign_id)
        if record is None:
            raise NotFoundError(message=f"Campaign {campaign_id} not found")
        return record

    def list_campaigns(self, limit: int = DEFAULT_LIST_LIMIT) -> list[CampaignRecord]:
        return self._store.recent(limit)

    def overview(self, window: int = 100) -> CampaignOverview:
        campaigns = self._store.recent(window)
        return CampaignOverview(
            total_campaigns=len(campaigns),
            active_campaigns=sum(1 for c in campaigns if c.status is CampaignStatus.IN_PROGRESS),
            completed_campaigns=sum(1 for c in campaigns if c.status is CampaignStatus.COMPLETED),
            scheduled_campaigns=sum(1 for c in campaigns if c.status is CampaignStatus.SCHEDULED),
        )


_store = CampaignStore()


def get_campaign_store() -> CampaignStore:
    return _store
