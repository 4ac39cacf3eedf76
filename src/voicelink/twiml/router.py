"""
FastAPI router for the TwiML IVR.

The telephony provider drives the call by fetching these documents:

    main-menu --Digits--> handle-menu --(1|2|3|invalid)--> main-menu
                                      --(4)--> <Record> --> save-voicemail --> hangup

Handlers are stateless. Whatever navigation state exists lives in the
provider's call leg; missing or unexpected input reprompts or ends the call
instead of returning an error status to the provider.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse

from voicelink.config import Settings, get_settings
from voicelink.shared.exceptions import PermissionDeniedError
from voicelink.shared.logging import get_logger
from voicelink.telephony.factory import get_telephony_provider
from voicelink.telephony.interface import TelephonyProvider
from voicelink.twiml.builder import TwimlResponse, to_absolute_url
from voicelink.twiml.menu import (
    ACKNOWLEDGE_ALERT_PATH,
    GREETING,
    HANDLE_MENU_PATH,
    INVALID_SELECTION,
    LOCAL_ALERTS,
    MAIN_MENU_PATH,
    MENU_PROMPT,
    NO_INPUT,
    REPEAT_PRICES_PATH,
    SAVE_VOICEMAIL_PATH,
    TRANSPORT_SCHEDULE,
    VOICEMAIL_FINISH_KEY,
    VOICEMAIL_MAX_SECONDS,
    MenuChoice,
    price_lines,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/twiml", tags=["twiml"])


def request_base_url(request: Request, settings: Settings) -> str:
    """Public base URL reachable by the provider.

    Priority: PUBLIC_BASE_URL setting, then X-Forwarded-Proto/-Host (tunnels,
    proxies), then the URL the request arrived on.
    """
    if settings.public_base_url:
        return settings.public_base_url

    xf_host = (request.headers.get("x-forwarded-host") or "").strip()
    if xf_host:
        xf_proto = (request.headers.get("x-forwarded-proto") or "").strip() or "https"
        return f"{xf_proto}://{xf_host}"

    return str(request.base_url).rstrip("/")


async def _form_params(request: Request) -> dict[str, str]:
    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


async def verify_twilio_signature(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    provider: Annotated[TelephonyProvider, Depends(get_telephony_provider)],
) -> None:
    """Reject provider callbacks whose X-Twilio-Signature does not match."""
    if not settings.validate_twilio_signature:
        return

    # Twilio signs the public URL it called, which may sit behind a proxy.
    url = request_base_url(request, settings) + request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"

    params = await _form_params(request)
    signature = request.headers.get("x-twilio-signature", "")
    if not provider.validate_webhook_signature(params, signature, url):
        logger.warning(
            "Rejected TwiML webhook with invalid signature",
            extra={"path": request.url.path, "call_sid": params.get("CallSid")},
        )
        raise PermissionDeniedError(message="Invalid signature")


SignedWebhook = Depends(verify_twilio_signature)


def _twiml(settings: Settings) -> TwimlResponse:
    return TwimlResponse(voice=settings.ivr_voice)


@router.get("/play")
async def play_audio(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    audio_url: Annotated[str | None, Query(alias="audioUrl")] = None,
) -> Response:
    """Play a hosted audio file."""
    if not audio_url:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "audioUrl is required"},
        )

    absolute_url = to_absolute_url(request_base_url(request, settings), audio_url)
    return _twiml(settings).play(absolute_url).to_response()


@router.api_route("/main-menu", methods=["GET", "POST"])
async def main_menu(settings: Annotated[Settings, Depends(get_settings)]) -> Response:
    """Main IVR menu.

    POST is accepted as well because <Redirect> re-requests with POST unless
    told otherwise.
    """
    return (
        _twiml(settings)
        .say(GREETING)
        .gather(action=HANDLE_MENU_PATH, prompt=MENU_PROMPT, num_digits=1, method="POST")
        .say(NO_INPUT)
        .redirect(MAIN_MENU_PATH)
        .to_response()
    )


@router.post("/handle-menu", dependencies=[SignedWebhook])
async def handle_menu(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    """Route the caller's main-menu digit to a branch."""
    params = await _form_params(request)
    choice = MenuChoice.from_digits(params.get("Digits"))

    logger.info(
        "IVR menu selection",
        extra={"call_sid": params.get("CallSid"), "choice": choice.name},
    )

    twiml = _twiml(settings)

    if choice is MenuChoice.MARKET_PRICES:
        twiml.say("You selected market prices.").say("The current market prices are:")
        for line in price_lines():
            twiml.say(line)

    elif choice is MenuChoice.TRANSPORT:
        twiml.say("You selected transport schedules.")
        for departure in TRANSPORT_SCHEDULE:
            twiml.say(departure.spoken())

    elif choice is MenuChoice.ALERTS:
        twiml.say("You selected local alerts.")
        for alert in LOCAL_ALERTS:
            twiml.say(alert)

    elif choice is MenuChoice.VOICEMAIL:
        twiml.say(
            "You selected voice message. Please record your message after the beep. "
            "Press the star key when finished."
        )
        twiml.record(
            action=SAVE_VOICEMAIL_PATH,
            method="POST",
            max_length=VOICEMAIL_MAX_SECONDS,
            finish_on_key=VOICEMAIL_FINISH_KEY,
        )
        twiml.say("Thank you for your message.")

    else:
        twiml.say(INVALID_SELECTION)

    return twiml.redirect(MAIN_MENU_PATH).to_response()


@router.post("/save-voicemail", dependencies=[SignedWebhook])
async def save_voicemail(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    """Acknowledge a finished <Record>."""
    params = await _form_params(request)

    logger.info(
        "Voicemail received",
        extra={
            "from": params.get("From"),
            "call_sid": params.get("CallSid"),
            "recording_url": params.get("RecordingUrl"),
            "recording_duration": params.get("RecordingDuration"),
        },
    )

    return (
        _twiml(settings)
        .say("Your voicemail has been saved. Thank you for contacting us.")
        .hangup()
        .to_response()
    )


@router.get("/alert-notification")
async def alert_notification(
    settings: Annotated[Settings, Depends(get_settings)],
    alert_type: Annotated[str, Query(alias="alertType")] = "general",
    message: Annotated[str, Query()] = "You have an important alert",
) -> Response:
    """Outbound alert call script."""
    return (
        _twiml(settings)
        .say(f"Important {alert_type} alert:")
        .say(message)
        .say("Press 1 to acknowledge, press 2 to hear this message again.")
        .gather(
            action=ACKNOWLEDGE_ALERT_PATH,
            prompt="Press any key to acknowledge and hang up.",
            num_digits=1,
            method="POST",
        )
        .hangup()
        .to_response()
    )


@router.post("/acknowledge-alert", dependencies=[SignedWebhook])
async def acknowledge_alert(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    params = await _form_params(request)

    logger.info(
        "Alert acknowledged",
        extra={
            "from": params.get("From"),
            "call_sid": params.get("CallSid"),
            "digits": params.get("Digits"),
        },
    )

    return (
        _twiml(settings)
        .say("Thank you. This alert has been acknowledged. Goodbye.")
        .hangup()
        .to_response()
    )


@router.get("/market-price-notification")
async def market_price_notification(
    settings: Annotated[Settings, Depends(get_settings)],
    rice: Annotated[str, Query()] = "50",
    wheat: Annotated[str, Query()] = "45",
    corn: Annotated[str, Query()] = "30",
) -> Response:
    """Outbound market price update call script."""
    twiml = _twiml(settings).say("Market Price Update.")
    for line in price_lines({"rice": rice, "wheat": wheat, "corn": corn}):
        twiml.say(line)

    return (
        twiml.say("Press 1 to repeat these prices, or press any other key to hang up.")
        .gather(action=REPEAT_PRICES_PATH, prompt="Please press a key.", num_digits=1, method="POST")
        .hangup()
        .to_response()
    )


@router.post("/repeat-prices", dependencies=[SignedWebhook])
async def repeat_prices(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> Response:
    params = await _form_params(request)
    twiml = _twiml(settings)

    if (params.get("Digits") or "").strip() == "1":
        for line in price_lines():
            twiml.say(line)
    else:
        twiml.say("Goodbye.")

    return twiml.hangup().to_response()


@router.get("/hangup")
async def hangup(settings: Annotated[Settings, Depends(get_settings)]) -> Response:
    return _twiml(settings).say("Thank you for calling. Goodbye.").hangup().to_response()
