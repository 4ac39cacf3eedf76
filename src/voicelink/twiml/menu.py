"""
IVR menu content.

The tree is fixed: main menu -> four leaf branches -> back to the main menu.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

MAIN_MENU_PATH = "/api/twiml/main-menu"
HANDLE_MENU_PATH = "/api/twiml/handle-menu"
SAVE_VOICEMAIL_PATH = "/api/twiml/save-voicemail"
ACKNOWLEDGE_ALERT_PATH = "/api/twiml/acknowledge-alert"
REPEAT_PRICES_PATH = "/api/twiml/repeat-prices"

GREETING = "Welcome to Voice Link."
MENU_PROMPT = (
    "Press 1 for market prices. "
    "Press 2 for transport schedules. "
    "Press 3 for local alerts. "
    "Press 4 to leave a voice message."
)
NO_INPUT = "We did not receive your input. Please try again."
INVALID_SELECTION = "Invalid selection. Please try again."

VOICEMAIL_MAX_SECONDS = 60
VOICEMAIL_FINISH_KEY = "*"


class MenuChoice(str, Enum):
    """Main menu branches keyed by the DTMF digit that selects them."""

    MARKET_PRICES = "1"
    TRANSPORT = "2"
    ALERTS = "3"
    VOICEMAIL = "4"
    INVALID = ""

    @classmethod
    def from_digits(cls, digits: str | None) -> "MenuChoice":
        value = (digits or "").strip()
        if not value:
            return cls.INVALID
        try:
            return cls(value)
        except ValueError:
            return cls.INVALID


@dataclass(frozen=True)
class Commodity:
    name: str
    price: str
    unit: str = "rupees per kilogram"

    def spoken(self) -> str:
        return f"{self.name}: {self.price} {self.unit}."


@dataclass(frozen=True)
class Departure:
    destination: str
    time: str

    def spoken(self) -> str:
        return f"The next bus to {self.destination} departs at {self.time}."


DEFAULT_PRICES: dict[str, str] = {"rice": "50", "wheat": "45", "corn": "30"}

TRANSPORT_SCHEDULE: tuple[Departure, ...] = (
    Departure("Kathmandu", "10 AM"),
    Departure("Pokhara", "2 PM"),
)

LOCAL_ALERTS: tuple[str, ...] = (
    "There is a heavy rainfall alert in effect until 6 PM today.",
)


def price_lines(prices: dict[str, str] | None = None) -> list[str]:
    """Spoken price lines, in rice/wheat/corn order, falling back to defaults."""
    merged = {**DEFAULT_PRICES, **{k: v for k, v in (prices or {}).items() if v}}
    return [Commodity(name.capitalize(), merged[name]).spoken() for name in DEFAULT_PRICES]
