"""
TwiML document construction.

Documents are assembled from small verb snippets and serialized as

    <?xml version="1.0" encoding="UTF-8"?>
    <Response>
      ...verbs...
    </Response>

Every piece of text and every attribute value goes through ``escape_xml``
so caller-supplied query/form values can never break out of the document.
"""

from __future__ import annotations

from fastapi import Response

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
TWIML_MEDIA_TYPE = "text/xml"


def escape_xml(value: object) -> str:
    # "&" must go first so the entities produced below are not re-escaped.
    return (
        str(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def to_absolute_url(base_url: str, url: str) -> str:
    """Resolve ``url`` against ``base_url`` unless it is already absolute."""
    if url.startswith("http://") or url.startswith("https://"):
        return url
    base = base_url.rstrip("/")
    if url.startswith("/"):
        return f"{base}{url}"
    return f"{base}/{url}"


def _attrs(**attrs: object) -> str:
    parts = [f'{name}="{escape_xml(value)}"' for name, value in attrs.items() if value is not None]
    return (" " + " ".join(parts)) if parts else ""


class TwimlResponse:
    """Ordered list of TwiML verbs rendered into a single ``<Response>``."""

    def __init__(self, voice: str = "alice") -> None:
        self.voice = voice
        self._verbs: list[str] = []

    def say(self, text: str) -> "TwimlResponse":
        self._verbs.append(f"<Say{_attrs(voice=self.voice)}>{escape_xml(text)}</Say>")
        return self

    def play(self, url: str) -> "TwimlResponse":
        self._verbs.append(f"<Play>{escape_xml(url)}</Play>")
        return self

    def gather(
        self,
        action: str,
        prompt: str,
        num_digits: int = 1,
        method: str = "POST",
    ) -> "TwimlResponse":
        inner = f"<Say{_attrs(voice=self.voice)}>{escape_xml(prompt)}</Say>"
        self._verbs.append(
            f"<Gather{_attrs(numDigits=num_digits, action=action, method=method)}>"
            f"\n    {inner}\n  </Gather>"
        )
        return self

    def record(
        self,
        action: str,
        max_length: int = 60,
        finish_on_key: str = "*",
        method: str = "POST",
    ) -> "TwimlResponse":
        self._verbs.append(
            f"<Record{_attrs(action=action, method=method, maxLength=max_length, finishOnKey=finish_on_key)} />"
        )
        return self

    def redirect(self, url: str, method: str | None = None) -> "TwimlResponse":
        self._verbs.append(f"<Redirect{_attrs(method=method)}>{escape_xml(url)}</Redirect>")
        return self

    def hangup(self) -> "TwimlResponse":
        self._verbs.append("<Hangup/>")
        return self

    @property
    def verbs(self) -> list[str]:
        return list(self._verbs)

    def to_xml(self) -> str:
        body = "".join(f"\n  {verb}" for verb in self._verbs)
        return f"{XML_DECLARATION}\n<Response>{body}\n</Response>"

    def __str__(self) -> str:
        return self.to_xml()

    def to_response(self) -> Response:
        return Response(content=self.to_xml(), media_type=TWIML_MEDIA_TYPE)
