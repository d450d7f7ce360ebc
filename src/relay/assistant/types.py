"""Assistant API payload types and reply decoding.

The server's message endpoint has answered in several shapes over time:

- ``{"info": {...}, "parts": [...]}`` (current)
- a bare list of parts
- a flat object carrying ``text`` directly

All of them are normalized here into a list of :class:`ReplyPart` so callers
never inspect raw payloads. Supporting a new shape means adding a branch to
:func:`_iter_raw_parts`; supporting a new part type means adding an entry to
``_PART_KINDS``.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

PartKind = Literal["text", "reasoning", "unknown"]

_PART_KINDS: dict[str, PartKind] = {
    "text": "text",
    "reasoning": "reasoning",
}

UNEXPECTED_FORMAT_MESSAGE = "_The assistant returned an unexpected response format._"
NO_CONTENT_MESSAGE = "_The assistant returned no text content._"
THINKING_HEADER = "> 💭 *Thinking...*"


@dataclass
class Conversation:
    """A conversation on the assistant server."""

    id: str
    title: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Conversation":
        time = data.get("time") if isinstance(data.get("time"), dict) else {}
        return cls(
            id=str(data["id"]),
            title=data.get("title"),
            created_at=data.get("createdAt") or _stringify(time.get("created")),
            updated_at=data.get("updatedAt") or _stringify(time.get("updated")),
        )


@dataclass
class ReplyPart:
    """One decoded piece of an assistant reply."""

    kind: PartKind
    text: str = ""
    raw_type: str | None = None


@dataclass
class DecodedReply:
    """Assistant reply normalized into typed parts."""

    parts: list[ReplyPart] = field(default_factory=list)
    recognized: bool = True

    @property
    def text_parts(self) -> list[str]:
        return [p.text for p in self.parts if p.kind == "text" and p.text]

    @property
    def reasoning_parts(self) -> list[str]:
        return [p.text for p in self.parts if p.kind == "reasoning" and p.text]


def _stringify(value: Any) -> str | None:
    return None if value is None else str(value)


def _iter_raw_parts(payload: Any) -> list[Any] | None:
    """Return the raw part list for a payload, or None if unrecognized."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        parts = payload.get("parts")
        if isinstance(parts, list):
            return parts
        if isinstance(payload.get("text"), str):
            return [{"type": payload.get("type", "text"), "text": payload["text"]}]
    return None


def decode_part(raw: Any) -> ReplyPart:
    """Decode a single raw part into a tagged ReplyPart."""
    if not isinstance(raw, dict):
        return ReplyPart(kind="unknown")
    raw_type = raw.get("type")
    text = raw.get("text")
    kind = _PART_KINDS.get(raw_type, "unknown") if isinstance(raw_type, str) else "unknown"
    return ReplyPart(
        kind=kind,
        text=text if isinstance(text, str) else "",
        raw_type=raw_type if isinstance(raw_type, str) else None,
    )


def decode_reply(payload: Any) -> DecodedReply:
    """Normalize any known reply shape into a DecodedReply."""
    raw_parts = _iter_raw_parts(payload)
    if raw_parts is None:
        return DecodedReply(recognized=False)
    return DecodedReply(parts=[decode_part(raw) for raw in raw_parts])


def render_reply(reply: DecodedReply) -> str:
    """Render a decoded reply as chat text.

    Reasoning is shown as a quote block ahead of the answer; text parts are
    joined with blank lines.
    """
    if not reply.recognized:
        return UNEXPECTED_FORMAT_MESSAGE

    output: list[str] = []
    reasoning = reply.reasoning_parts
    text = reply.text_parts

    if reasoning:
        output.append(THINKING_HEADER)
        lines = "\n".join(reasoning).split("\n")
        output.append("\n".join(f"> {line}" for line in lines))
        output.append("")

    if text:
        output.append("\n\n".join(text))
    elif not reasoning:
        output.append(NO_CONTENT_MESSAGE)

    return "\n".join(output)
