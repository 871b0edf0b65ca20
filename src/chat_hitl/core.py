"""Core data models for chat-hitl."""

import time
from dataclasses import dataclass, field
from typing import Optional

ATTACHMENT_KINDS = ("image", "file", "code")


@dataclass
class Attachment:
    """A named piece of supplementary content sent with a resolution."""

    kind: str  # "image" | "file" | "code"
    name: str
    content: str  # data URI / base64 for images, text for files and code
    mime_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "Attachment":
        kind = data.get("type") or data.get("kind") or "file"
        if kind not in ATTACHMENT_KINDS:
            raise ValueError(f"Unknown attachment type: {kind}")
        return cls(
            kind=kind,
            name=str(data.get("name") or ""),
            content=str(data.get("content") or ""),
            mime_type=data.get("mimeType"),
        )

    def to_dict(self) -> dict:
        data = {"type": self.kind, "name": self.name, "content": self.content}
        if self.mime_type:
            data["mimeType"] = self.mime_type
        return data


@dataclass(frozen=True)
class DialogRequest:
    """One decision point raised by the agent."""

    id: str
    reason: str
    workspace: str
    sequence_number: int
    created: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, data: dict) -> "DialogRequest":
        return cls(
            id=str(data["id"]),
            reason=str(data.get("reason") or ""),
            workspace=str(data.get("workspace") or ""),
            sequence_number=int(data.get("sequenceNumber") or 0),
            created=float(data.get("created") or time.time()),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reason": self.reason,
            "workspace": self.workspace,
            "sequenceNumber": self.sequence_number,
            "created": self.created,
        }


@dataclass
class DialogResolution:
    """The human decision for a DialogRequest."""

    should_continue: bool
    user_input: str = ""
    attachments: list[Attachment] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "DialogResolution":
        return cls(
            should_continue=bool(data.get("shouldContinue")),
            user_input=str(data.get("userInput") or ""),
            attachments=[Attachment.from_dict(a) for a in data.get("attachments") or []],
        )

    def to_dict(self) -> dict:
        return {
            "shouldContinue": self.should_continue,
            "userInput": self.user_input,
            "attachments": [a.to_dict() for a in self.attachments],
        }


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable record of a resolved dialog."""

    timestamp: float
    reason: str
    user_input: str
    continued: bool

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "reason": self.reason,
            "userInput": self.user_input,
            "continued": self.continued,
        }
