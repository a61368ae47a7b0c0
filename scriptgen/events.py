# scriptgen/events.py
from typing import Any, Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

EventKind = Literal["click", "submit", "change", "scroll"]

# Debugger.paused reports listener breakpoints as "listener:<event>"
LISTENER_PREFIX = "listener:"

# Event subclasses that identify the event object in the listener's local scope
EVENT_CLASS_NAMES: Dict[str, List[str]] = {
    "click": ["MouseEvent", "PointerEvent"],
    "submit": ["SubmitEvent"],
    "change": ["Event"],
    "scroll": ["Event"],
}


class AXNode(BaseModel):
    name: str = ""
    role: str = ""
    backend_id: Optional[int] = None

    @classmethod
    def from_cdp(cls, raw: Dict[str, Any]) -> "AXNode":
        return cls(
            name=str((raw.get("name") or {}).get("value") or ""),
            role=str((raw.get("role") or {}).get("value") or ""),
            backend_id=raw.get("backendDOMNodeId"),
        )


class BaseEvent(BaseModel):
    kind: EventKind
    # Runtime objectId of the event target; only valid while the page is paused
    target: Optional[str] = None


class ClickEvent(BaseEvent):
    kind: Literal["click"] = "click"


class SubmitEvent(BaseEvent):
    kind: Literal["submit"] = "submit"


class ChangeEvent(BaseEvent):
    kind: Literal["change"] = "change"
    value: Optional[str] = None


class ScrollEvent(BaseEvent):
    kind: Literal["scroll"] = "scroll"


CapturedEvent = Annotated[
    Union[ClickEvent, SubmitEvent, ChangeEvent, ScrollEvent],
    Field(discriminator="kind"),
]


def listener_kind(paused: Dict[str, Any]) -> Optional[str]:
    """Map a Debugger.paused payload to one of the recognized event kinds."""
    name = (paused.get("data") or {}).get("eventName") or ""
    if not name.startswith(LISTENER_PREFIX):
        return None
    kind = name[len(LISTENER_PREFIX):]
    return kind if kind in EVENT_CLASS_NAMES else None


def find_event_object(scope_props: List[Dict[str, Any]], kind: str) -> Optional[str]:
    wanted = EVENT_CLASS_NAMES[kind]
    for prop in scope_props:
        value = prop.get("value") or {}
        if value.get("className") in wanted and value.get("objectId"):
            return value["objectId"]
    return None


def find_target(event_props: List[Dict[str, Any]]) -> Optional[str]:
    for prop in event_props:
        if prop.get("name") == "target":
            return (prop.get("value") or {}).get("objectId")
    return None


_CAPTURED = TypeAdapter(CapturedEvent)


def make_event(kind: str, target: Optional[str], value: Any = None) -> BaseEvent:
    data: Dict[str, Any] = {"kind": kind, "target": target}
    if kind == "change" and value is not None:
        data["value"] = str(value)
    return _CAPTURED.validate_python(data)
