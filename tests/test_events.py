import pytest
from pydantic import ValidationError

from scriptgen.events import (
    AXNode,
    ChangeEvent,
    ClickEvent,
    ScrollEvent,
    find_event_object,
    find_target,
    listener_kind,
    make_event,
)


def test_axnode_from_cdp_tolerates_missing_fields():
    node = AXNode.from_cdp({"nodeId": "7", "role": {"type": "role", "value": "button"}})
    assert node.name == ""
    assert node.role == "button"
    assert node.backend_id is None


@pytest.mark.parametrize("event_name,kind", [
    ("listener:click", "click"),
    ("listener:submit", "submit"),
    ("listener:change", "change"),
    ("listener:scroll", "scroll"),
    ("listener:keydown", None),
    ("instrumentation:timerFired", None),
    ("", None),
])
def test_listener_kind(event_name, kind):
    assert listener_kind({"data": {"eventName": event_name}}) == kind


def test_listener_kind_without_data():
    assert listener_kind({"reason": "other"}) is None


def test_find_event_object_matches_class_names():
    props = [
        {"name": "this", "value": {"className": "Window", "objectId": "w"}},
        {"name": "e", "value": {"className": "PointerEvent", "objectId": "ev"}},
    ]
    assert find_event_object(props, "click") == "ev"
    assert find_event_object(props, "submit") is None


def test_find_target():
    assert find_target([{"name": "target", "value": {"objectId": "t"}}]) == "t"
    assert find_target([{"name": "currentTarget", "value": {"objectId": "c"}}]) is None


def test_make_event_builds_the_matching_variant():
    assert isinstance(make_event("click", "t"), ClickEvent)
    assert isinstance(make_event("scroll", None), ScrollEvent)
    change = make_event("change", "t", 42)
    assert isinstance(change, ChangeEvent)
    assert change.value == "42"


def test_make_event_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        make_event("keydown", "t")
