from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from scriptgen.channel import DebugChannel
from scriptgen.selectors import CSS_PATH_JS, GET_PARENT_JS, IS_SUBMIT_BUTTON_JS
from scriptgen.writer import ScriptStream, ScriptWriter


def ax(name: str, role: str, backend_id: int) -> Dict[str, Any]:
    return {
        "nodeId": str(backend_id),
        "ignored": False,
        "name": {"type": "computedString", "value": name},
        "role": {"type": "role", "value": role},
        "backendDOMNodeId": backend_id,
    }


class FakeCDP:
    """Scripted stand-in for a Playwright CDPSession."""

    def __init__(self):
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.routes: Dict[str, Any] = {}
        self.listeners: Dict[str, List[Callable]] = {}

    async def send(self, method: str, params: Optional[Dict[str, Any]] = None):
        params = params or {}
        self.calls.append((method, params))
        route = self.routes.get(method)
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(params)
        return route if route is not None else {}

    def on(self, event: str, handler: Callable):
        self.listeners.setdefault(event, []).append(handler)

    def methods(self) -> List[str]:
        return [m for m, _ in self.calls]


class FakePage:
    """A tiny page model answering the DevTools calls the recorder makes."""

    def __init__(self, cdp: FakeCDP):
        self.cdp = cdp
        self.subtrees: Dict[str, List[Dict[str, Any]]] = {}
        self.parents: Dict[str, str] = {}
        self.document: List[Dict[str, Any]] = []
        self.css: Dict[str, str] = {}
        self.submit_buttons = set()
        self.values: Dict[str, Any] = {}
        self.properties: Dict[str, List[Dict[str, Any]]] = {}
        self.scroll_heights: List[int] = []
        self.outer_html = "<html><body></body></html>"
        cdp.routes.update({
            "Accessibility.queryAXTree": self._query_ax,
            "DOM.getDocument": lambda p: {"root": {"nodeId": 1, "backendNodeId": 100}},
            "DOM.getOuterHTML": lambda p: {"outerHTML": self.outer_html},
            "Runtime.callFunctionOn": self._call_on,
            "Runtime.getProperties": lambda p: {"result": self.properties.get(p["objectId"], [])},
            "Runtime.evaluate": self._evaluate,
        })

    def node(self, object_id: str, subtree: List[Dict[str, Any]], parent: Optional[str] = None):
        self.subtrees[object_id] = subtree
        if parent:
            self.parents[object_id] = parent
        return self

    def _query_ax(self, params):
        if "objectId" in params:
            return {"nodes": self.subtrees.get(params["objectId"], [])}
        nodes = [
            n for n in self.document
            if n["name"]["value"] == params.get("accessibleName")
            and ("role" not in params or n["role"]["value"] == params["role"])
        ]
        return {"nodes": nodes}

    def _call_on(self, params):
        fn, oid = params["functionDeclaration"], params["objectId"]
        if fn == GET_PARENT_JS:
            parent = self.parents.get(oid)
            if parent:
                return {"result": {"type": "object", "objectId": parent}}
            return {"result": {"type": "object", "subtype": "null", "value": None}}
        if fn == CSS_PATH_JS:
            return {"result": {"type": "string", "value": self.css.get(oid)}}
        if fn == IS_SUBMIT_BUTTON_JS:
            return {"result": {"type": "boolean", "value": oid in self.submit_buttons}}
        return {"result": {"type": "string", "value": self.values.get(oid)}}

    def _evaluate(self, params):
        height = self.scroll_heights.pop(0) if self.scroll_heights else None
        return {"result": {"type": "number", "value": height}}


@pytest.fixture
def cdp():
    return FakeCDP()


@pytest.fixture
def page(cdp):
    return FakePage(cdp)


@pytest.fixture
def channel(cdp):
    return DebugChannel(cdp)


@pytest.fixture
def stream():
    return ScriptStream()


@pytest.fixture
def writer(stream):
    return ScriptWriter(stream, "@puppeteer/recorder")


def drain(stream: ScriptStream) -> List[str]:
    """Lines pushed so far, without waiting for the end marker."""
    lines = []
    while not stream._queue.empty():
        chunk = stream._queue.get_nowait()
        if chunk is not None:
            lines.append(chunk.rstrip("\n"))
    return lines
