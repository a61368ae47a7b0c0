# scriptgen/bridge.py
import asyncio
import contextlib
import sys
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from scriptgen.channel import DebugChannel
from scriptgen.errors import ProtocolCommunicationFailure
from scriptgen.events import (
    BaseEvent,
    find_event_object,
    find_target,
    listener_kind,
    make_event,
)

# Passive capturing listeners: guarantees a listener exists for every event
# type we break on, even on pages that never register one themselves.
PASSIVE_LISTENERS_JS = """
(() => {
  window.addEventListener("change", (event) => {}, true);
  window.addEventListener("click", (event) => {}, true);
  window.addEventListener("submit", (event) => {}, true);
  window.addEventListener("scroll", () => {}, true);
})();
"""

READ_VALUE_JS = "function() { return this.value }"


class Release(Enum):
    SKIP = "skip"
    RESUME = "resume"


Handler = Callable[[BaseEvent], Awaitable[Optional[Release]]]


class EventBridge:
    """Turns listener breakpoint pauses into typed events, one at a time.

    Handlers are subscribed per event kind and tried in priority order until
    one returns a Release; the bridge then releases the pause exactly once.
    A pause nobody claims is skipped.
    """

    def __init__(self, channel: DebugChannel, capture_scroll: bool = False,
                 on_fatal: Optional[Callable[[BaseException], Any]] = None):
        self.channel = channel
        self.capture_scroll = capture_scroll
        self.on_fatal = on_fatal
        self._handlers: Dict[str, List[Tuple[int, int, Handler]]] = {}
        self._seq = 0

    def subscribe(self, kind: str, handler: Handler, priority: int = 0) -> Callable[[], None]:
        self._seq += 1
        entry = (-priority, self._seq, handler)
        self._handlers.setdefault(kind, []).append(entry)
        self._handlers[kind].sort(key=lambda e: (e[0], e[1]))

        def unsubscribe():
            try:
                self._handlers[kind].remove(entry)
            except ValueError:
                pass
        return unsubscribe

    # setup

    async def install(self, page):
        """Register the in-page listeners and the pause hook for this page."""
        await page.add_init_script(PASSIVE_LISTENERS_JS)
        self.channel.on("Debugger.paused", lambda ev: asyncio.create_task(self._guarded(ev)))

    async def arm(self):
        """Enable the debugger and set listener breakpoints (once per load)."""
        await self.channel.send("Debugger.enable")
        kinds = ["click", "change", "submit"]
        if self.capture_scroll:
            kinds.append("scroll")
        for kind in kinds:
            await self.channel.send("DOMDebugger.setEventListenerBreakpoint", {"eventName": kind})

    # pause protocol

    async def skip(self):
        await self.channel.send("Debugger.resume", {"terminateOnResume": False})

    async def resume(self):
        await self.channel.send("Debugger.setSkipAllPauses", {"skip": True})
        await self.skip()
        await self.channel.send("Debugger.setSkipAllPauses", {"skip": False})

    async def classify(self, paused: Dict[str, Any]) -> Optional[BaseEvent]:
        kind = listener_kind(paused)
        if kind is None:
            return None
        if kind == "scroll":
            return make_event(kind, None)
        frames = paused.get("callFrames") or []
        if not frames or not frames[0].get("scopeChain"):
            return None
        scope = frames[0]["scopeChain"][0].get("object") or {}
        if not scope.get("objectId"):
            return None
        event_id = find_event_object(await self.channel.properties(scope["objectId"]), kind)
        if not event_id:
            return None
        target = find_target(await self.channel.properties(event_id))
        value = None
        if kind == "change" and target:
            value = (await self.channel.call_on(target, READ_VALUE_JS)).get("value")
        return make_event(kind, target, value)

    async def handle_pause(self, paused: Dict[str, Any]):
        release = None
        try:
            event = await self.classify(paused)
            if event is not None:
                for _, _, handler in list(self._handlers.get(event.kind, [])):
                    release = await handler(event)
                    if release is not None:
                        break
        except ProtocolCommunicationFailure:
            # Release the page if the channel still answers.
            with contextlib.suppress(ProtocolCommunicationFailure):
                await self.skip()
            raise
        except Exception as e:
            print(f"   [rec] pause handler failed: {e!r}", file=sys.stderr)
            release = None
        if release is Release.RESUME:
            await self.resume()
        else:
            await self.skip()

    async def _guarded(self, paused: Dict[str, Any]):
        try:
            await self.handle_pause(paused)
        except ProtocolCommunicationFailure as e:
            print(f"   [rec] debugger channel failed: {e}", file=sys.stderr)
            if self.on_fatal:
                self.on_fatal(e)
