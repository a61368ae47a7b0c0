# scriptgen/session.py
import asyncio
import os
import sys
import time
from typing import Awaitable, Callable, List, Optional

from scriptgen.bridge import EventBridge, Release
from scriptgen.channel import DebugChannel
from scriptgen.errors import ProtocolCommunicationFailure, SelectorResolutionFailure
from scriptgen.events import ChangeEvent, ClickEvent, ScrollEvent, SubmitEvent
from scriptgen.selectors import SelectorResolver
from scriptgen.writer import ScriptWriter

SCROLL_HEIGHT_JS = "document.scrollingElement.scrollHeight"

IDLE = "idle"
RESOLVING = "resolving"
EMITTING = "emitting"
CLOSED = "closed"


def snapshot_name(directory: str, timestamp: Optional[int] = None) -> str:
    """`<ts>.html`, then `<ts>_1.html`, `<ts>_2.html`... until the name is free."""
    ts = int(time.time()) if timestamp is None else timestamp
    path = os.path.join(directory, f"{ts}.html")
    n = 1
    while os.path.exists(path):
        path = os.path.join(directory, f"{ts}_{n}.html")
        n += 1
    return path


class RecordingSession:
    """Translates captured events into script lines for one observed page."""

    def __init__(self, channel: DebugChannel, writer: ScriptWriter, *,
                 save_dom: bool = False, snapshot_dir: str = ".",
                 scroll_settle_sec: float = 1.0,
                 on_close: Optional[Callable[[], Awaitable[None]]] = None):
        self.channel = channel
        self.writer = writer
        self.resolver = SelectorResolver(channel)
        self.save_dom = save_dom
        self.snapshot_dir = snapshot_dir
        self.scroll_settle_sec = scroll_settle_sec
        self.on_close = on_close
        self.state = IDLE
        self.scroll_check: Optional[asyncio.Task] = None
        self.snapshots: List[str] = []
        self.teardown: Optional[asyncio.Task] = None
        self._close_lock = asyncio.Lock()

    @property
    def closed(self) -> bool:
        return self.state == CLOSED

    def _enter(self, state: str):
        if self.state != CLOSED:
            self.state = state

    def attach(self, bridge: EventBridge):
        bridge.subscribe("click", self.on_click)
        bridge.subscribe("submit", self.on_submit)
        bridge.subscribe("change", self.on_change)
        bridge.subscribe("scroll", self.on_scroll)

    async def _selector_for(self, target: Optional[str]) -> Optional[str]:
        self._enter(RESOLVING)
        try:
            return await self.resolver.require(target)
        except SelectorResolutionFailure:
            print("   [rec] failed to generate selector", file=sys.stderr)
            return None
        finally:
            self._enter(IDLE)

    def _emit(self, write: Callable[..., None], *args):
        if self.closed:
            return
        self._enter(EMITTING)
        try:
            write(*args)
        finally:
            self._enter(IDLE)

    # handlers

    async def on_click(self, event: ClickEvent) -> Release:
        # The submit event that follows represents this action.
        if await self.resolver.is_submit_button(event.target):
            return Release.SKIP
        selector = await self._selector_for(event.target)
        if selector:
            await self.save_dom_if_needed()
            self._emit(self.writer.click, selector)
        return Release.RESUME

    async def on_submit(self, event: SubmitEvent) -> Release:
        selector = await self._selector_for(event.target)
        if selector:
            self._emit(self.writer.submit, selector)
        return Release.RESUME

    async def on_change(self, event: ChangeEvent) -> Release:
        selector = await self._selector_for(event.target)
        if selector:
            self._emit(self.writer.type, selector, event.value)
        return Release.RESUME

    async def on_scroll(self, event: ScrollEvent) -> Release:
        if self.scroll_check is not None and not self.scroll_check.done():
            return Release.RESUME
        before = await self.channel.evaluate(SCROLL_HEIGHT_JS)
        self.scroll_check = asyncio.create_task(self._check_scroll(before))
        return Release.RESUME

    async def _check_scroll(self, before) -> bool:
        await asyncio.sleep(self.scroll_settle_sec)
        if self.closed:
            return False
        try:
            after = await self.channel.evaluate(SCROLL_HEIGHT_JS)
        except ProtocolCommunicationFailure as e:
            print(f"   [rec] debugger channel failed: {e}", file=sys.stderr)
            self.fail(e)
            return False
        grew = after is not None and before is not None and after > before
        if grew:
            self._emit(self.writer.scroll_to_bottom)
        return grew

    def on_navigated(self, url: str):
        self._emit(self.writer.expect_url, url)

    # DOM snapshots

    async def save_dom_if_needed(self) -> Optional[str]:
        if not self.save_dom:
            return None
        doc = await self.channel.send("DOM.getDocument", {"depth": -1, "pierce": True})
        resp = await self.channel.send("DOM.getOuterHTML", {"nodeId": doc["root"]["nodeId"]})
        path = snapshot_name(self.snapshot_dir)
        with open(path, "w", encoding="utf-8") as f:
            f.write(resp.get("outerHTML", ""))
        self.snapshots.append(path)
        self._emit(self.writer.comment, f"saved DOM to {os.path.basename(path)}")
        return path

    # lifecycle

    async def close(self):
        """Finalize once: closing line, end of stream, then browser teardown."""
        async with self._close_lock:
            if self.closed:
                return
            self.state = CLOSED
            self._cancel_scroll_check()
            self.writer.close()
        await self._teardown()

    def fail(self, exc: BaseException):
        """Fatal channel error: end the stream without a closing line."""
        if self.closed:
            return
        self.state = CLOSED
        self._cancel_scroll_check()
        self.writer.stream.fail(exc)
        self.teardown = asyncio.create_task(self._teardown())

    def _cancel_scroll_check(self):
        task = self.scroll_check
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _teardown(self):
        try:
            if self.on_close:
                await self.on_close()
        finally:
            self.writer.stream.release()
