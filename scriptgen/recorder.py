# scriptgen/recorder.py
import asyncio
import os
import signal
import sys
from typing import Optional

from playwright.async_api import Error as PWError, Frame, async_playwright
from pydantic import BaseModel

from config import (
    CAPTURE_SCROLL,
    HEADLESS,
    RUNTIME_MODULE,
    SCROLL_SETTLE_SEC,
    SNAPSHOT_DIR,
    STOP_HOTKEY,
    VIEWPORT,
)
from scriptgen.bridge import EventBridge
from scriptgen.channel import DebugChannel
from scriptgen.errors import ConfigurationError, ProtocolCommunicationFailure
from scriptgen.hotkey import StopSignal, attach_hotkey
from scriptgen.session import RecordingSession
from scriptgen.writer import ScriptStream, ScriptWriter


class RecorderOptions(BaseModel):
    save_dom: bool = False
    ws_endpoint: Optional[str] = None
    capture_scroll: bool = CAPTURE_SCROLL
    scroll_settle_sec: float = SCROLL_SETTLE_SEC
    snapshot_dir: str = SNAPSHOT_DIR
    headless: bool = HEADLESS
    stop_hotkey: Optional[str] = STOP_HOTKEY


def normalize_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ConfigurationError("url required.")
    if not url.startswith("http"):
        url = "https://" + url
    return url


def check_snapshot_dir(path: str):
    if not os.path.isdir(path) or not os.access(path, os.W_OK):
        raise ConfigurationError(f"cannot save DOM snapshots to {path}: not a writable directory")


async def _open_page(pw, options: RecorderOptions):
    if options.ws_endpoint:
        browser = await pw.chromium.connect_over_cdp(options.ws_endpoint)
        context = browser.contexts[0] if browser.contexts else await browser.new_context()
        page = context.pages[0] if context.pages else await context.new_page()
    else:
        browser = await pw.chromium.launch(headless=options.headless, args=["--start-maximized"])
        if VIEWPORT:
            context = await browser.new_context(viewport=VIEWPORT)
        else:
            context = await browser.new_context(no_viewport=True)
        page = await context.new_page()
    return browser, page


def _install_interrupt(session: RecordingSession):
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, lambda: asyncio.create_task(session.close()))
    except (NotImplementedError, RuntimeError):
        # No loop signal handlers on Windows; STOP_HOTKEY covers stopping there.
        pass


async def start(url: str, options: Optional[RecorderOptions] = None) -> ScriptStream:
    """Open `url` in a browser and stream a replay script of what the user does."""
    options = options or RecorderOptions()
    url = normalize_url(url)
    if options.save_dom:
        check_snapshot_dir(options.snapshot_dir)

    stream = ScriptStream()
    writer = ScriptWriter(stream, RUNTIME_MODULE)

    pw = await async_playwright().start()
    try:
        browser, page = await _open_page(pw, options)
        channel = DebugChannel(await page.context.new_cdp_session(page))
    except PWError as e:
        await pw.stop()
        raise ProtocolCommunicationFailure("Browser.connect", e.message) from e

    async def shutdown():
        # Only a browser we launched is ours to close.
        if not options.ws_endpoint:
            try:
                await browser.close()
            except Exception as e:
                print(f"   [rec] browser close failed: {e}", file=sys.stderr)
        await pw.stop()

    session = RecordingSession(
        channel,
        writer,
        save_dom=options.save_dom,
        snapshot_dir=options.snapshot_dir,
        scroll_settle_sec=options.scroll_settle_sec,
        on_close=shutdown,
    )
    bridge = EventBridge(channel, capture_scroll=options.capture_scroll, on_fatal=session.fail)
    session.attach(bridge)
    await bridge.install(page)

    async def _arm():
        try:
            await bridge.arm()
        except ProtocolCommunicationFailure as e:
            session.fail(e)

    page.on("domcontentloaded", lambda _: asyncio.create_task(_arm()))

    writer.open(url)
    print(f"⏺  Recording {url}", file=sys.stderr)
    try:
        await page.goto(url)
    except PWError as e:
        err = ProtocolCommunicationFailure("Page.navigate", e.message)
        session.fail(err)
        await session.teardown
        raise err from e

    def _on_frame(frame: Frame):
        if frame.parent_frame is None:
            session.on_navigated(frame.url)

    page.on("framenavigated", _on_frame)
    page.on("close", lambda _: asyncio.create_task(session.close()))
    _install_interrupt(session)
    if options.stop_hotkey:
        attach_hotkey(options.stop_hotkey, StopSignal(
            asyncio.get_running_loop(), lambda: asyncio.create_task(session.close())
        ))
        print(f"   [rec] hotkey to stop: {options.stop_hotkey}", file=sys.stderr)
    return stream
