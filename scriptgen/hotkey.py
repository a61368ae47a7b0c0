# scriptgen/hotkey.py
import asyncio
import threading
from typing import Callable

import keyboard  # requires admin on Windows sometimes


class StopSignal:
    """Thread-safe flag that hands the stop request to the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, on_stop: Callable[[], None]):
        self._flag = False
        self._lock = threading.Lock()
        self._loop = loop
        self._on_stop = on_stop

    @property
    def triggered(self) -> bool:
        with self._lock:
            return self._flag

    def trigger(self):
        with self._lock:
            if self._flag:
                return
            self._flag = True
        self._loop.call_soon_threadsafe(self._on_stop)


def attach_hotkey(hotkey: str, signal: StopSignal):
    def _cb():
        signal.trigger()

    t = threading.Thread(
        target=lambda: keyboard.add_hotkey(hotkey, _cb), daemon=True
    )
    t.start()
    return t
