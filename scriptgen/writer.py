# scriptgen/writer.py
import asyncio
import re
from typing import Any, Optional, TextIO

import orjson

INDENT = "  "


_SURROGATE = re.compile(r"([\ud800-\udfff])")


def quote(value: Any) -> str:
    """Render a captured literal as a JS string literal (JSON string syntax)."""
    text = "" if value is None else str(value)
    try:
        return orjson.dumps(text).decode("utf-8")
    except orjson.JSONEncodeError:
        # Lone surrogates are not valid UTF-8; write them as \uXXXX escapes.
        body = "".join(
            f"\\u{ord(part):04x}" if _SURROGATE.fullmatch(part)
            else orjson.dumps(part).decode("utf-8")[1:-1]
            for part in _SURROGATE.split(text)
        )
        return f'"{body}"'


class StreamClosed(RuntimeError):
    pass


class ScriptStream:
    """Readable-like text stream; `push(None)` ends it exactly once."""

    def __init__(self):
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self.ended = False
        self.error: Optional[BaseException] = None
        self._released = asyncio.Event()

    def push(self, chunk: Optional[str]):
        if self.ended:
            raise StreamClosed("push after end of stream")
        if chunk is None:
            self.ended = True
        self._queue.put_nowait(chunk)

    def fail(self, exc: BaseException):
        if self.ended:
            return
        self.error = exc
        self.push(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        chunk = await self._queue.get()
        if chunk is None:
            if self.error is not None:
                raise self.error
            raise StopAsyncIteration
        return chunk

    def release(self):
        """Signal that the producer finished tearing down after the end marker."""
        self._released.set()

    async def wait_closed(self):
        await self._released.wait()

    async def read_all(self) -> str:
        return "".join([chunk async for chunk in self])

    async def pipe(self, *sinks: TextIO):
        async for chunk in self:
            for sink in sinks:
                sink.write(chunk)
                sink.flush()


class ScriptWriter:
    """Appends indented script lines to a ScriptStream."""

    def __init__(self, stream: ScriptStream, runtime_module: str):
        self.stream = stream
        self.runtime_module = runtime_module
        self.indentation = 0
        self.count = 0
        self.opened = False
        self.closed = False

    def emit(self, line: str):
        self.stream.push(INDENT * self.indentation + line + "\n")
        self.count += 1

    # skeleton

    def open(self, url: str):
        self.emit(
            "const {open, click, type, submit, expect, scrollToBottom} = "
            f"require({quote(self.runtime_module)});"
        )
        self.emit(f"open({quote(url)}, {{}}, async (page) => {{")
        self.indentation += 1
        self.opened = True

    def close(self):
        """Write the closing line and end the stream."""
        if self.closed:
            return
        self.closed = True
        if self.opened:
            self.indentation -= 1
            self.emit("});")
        self.stream.push(None)

    # statements

    def click(self, selector: str):
        self.emit(f"await click({quote(selector)});")

    def submit(self, selector: str):
        self.emit(f"await submit({quote(selector)});")

    def type(self, selector: str, value: Optional[str]):
        self.emit(f"await type({quote(selector)}, {quote(value)});")

    def scroll_to_bottom(self):
        self.emit("await scrollToBottom();")

    def expect_url(self, url: str):
        self.emit(f"expect(page.url()).resolves.toBe({quote(url)});")

    def comment(self, text: str):
        self.emit(f"// {text}")
