# main.py
import argparse
import asyncio
import sys
from typing import List, Optional

from config import CAPTURE_SCROLL, SNAPSHOT_DIR
from scriptgen.errors import ConfigurationError, RecorderError
from scriptgen.recorder import RecorderOptions, start


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Record browser interactions as a replayable script."
    )
    p.add_argument("url", nargs="?", default="")
    p.add_argument("--save_dom", action="store_true",
                   help="snapshot the DOM to <timestamp>.html before each click")
    p.add_argument("--output", metavar="FILE",
                   help="also write the script to FILE")
    p.add_argument("--ws-endpoint", dest="ws_endpoint",
                   help="attach to a running browser instead of launching one")
    p.add_argument("--scroll", action="store_true", default=CAPTURE_SCROLL,
                   help="record scrolls that load more content")
    p.add_argument("--snapshot-dir", default=SNAPSHOT_DIR)
    return p.parse_args(argv)


def open_output(path: Optional[str]):
    if not path:
        return None
    try:
        return open(path, "w", encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot write {path}: {e}") from e


async def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if not args.url:
        print("url required.", file=sys.stderr)
        return 1
    try:
        out_file = open_output(args.output)
    except ConfigurationError as e:
        print(f"⚠️  {e}", file=sys.stderr)
        return 1

    options = RecorderOptions(
        save_dom=args.save_dom,
        ws_endpoint=args.ws_endpoint,
        capture_scroll=args.scroll,
        snapshot_dir=args.snapshot_dir,
    )
    sinks = [sys.stdout] + ([out_file] if out_file else [])
    stream = None
    try:
        stream = await start(args.url, options)
        await stream.pipe(*sinks)
        await stream.wait_closed()
    except RecorderError as e:
        print(f"⚠️  recording aborted: {e}", file=sys.stderr)
        if stream is not None:
            await stream.wait_closed()
        return 1
    finally:
        if out_file:
            out_file.close()

    if args.output:
        print(f"💾 Saved script → {args.output}", file=sys.stderr)
    return 0


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
