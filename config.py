# config.py
HEADLESS = False
VIEWPORT = None  # None = follow the browser window size

# Package the generated script requires its helpers from
RUNTIME_MODULE = "@puppeteer/recorder"

# Scroll capture is fragile on most sites, so it is off unless asked for
CAPTURE_SCROLL = False
SCROLL_SETTLE_SEC = 1.0

# Where --save_dom snapshots land
SNAPSHOT_DIR = "."

# e.g. "ctrl+shift+s"; None disables the stop hotkey
STOP_HOTKEY = None
