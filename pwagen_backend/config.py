from __future__ import annotations

import os
from pathlib import Path


# Root directory for transient per-request workspaces and archives.
# Default: project-local ./generated-apps. Override with PWAGEN_WORKSPACES_ROOT.
_root_raw = os.environ.get("PWAGEN_WORKSPACES_ROOT")
if _root_raw and _root_raw.strip():
    WORKSPACES_ROOT = Path(_root_raw)
else:
    # pwagen_backend/ -> project root
    WORKSPACES_ROOT = Path(__file__).resolve().parent.parent / "generated-apps"
WORKSPACES_ROOT = WORKSPACES_ROOT.resolve()

# Placeholder icons copied into every bundle.
_icons_raw = os.environ.get("PWAGEN_ICON_TEMPLATES_DIR")
if _icons_raw and _icons_raw.strip():
    ICON_TEMPLATES_DIR = Path(_icons_raw).resolve()
else:
    ICON_TEMPLATES_DIR = Path(__file__).resolve().parent / "assets"

# Navigation + network-idle budget for one capture.
CAPTURE_TIMEOUT_SECONDS = float(os.environ.get("PWAGEN_CAPTURE_TIMEOUT_SECONDS", "60"))

# Startup purge only removes entries untouched for this long; younger ones may
# belong to a sibling worker sharing the same root.
STALE_AFTER_SECONDS = float(
    os.environ.get("PWAGEN_STALE_AFTER_SECONDS", str(CAPTURE_TIMEOUT_SECONDS + 3600))
)

# Upper bound on simultaneously running Chromium instances.
MAX_CONCURRENT_CAPTURES = max(1, int(os.environ.get("PWAGEN_MAX_CONCURRENT_CAPTURES", "2")))

CHROMIUM_ARGS = os.environ.get(
    "PWAGEN_CHROMIUM_ARGS", "--no-sandbox --disable-setuid-sandbox"
).split()

# Fixed-window rate limit per client IP (100 requests / 15 minutes).
RATE_LIMIT_MAX_REQUESTS = int(os.environ.get("PWAGEN_RATE_LIMIT_MAX_REQUESTS", "100"))
RATE_LIMIT_WINDOW_SECONDS = float(os.environ.get("PWAGEN_RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))

STREAM_CHUNK_BYTES = int(os.environ.get("PWAGEN_STREAM_CHUNK_BYTES", str(64 * 1024)))

# Sanitized app names are capped so "<name>-<uuid>.zip" stays under 255 bytes.
MAX_APP_NAME_BYTES = 200

LOG_LEVEL = os.environ.get("PWAGEN_LOG_LEVEL", "INFO").upper()
