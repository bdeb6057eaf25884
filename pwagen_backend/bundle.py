from __future__ import annotations

import html
import json
import shutil
from pathlib import Path

from .capture import CapturedPage
from .config import ICON_TEMPLATES_DIR
from .errors import WriteError
from .security import safe_join


INDEX_FILENAME = "index.html"
MANIFEST_FILENAME = "manifest.json"
SERVICE_WORKER_FILENAME = "sw.js"
APP_JS_FILENAME = "app.js"
STYLES_FILENAME = "styles.css"
ICON_FILENAMES = ("icon-192x192.png", "icon-512x512.png")

BUNDLE_FILES = (
    INDEX_FILENAME,
    MANIFEST_FILENAME,
    SERVICE_WORKER_FILENAME,
    APP_JS_FILENAME,
    STYLES_FILENAME,
    *ICON_FILENAMES,
)

BACKGROUND_COLOR = "#ffffff"
THEME_COLOR = "#000000"


def render_index_html(app_name: str, markup: str) -> str:
    # The captured markup goes in verbatim; links/assets are not rewritten.
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(app_name)}</title>
    <link rel="manifest" href="{MANIFEST_FILENAME}">
    <meta name="theme-color" content="{THEME_COLOR}">
    <link rel="stylesheet" href="{STYLES_FILENAME}">
</head>
<body>
    <div id="app-content">
      {markup}
    </div>
    <script src="{APP_JS_FILENAME}"></script>
</body>
</html>
"""


def render_manifest(app_name: str, description: str = "") -> str:
    manifest = {
        "name": app_name,
        "short_name": app_name,
        "start_url": "/",
        "display": "standalone",
        "background_color": BACKGROUND_COLOR,
        "theme_color": THEME_COLOR,
        "icons": [
            {"src": ICON_FILENAMES[0], "sizes": "192x192", "type": "image/png"},
            {"src": ICON_FILENAMES[1], "sizes": "512x512", "type": "image/png"},
        ],
    }
    if description:
        manifest["description"] = description
    return json.dumps(manifest, indent=2, ensure_ascii=False) + "\n"


def render_service_worker(app_name: str) -> str:
    urls_to_cache = ["/"] + [f"/{name}" for name in BUNDLE_FILES if name != SERVICE_WORKER_FILENAME]
    # json.dumps yields valid JS string/array literals for any app name.
    return f"""const CACHE_NAME = {json.dumps(f"{app_name}-v1", ensure_ascii=False)};
const urlsToCache = {json.dumps(urls_to_cache, indent=2)};

self.addEventListener('install', (event) => {{
  event.waitUntil(
    caches.open(CACHE_NAME)
      .then((cache) => cache.addAll(urlsToCache))
  );
}});

self.addEventListener('fetch', (event) => {{
  event.respondWith(
    caches.match(event.request)
      .then((response) => response || fetch(event.request))
  );
}});
"""


def render_app_js() -> str:
    return f"""if ('serviceWorker' in navigator) {{
  window.addEventListener('load', () => {{
    navigator.serviceWorker.register('/{SERVICE_WORKER_FILENAME}')
      .then((registration) => {{
        console.log('Service Worker registered:', registration);
      }})
      .catch((error) => {{
        console.log('Service Worker registration failed:', error);
      }});
  }});
}}
"""


def render_styles_css() -> str:
    return """body {
  font-family: Arial, sans-serif;
  line-height: 1.6;
  margin: 0;
  padding: 0;
}

#app-content {
  max-width: 1200px;
  margin: 0 auto;
  padding: 20px;
}
"""


def render_bundle(app_name: str, page: CapturedPage) -> dict[str, str]:
    """Return every text file of the bundle keyed by filename.

    Pure: no filesystem or network access.
    """
    description = page.title or page.url
    return {
        INDEX_FILENAME: render_index_html(app_name, page.markup),
        MANIFEST_FILENAME: render_manifest(app_name, description),
        SERVICE_WORKER_FILENAME: render_service_worker(app_name),
        APP_JS_FILENAME: render_app_js(),
        STYLES_FILENAME: render_styles_css(),
    }


def synthesize_bundle(
    root: Path,
    app_name: str,
    page: CapturedPage,
    icons_dir: Path | None = None,
) -> list[Path]:
    """Write the app shell into root. Returns the written paths.

    Raises WriteError if any file cannot be written or copied.
    """
    files = render_bundle(app_name, page)
    source_icons = icons_dir or ICON_TEMPLATES_DIR
    written: list[Path] = []
    try:
        for filename, text in files.items():
            dest = safe_join(root, filename)
            dest.write_text(text, encoding="utf-8")
            written.append(dest)
        for icon in ICON_FILENAMES:
            dest = safe_join(root, icon)
            shutil.copyfile(source_icons / icon, dest)
            written.append(dest)
    except OSError as exc:
        raise WriteError("Could not write bundle file", cause=exc.strerror or str(exc)) from exc
    return written
