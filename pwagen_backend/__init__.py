"""Backend pieces for the web app generator.

Route handlers in server.py stay thin; the work lives here:
- workspace allocation + guaranteed release
- page capture in headless Chromium
- app-shell synthesis (markup, manifest, service worker, assets)
- ZIP packaging and streaming

Nothing here outlives a request. Workspaces are named
<sanitized-app-name>-<uuid4> so concurrent requests never share a directory,
and filesystem paths are never exposed in responses.
"""
