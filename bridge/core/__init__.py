"""Session-side primitives: tile cache, menu accumulation, multi-select and pending requests.

Kept free of FastAPI concerns so the dispatcher, the WebSocket route and tests share them.
"""
