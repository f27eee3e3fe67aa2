"""
Entry point for the xqbridge HTTP API.

Development (hot-reload):
    uv run python web_main.py

Any host (a browser board, another service) talks to /api on the configured
host and port.
"""

import uvicorn

from xqbridge.web.app import config

if __name__ == "__main__":
    uvicorn.run(
        "xqbridge.web.app:app",
        host=config.web.host,
        port=config.web.port,
        reload=True,
    )
