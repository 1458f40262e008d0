"""API server entry point."""

from __future__ import annotations

import logging
import os
import sys

import uvicorn

from songchat.api.routes import create_app

# Setup logging
logging.basicConfig(
    level=logging.DEBUG if os.environ.get("DEBUG") else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)


def main() -> None:
    """Run the API server."""
    app = create_app(debug=bool(os.environ.get("DEBUG")))
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(
        app,
        host=host,
        port=port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
