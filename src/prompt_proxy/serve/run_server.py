"""Launch the proxy under uvicorn."""
from __future__ import annotations
import argparse
import logging

import uvicorn

from prompt_proxy.serve.fastapi_app import app

LOGGER = logging.getLogger("promptproxy.server")

def main() -> None:
    settings = app.state.settings
    ap = argparse.ArgumentParser(description="Run the prompt proxy server")
    ap.add_argument("--host", default=settings.host, help="Bind address")
    ap.add_argument("--port", type=int, default=settings.port, help="Listening port")
    args = ap.parse_args()

    LOGGER.info("Proxy server running on http://%s:%s", args.host, args.port)
    LOGGER.info("Frontend should connect to: http://localhost:%s/api/generate", args.port)
    # uvicorn installs SIGINT/SIGTERM handlers; nothing needs flushing on exit.
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)

if __name__ == "__main__":
    main()
