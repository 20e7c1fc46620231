"""Run the aperonix chat proxy locally.

Usage:
    GEMINI_API_KEY=... python scripts/serve_proxy.py [--host 127.0.0.1] [--port 8000]
"""

import argparse

import uvicorn

from aperonix.logging import configure_logging
from aperonix.proxy import create_app


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the aperonix chat proxy")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    args = parser.parse_args()

    configure_logging(json_output=args.json_logs)
    uvicorn.run(create_app(), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
