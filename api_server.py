#!/usr/bin/env python
"""Entry point for the FastAPI backend server.

Usage:
    python api_server.py [--port 8000] [--host 0.0.0.0] [--verbose]
"""

import argparse

import uvicorn

from api.app import create_app

app = create_app()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Canvas agent FastAPI server")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--host", type=str, default="0.0.0.0")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging on the console")
    parser.add_argument("--log-file", type=str, default=None, help="Also write full logs to this file")
    args = parser.parse_args()

    from canvas_agent.logging import attach_log_file, setup_logging

    setup_logging(verbose=args.verbose)
    if args.log_file:
        from pathlib import Path

        attach_log_file(Path(args.log_file))

    uvicorn.run(
        "api_server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
