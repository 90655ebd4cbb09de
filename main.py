"""
ICP Builder - Server Launcher
=============================
Starts the FastAPI app with uvicorn.

Usage:
    python main.py                      # 0.0.0.0:8000 (or HOST / PORT env)
    python main.py --port 8080
    python main.py --reload --log-level DEBUG

Docs are served at /docs (Swagger) and /redoc once running.
"""

import argparse
import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from icp_builder.config.logging_config import setup_logging
from icp_builder.config.settings import APP_CONFIG, LLM_CONFIG, supabase_configured

APP_PATH = "icp_builder.api.endpoints:app"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="icp-builder",
        description="Company analysis, ICP generation and prospect qualification API",
    )
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Bind address")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")), help="Bind port")
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker processes; the company cache is per worker",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Overrides LOG_LEVEL",
    )
    return parser


def print_banner(host: str, port: int):
    rows = [
        ("Server", f"http://{host}:{port}"),
        ("Docs", f"http://localhost:{port}/docs"),
        ("Env", APP_CONFIG["environment"]),
        ("LLM", f"{LLM_CONFIG['provider']} / {LLM_CONFIG['model']}" if LLM_CONFIG["api_key"] else "not configured"),
        ("Storage", "Supabase" if supabase_configured() else "in-memory (data lost on restart)"),
    ]
    print(f"\n  ICP Builder v{APP_CONFIG['version']}")
    print("  " + "-" * 40)
    for label, value in rows:
        print(f"  {label:<9}{value}")
    print()


def main():
    args = build_parser().parse_args()
    setup_logging(log_level=args.log_level)
    print_banner(args.host, args.port)

    uvicorn.run(
        APP_PATH,
        host=args.host,
        port=args.port,
        reload=args.reload,
        # reload mode only supports a single process
        workers=1 if args.reload else args.workers,
    )


if __name__ == "__main__":
    main()
