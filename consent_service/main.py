#!/usr/bin/env python3
"""
Main entry point for the Consent Recorder
Runs the Flask server locally or validates configuration
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from consent_service.config import DEFAULT_HOST, DEFAULT_PORT, SERVICE_NAME, ConsentConfig, validate_config
from consent_service.server import app

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Consent Recorder Service")
    parser.add_argument("--host", type=str, default=os.environ.get("HOST", DEFAULT_HOST), help="Bind address")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", DEFAULT_PORT)), help="Bind port")
    parser.add_argument(
        "--debug",
        action="store_true",
        default=os.environ.get("DEBUG", "False").lower() == "true",
        help="Run Flask in debug mode",
    )
    parser.add_argument("--validate-config", action="store_true", help="Validate configuration and exit")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the local consent server"""
    args = build_parser().parse_args(argv)
    config = ConsentConfig.from_env()

    if args.validate_config:
        if validate_config(config):
            print("Configuration is valid")
            return 0
        print("Configuration is invalid - check environment variables")
        print("Required environment variables:")
        print("  - SUPABASE_URL")
        print("  - SUPABASE_SERVICE_ROLE_KEY")
        return 1

    logger.info("=" * 60)
    logger.info(f"{SERVICE_NAME}")
    logger.info("=" * 60)
    logger.info(f"Server starting on http://{args.host}:{args.port}")
    logger.info(f"Debug mode: {args.debug}")
    logger.info(f"Supabase: {'configured' if config.supabase_enabled else 'not configured (inserts skipped)'}")
    logger.info(f"Discord: {'configured' if config.discord_enabled else 'not configured'}")
    logger.info(f"IP hashing: {'on' if config.hash_ip else 'off'}")
    logger.info("=" * 60)

    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    sys.exit(main())
