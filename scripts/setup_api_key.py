#!/usr/bin/env python3
"""
First-Run Setup
===============

Prompts for a Google Gemini API key, optionally checks it against the API,
and stores it in the Metascribe configuration file.

Usage:
    python scripts/setup_api_key.py [--key KEY] [--model MODEL] [--no-verify] [--verbose]

Options:
    --key         API key to store (prompted for when omitted)
    --model       Gemini model to use for metadata generation
    --no-verify   Skip the connection test
    --verbose     Enable verbose logging

Example:
    python scripts/setup_api_key.py
    python scripts/setup_api_key.py --key AIza... --no-verify
"""

import argparse
import getpass
import logging
import sys
from pathlib import Path

# Add project root to path so the script runs from a source checkout
sys.path.insert(0, str(Path(__file__).parent.parent))

from metascribe.core import config
from metascribe.core.session import Session
from metascribe.integrations.google_ai_client import GoogleAIClient
from metascribe.utils.config_manager import CONFIG_PATH, load_config, save_config
from metascribe.utils.logger import SensitiveDataFilter

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Configure the Gemini API key for Metascribe")
    parser.add_argument("--key", help="API key to store")
    parser.add_argument("--model", default=None, help=f"Model id (default: {config.DEFAULT_MODEL_ID})")
    parser.add_argument("--no-verify", action="store_true", help="Skip the connection test")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(SensitiveDataFilter())

    print("\n=== Metascribe Setup ===\n")

    session = load_config(Session())
    api_key = (args.key or getpass.getpass("Please enter your Google Gemini API key: ")).strip()
    if not api_key:
        logger.error("API key is required")
        return 1

    session.engine.api_key = api_key
    if args.model:
        session.engine.model_id = args.model

    if not args.no_verify:
        client = GoogleAIClient(api_key=api_key)
        try:
            ok = client.test_connection()
        finally:
            client.close()
        if not ok:
            logger.error("Could not list models with this key; nothing was saved")
            return 1
        print("✓ API key verified")

    if not save_config(session):
        return 1

    print(f"✓ API key configured successfully in {CONFIG_PATH}")
    print("\nYou can now start the application with:")
    print("python main.py\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
