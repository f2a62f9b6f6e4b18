"""
Application Configuration Persistence
======================================

Saves and restores the ``EngineConfig`` of a ``Session`` so the API key and
model choice survive restarts.

- File-System Persistence: JSON file in the user's home directory
  (``~/.metascribe_config.json``).
- Environment Override: ``GEMINI_API_KEY`` replaces the stored key for the
  running process only; the file keeps the key the user stored.
- Security Logging: Saved and loaded values are logged with secrets masked.
"""

import json
import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from metascribe.core import config
from metascribe.core.session import Session
from metascribe.utils.logger import log_config

CONFIG_PATH = Path.home() / ".metascribe_config.json"


def save_config(session: Session, path: Optional[Path] = None) -> bool:
    """
    Persist the session's engine configuration.

    Returns:
        True on success. Failures are logged, not raised, so closing the
        window never fails because of an unwritable home directory.
    """
    logger = logging.getLogger(__name__)
    path = Path(path) if path is not None else CONFIG_PATH

    engine = asdict(session.engine)
    # The environment override is never written to disk
    if session.env_api_key and engine["api_key"] == session.env_api_key:
        engine["api_key"] = session.stored_api_key
    data = {"engine": engine}
    log_config("Saving Configuration", data, logger)

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        logger.error(f"Failed to save configuration: {e}", exc_info=True)
        return False

    session.stored_api_key = engine["api_key"]
    logger.info(f"Configuration saved successfully to {path}")
    return True


def load_config(session: Session, path: Optional[Path] = None) -> Session:
    """
    Apply the stored configuration (if any) and environment overrides.

    Unknown keys are ignored; a corrupted file is logged and skipped so the
    defaults stay in place.
    """
    logger = logging.getLogger(__name__)
    path = Path(path) if path is not None else CONFIG_PATH

    if not path.exists():
        logger.info(f"No existing configuration file found at {path}")
    else:
        try:
            logger.info(f"Loading configuration from {path}")
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)

            log_config("Loaded Configuration", data, logger)

            for k, v in data.get("engine", {}).items():
                if hasattr(session.engine, k):
                    if k == "api_key" and isinstance(v, str):
                        v = v.strip()
                    setattr(session.engine, k, v)
            session.stored_api_key = session.engine.api_key
            logger.info("Configuration loaded and applied successfully")

        except json.JSONDecodeError as e:
            logger.error(f"Configuration file is corrupted: {e}")
        except (OSError, AttributeError) as e:
            logger.error(f"Failed to load configuration: {e}", exc_info=True)

    env_key = os.environ.get(config.API_KEY_ENV_VAR, "").strip()
    if env_key:
        logger.info(f"Using API key from {config.API_KEY_ENV_VAR}")
        session.env_api_key = env_key
        session.engine.api_key = env_key

    return session
