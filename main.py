"""
Metascribe - AI Image Metadata Generator
========================================

Main entry point. Select image files, let Google Gemini generate a title,
description and tags for each one, review the results and export them to
CSV.
"""

import sys
import os
import logging

# ============================================================================
# PYTHONW COMPATIBILITY - NULL STREAM SAFETY
# ============================================================================
# Under pythonw.exe sys.stdout/sys.stderr are None, which breaks the console
# log handler. Replace them with devnull before logging is configured.
if sys.stdout is None:
    sys.stdout = open(os.devnull, 'w')
if sys.stderr is None:
    sys.stderr = open(os.devnull, 'w')

# ============================================================================
# LOGGING INITIALIZATION
# ============================================================================
# Configure logging before importing the rest of the application so import
# time messages are captured too.
from metascribe.utils.logger import setup_logging, shutdown_logging
log_file = setup_logging()

from metascribe.core.services import create_services
from metascribe.core.session import Session
from metascribe.utils.config_manager import load_config


def main():
    """
    Build the pipeline once, hand it to the window and run the event loop.

    Fatal errors are logged with a full stack trace and re-raised.
    """
    logger = logging.getLogger(__name__)
    exit_code = 0

    try:
        logger.info("Initializing Metascribe application")
        logger.info(f"Python version: {sys.version}")

        session = load_config(Session())
        services = create_services(session.engine)

        # Imported here so the pipeline can be used headless without Tk installed
        from metascribe.ui.app import App
        app = App(session, services)
        logger.info("Application window created successfully")

        app.mainloop()

    except Exception as e:
        logger.critical(f"Fatal error in main application: {e}", exc_info=True)
        exit_code = 1
        raise
    finally:
        logger.info("Application shutdown")
        shutdown_logging()

    return exit_code


# ============================================================================
# APPLICATION ENTRY POINT
# ============================================================================
if __name__ == "__main__":
    sys.exit(main())
