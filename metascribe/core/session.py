"""
Session Management Module
==========================

Application state for one run of Metascribe:
- Engine configuration (API key, model, timeout, accepted formats)
- The most recent batch's results

The engine configuration is persisted between runs by
``metascribe.utils.config_manager``.
"""

from dataclasses import dataclass, field
from typing import List
import logging

from . import config
from .models import ImageMetadata


@dataclass
class EngineConfig:
    """
    Configuration for the remote metadata engine.

    Attributes:
        api_key: Google AI Studio API key.
        model_id: Gemini model used for generateContent.
        request_timeout: Per-request timeout in seconds.
        supported_extensions: Image extensions accepted by the validator.
        include_failed_rows: Show failed images as error rows in the results.
    """
    api_key: str = ""
    model_id: str = config.DEFAULT_MODEL_ID
    request_timeout: int = config.REQUEST_TIMEOUT_SECONDS
    supported_extensions: List[str] = field(
        default_factory=lambda: list(config.SUPPORTED_IMAGE_EXTENSIONS)
    )
    include_failed_rows: bool = True


class Session:
    """
    Central state shared by the UI components.

    Attributes:
        engine: Remote engine configuration.
        selected_paths: Paths chosen by the user for the current batch.
        results: Records produced by the last batch.
        is_processing: True while a batch is running.
        stored_api_key: API key read from the config file.
        env_api_key: Process-start override from the environment; never
            written back to the config file.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.logger.info("Initializing new session")

        self.engine = EngineConfig()
        self.selected_paths: List[str] = []
        self.results: List[ImageMetadata] = []
        self.is_processing = False
        self.stored_api_key = ""
        self.env_api_key = ""

    def reset_results(self):
        self.results = []

    @property
    def successful_results(self) -> List[ImageMetadata]:
        return [r for r in self.results if not r.is_error]

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if r.is_error)
