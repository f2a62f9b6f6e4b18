"""
Service Wiring
==============

Builds the pipeline objects from an ``EngineConfig``. The entry point calls
``create_services`` once at start-up and hands the result to the UI; the
settings dialog calls it again after the API key or model changes.
"""

import logging
from dataclasses import dataclass

from .csv_exporter import CsvExporter
from .image_validator import ImageValidator
from .processing import ImageProcessor
from .session import EngineConfig
from metascribe.integrations.google_ai_client import GoogleAIClient

logger = logging.getLogger(__name__)


@dataclass
class Services:
    client: GoogleAIClient
    processor: ImageProcessor
    exporter: CsvExporter

    def close(self):
        self.client.close()


def create_services(engine: EngineConfig) -> Services:
    client = GoogleAIClient(
        api_key=engine.api_key,
        model_name=engine.model_id,
        timeout=engine.request_timeout,
    )
    validator = ImageValidator(engine.supported_extensions)
    processor = ImageProcessor(client.fetch_metadata, validator)
    logger.info(f"Services created (model={client.model_name}, key configured={client.is_available()})")
    return Services(client=client, processor=processor, exporter=CsvExporter())
