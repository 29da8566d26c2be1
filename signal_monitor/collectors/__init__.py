# Event collectors
import logging
from typing import Optional

from ..models.pipeline_config import PipelineSettings
from .base import Collector, CollectorRegistry
from .file_collector import JsonFileCollector, StaticCollector


def create_collectors(
    settings: PipelineSettings, logger: Optional[logging.Logger] = None
) -> CollectorRegistry:
    """Build the collector registry from configuration"""
    registry = CollectorRegistry()
    if settings.events_file:
        registry.register(JsonFileCollector("events_file", settings.events_file, logger=logger))
    return registry
