"""
Typed pipeline settings built from the environment-backed PIPELINE_CONFIG
"""

from typing import Any

from pydantic import BaseModel, Field

from ..config.settings import PIPELINE_CONFIG


class PipelineSettings(BaseModel):
    """Configuration context handed to the pipeline at construction"""
    output_dir: str = "./output"
    memory_dir: str = "./data/memory"
    icp_config_path: str = "./config/icp.json"
    signal_confidence_threshold: float = Field(default=0.6, ge=0, le=1)
    max_events_per_run: int = Field(default=500, ge=0)
    classifier_concurrency: int = Field(default=5, ge=1)
    enable_memory: bool = True
    cron_schedule: str = "0 */4 * * *"
    log_level: str = "INFO"
    log_file: str = "output/pipeline.log"
    events_file: str = ""


def load_pipeline_settings(**overrides: Any) -> PipelineSettings:
    """Build settings from PIPELINE_CONFIG, with keyword overrides applied on top"""
    values = dict(PIPELINE_CONFIG)
    values.update({k: v for k, v in overrides.items() if v is not None})
    return PipelineSettings(**values)
