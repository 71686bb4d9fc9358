"""Configuration models using Pydantic for validation."""
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator
import os

# GetMetricData accepts at most this many queries per request
MAX_BATCH_SIZE = 500


class ReporterConfig(BaseModel):
    """Time window and statistic used for GetMetricData queries."""
    delay_s: int = Field(default=600, ge=0)
    range_s: int = Field(default=600, gt=0)
    period_s: int = Field(default=60, gt=0)
    stat: str = "Maximum"

    @field_validator('period_s')
    @classmethod
    def validate_period(cls, v):
        """CloudWatch periods are 1, 5, 10, 30 or a multiple of 60 seconds."""
        if v not in (1, 5, 10, 30) and v % 60 != 0:
            raise ValueError(f"Invalid period {v}: must be 1, 5, 10, 30 or a multiple of 60")
        return v


class ExporterConfig(BaseModel):
    """Prometheus exporter configuration."""
    port: int = 9106
    bind_address: str = "0.0.0.0"
    namespace: str = "*"
    metric_name: str = "*"
    batch_size: int = Field(default=MAX_BATCH_SIZE, gt=0, le=MAX_BATCH_SIZE)


class AWSConfig(BaseModel):
    """Settings used to construct the boto3 CloudWatch client."""
    region: Optional[str] = None
    endpoint_url: Optional[str] = None
    profile: Optional[str] = None


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"


class Config(BaseModel):
    """Root configuration model."""
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    exporter: ExporterConfig = Field(default_factory=ExporterConfig)
    reporter: ReporterConfig = Field(default_factory=ReporterConfig)
    aws: AWSConfig = Field(default_factory=AWSConfig)

    model_config = {"populate_by_name": True}


def load_config(config_path: str) -> Config:
    """Load and validate configuration from YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})['log_level'] = env_log_level

    if env_region := os.getenv('AWS_REGION'):
        raw_config.setdefault('aws', {})['region'] = env_region

    if env_namespace := os.getenv('CLOUDWATCH_NAMESPACE'):
        raw_config.setdefault('exporter', {})['namespace'] = env_namespace

    if env_metric_name := os.getenv('CLOUDWATCH_METRIC_NAME'):
        raw_config.setdefault('exporter', {})['metric_name'] = env_metric_name

    try:
        config = Config(**raw_config)
        return config
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
