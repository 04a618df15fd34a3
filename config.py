import json
import os
from typing import Optional

from aws_cdk import aws_logs as logs
from pydantic import BaseModel, Field, field_validator, model_validator

METADATA_FAILURE_POLICIES = ["best_effort", "fail_fast"]


class LoggingConfig(BaseModel):
    level: str = "INFO"
    lambda_cloudwatch_log_retention_days: int = 90

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @property
    def cloudwatch_retention(self) -> logs.RetentionDays:
        # Map days to CloudWatch RetentionDays enum
        retention_map = {
            1: logs.RetentionDays.ONE_DAY,
            3: logs.RetentionDays.THREE_DAYS,
            5: logs.RetentionDays.FIVE_DAYS,
            7: logs.RetentionDays.ONE_WEEK,
            14: logs.RetentionDays.TWO_WEEKS,
            30: logs.RetentionDays.ONE_MONTH,
            60: logs.RetentionDays.TWO_MONTHS,
            90: logs.RetentionDays.THREE_MONTHS,
            120: logs.RetentionDays.FOUR_MONTHS,
            150: logs.RetentionDays.FIVE_MONTHS,
            180: logs.RetentionDays.SIX_MONTHS,
            365: logs.RetentionDays.ONE_YEAR,
            400: logs.RetentionDays.THIRTEEN_MONTHS,
            545: logs.RetentionDays.EIGHTEEN_MONTHS,
            731: logs.RetentionDays.TWO_YEARS,
            1827: logs.RetentionDays.FIVE_YEARS,
            3653: logs.RetentionDays.TEN_YEARS,
            0: logs.RetentionDays.INFINITE,
        }

        # Find the closest matching retention period
        valid_days = sorted(retention_map.keys())
        closest_days = min(
            valid_days,
            key=lambda x: abs(x - self.lambda_cloudwatch_log_retention_days),
        )
        return retention_map[closest_days]


class WfdmApiConfig(BaseModel):
    api_url: str
    token_url: str
    credentials_secret_arn: str
    http_timeout_seconds: float = 60.0

    @field_validator("api_url", "token_url")
    @classmethod
    def validate_url(cls, v):
        if not v.startswith("https://"):
            raise ValueError("WFDM endpoints must use https://")
        return v


class ScanningConfig(BaseModel):
    bucket_name: str
    metadata_failure_policy: str = "best_effort"
    skip_staged_versions: bool = False

    @field_validator("metadata_failure_policy")
    @classmethod
    def validate_policy(cls, v):
        if v.lower() not in METADATA_FAILURE_POLICIES:
            raise ValueError(
                f"metadata_failure_policy must be one of {METADATA_FAILURE_POLICIES}"
            )
        return v.lower()


class QueueConfig(BaseModel):
    batch_size: int = 10
    max_batching_window_seconds: int = 0
    visibility_timeout_seconds: int = 900
    max_receive_count: int = 3

    @model_validator(mode="after")
    def check_batching(self):
        if not 1 <= self.batch_size <= 10000:
            raise ValueError("batch_size must be between 1 and 10000")
        if self.batch_size > 10 and self.max_batching_window_seconds < 1:
            raise ValueError(
                "A batch_size above 10 requires max_batching_window_seconds of at least 1"
            )
        return self


class CDKConfig(BaseModel):
    """Configuration for CDK Application"""

    environment: str = "dev"
    resource_prefix: str = "wfdm"
    account_id: Optional[str] = None
    primary_region: str = "ca-central-1"
    indexer_function_name: str = "wfdm-open-search"
    lambda_timeout_minutes: int = 5
    lambda_memory_size: int = 512
    logging: LoggingConfig = LoggingConfig()
    wfdm: WfdmApiConfig
    scanning: ScanningConfig
    queue: QueueConfig = Field(default_factory=QueueConfig)

    @model_validator(mode="after")
    def check_visibility_timeout(self):
        # SQS requires the visibility timeout to cover the function timeout
        if self.queue.visibility_timeout_seconds < self.lambda_timeout_minutes * 60:
            raise ValueError(
                "queue.visibility_timeout_seconds must be at least the Lambda timeout"
            )
        return self

    @property
    def should_retain_resources(self) -> bool:
        return self.environment == "prod"

    @classmethod
    def load_from_file(cls, filename="config.json"):
        with open(filename, "r", encoding="utf-8") as f:
            config_data = json.load(f)
        return cls(**config_data)


# Load configuration from config.json
config = CDKConfig.load_from_file(
    os.environ.get("WFDM_CDK_CONFIG", os.path.join(os.path.dirname(__file__), "config.json"))
)
