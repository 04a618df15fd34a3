# settings.py
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from lambda_error_handler import ConfigurationError, check_required_env_vars

DEFAULT_REGION = "ca-central-1"
DEFAULT_INDEXER_FUNCTION_NAME = "wfdm-open-search"

REQUIRED_ENV_VARS = [
    "SCAN_BUCKET_NAME",
    "WFDM_API_URL",
    "WFDM_TOKEN_URL",
    "WFDM_CREDENTIALS_SECRET_ARN",
]


class MetadataFailurePolicy(str, Enum):
    """What to do when the virus scan metadata cannot be written back to WFDM"""

    BEST_EFFORT = "best_effort"
    FAIL_FAST = "fail_fast"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


@dataclass
class ScanMetadataConfig:
    status_name: str = "SecurityScanStatus"
    version_name: str = "SecurityScanVersion"
    pending_value: str = "-"


@dataclass
class InitializerSettings:
    region: str
    scan_bucket_name: str
    indexer_function_name: str
    wfdm_api_url: str
    wfdm_token_url: str
    credentials_secret_arn: str
    metadata_failure_policy: MetadataFailurePolicy = MetadataFailurePolicy.BEST_EFFORT
    skip_staged_versions: bool = False
    http_timeout_seconds: Optional[float] = 60.0
    scan_metadata: ScanMetadataConfig = field(default_factory=ScanMetadataConfig)

    @classmethod
    def from_env(cls) -> "InitializerSettings":
        check_required_env_vars(REQUIRED_ENV_VARS)

        raw_policy = os.getenv(
            "METADATA_FAILURE_POLICY", MetadataFailurePolicy.BEST_EFFORT.value
        )
        try:
            policy = MetadataFailurePolicy(raw_policy.strip().lower())
        except ValueError:
            raise ConfigurationError(
                message=f"Unknown METADATA_FAILURE_POLICY: {raw_policy}",
                missing_configs=["METADATA_FAILURE_POLICY"],
            )

        timeout = os.getenv("WFDM_HTTP_TIMEOUT_SECONDS", "60")

        return cls(
            region=os.getenv("AWS_REGION", DEFAULT_REGION),
            scan_bucket_name=os.environ["SCAN_BUCKET_NAME"],
            indexer_function_name=os.getenv(
                "INDEXER_FUNCTION_NAME", DEFAULT_INDEXER_FUNCTION_NAME
            ),
            wfdm_api_url=os.environ["WFDM_API_URL"].rstrip("/"),
            wfdm_token_url=os.environ["WFDM_TOKEN_URL"],
            credentials_secret_arn=os.environ["WFDM_CREDENTIALS_SECRET_ARN"],
            metadata_failure_policy=policy,
            skip_staged_versions=_env_flag("SKIP_STAGED_VERSIONS"),
            http_timeout_seconds=float(timeout) if timeout else None,
            scan_metadata=ScanMetadataConfig(
                status_name=os.getenv("SCAN_STATUS_METADATA_NAME", "SecurityScanStatus"),
                version_name=os.getenv(
                    "SCAN_VERSION_METADATA_NAME", "SecurityScanVersion"
                ),
                pending_value=os.getenv("SCAN_PENDING_VALUE", "-"),
            ),
        )
