import os
from typing import Any, Dict

import boto3
import requests
from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.utilities.typing import LambdaContext
from botocore.config import Config

from document_api import WfdmDocumentApi
from lambda_error_handler import ConfigurationError
from processor import FileIndexInitializer
from settings import DEFAULT_REGION, InitializerSettings

# Initialize powertools
logger = Logger()
tracer = Tracer()
metrics = Metrics()

BOTO3_CONFIG = Config(
    region_name=os.environ.get("AWS_REGION", DEFAULT_REGION),
    retries={"max_attempts": 3, "mode": "standard"},
)

# Initialize clients at module level for reuse across invocations
s3_client = boto3.client("s3", config=BOTO3_CONFIG)
lambda_client = boto3.client("lambda", config=BOTO3_CONFIG)
secretsmanager_client = boto3.client("secretsmanager", config=BOTO3_CONFIG)
http_session = requests.Session()


def build_initializer(settings: InitializerSettings) -> FileIndexInitializer:
    document_api = WfdmDocumentApi(
        api_url=settings.wfdm_api_url,
        token_url=settings.wfdm_token_url,
        session=http_session,
        timeout=settings.http_timeout_seconds,
        scan_metadata=settings.scan_metadata,
    )
    return FileIndexInitializer(
        settings=settings,
        document_api=document_api,
        s3_client=s3_client,
        lambda_client=lambda_client,
        secretsmanager_client=secretsmanager_client,
    )


@logger.inject_lambda_context
@tracer.capture_lambda_handler
@metrics.log_metrics(capture_cold_start_metric=True)
def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """Lambda handler for the WFDM file index initializer queue"""
    try:
        settings = InitializerSettings.from_env()
    except ConfigurationError as e:
        # Nothing in the batch can be processed, let SQS redeliver all of it
        logger.exception(
            f"Invalid configuration: {e.message}", extra={"details": e.details}
        )
        raise

    initializer = build_initializer(settings)
    return initializer.process_batch(event)
