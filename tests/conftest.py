"""Pytest configuration for test suite."""

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Lambda sources are deployed flat (index.py next to its modules), so the
# tests import them the same way
ROOT_DIR = Path(__file__).parent.parent
LAMBDA_DIR = ROOT_DIR / "lambdas" / "back_end" / "file_index_initializer"

for path in (LAMBDA_DIR, ROOT_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

os.environ.setdefault("AWS_DEFAULT_REGION", "ca-central-1")
os.environ.setdefault("AWS_REGION", "ca-central-1")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "wfdm-file-index-initializer")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "WFDM/FileIndexInitializer")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "1")

from models import FileDescriptor  # noqa: E402
from processor import FileIndexInitializer, metrics  # noqa: E402
from settings import InitializerSettings, MetadataFailurePolicy  # noqa: E402

SCAN_BUCKET = "wfdm-clamav-scan-bucket"
SECRET_ARN = "arn:aws:secretsmanager:ca-central-1:123456789012:secret:wfdm-client-AbCdEf"


@pytest.fixture(autouse=True)
def clear_metrics():
    yield
    metrics.clear_metrics()


@pytest.fixture
def lambda_context():
    @dataclass
    class LambdaContext:
        function_name: str = "wfdm_file-index-initializer_dev"
        memory_limit_in_mb: int = 512
        invoked_function_arn: str = (
            "arn:aws:lambda:ca-central-1:123456789012:function:wfdm_file-index-initializer_dev"
        )
        aws_request_id: str = "da658bd3-2d6f-4e7b-8ec2-937234644fdc"

    return LambdaContext()


@pytest.fixture
def settings() -> InitializerSettings:
    return InitializerSettings(
        region="ca-central-1",
        scan_bucket_name=SCAN_BUCKET,
        indexer_function_name="wfdm-open-search",
        wfdm_api_url="https://wfdm.example.com/api",
        wfdm_token_url="https://wfdm.example.com/oauth/token",
        credentials_secret_arn=SECRET_ARN,
        metadata_failure_policy=MetadataFailurePolicy.BEST_EFFORT,
    )


@pytest.fixture
def descriptor() -> FileDescriptor:
    return FileDescriptor.from_document(
        {
            "fileId": "12345",
            "mimeType": "application/pdf",
            "fileSize": "2048",
            "metadata": [],
        }
    )


@pytest.fixture
def document_api(descriptor):
    api = MagicMock()
    api.get_access_token.return_value = "token-abc"
    api.get_file_information.return_value = descriptor
    api.set_virus_scan_metadata.return_value = True
    api.get_file_stream.return_value = MagicMock(name="stream")
    return api


@pytest.fixture
def s3_client():
    client = MagicMock()
    client.head_bucket.return_value = {}
    client.put_object.return_value = {"ETag": '"abc"'}
    return client


@pytest.fixture
def lambda_client():
    client = MagicMock()
    client.invoke.return_value = {"StatusCode": 200}
    return client


@pytest.fixture
def secretsmanager_client():
    client = MagicMock()
    client.get_secret_value.return_value = {
        "SecretString": json.dumps({"clientId": "wfdm-client", "clientSecret": "s3cret"})
    }
    return client


@pytest.fixture
def initializer(settings, document_api, s3_client, lambda_client, secretsmanager_client):
    return FileIndexInitializer(
        settings=settings,
        document_api=document_api,
        s3_client=s3_client,
        lambda_client=lambda_client,
        secretsmanager_client=secretsmanager_client,
    )


def make_record(message_id: str, body) -> dict:
    return {
        "messageId": message_id,
        "receiptHandle": f"rh-{message_id}",
        "body": body if isinstance(body, str) else json.dumps(body),
        "eventSource": "aws:sqs",
    }
