import json
from unittest.mock import MagicMock

import pytest

import handlers
from conftest import SCAN_BUCKET, SECRET_ARN, make_record
from lambda_error_handler import ConfigurationError


@pytest.fixture
def handler_env(monkeypatch, s3_client, lambda_client, secretsmanager_client):
    monkeypatch.setenv("SCAN_BUCKET_NAME", SCAN_BUCKET)
    monkeypatch.setenv("WFDM_API_URL", "https://wfdm.example.com/api")
    monkeypatch.setenv("WFDM_TOKEN_URL", "https://wfdm.example.com/oauth/token")
    monkeypatch.setenv("WFDM_CREDENTIALS_SECRET_ARN", SECRET_ARN)
    monkeypatch.delenv("METADATA_FAILURE_POLICY", raising=False)
    monkeypatch.delenv("SKIP_STAGED_VERSIONS", raising=False)
    monkeypatch.setattr(handlers, "s3_client", s3_client)
    monkeypatch.setattr(handlers, "lambda_client", lambda_client)
    monkeypatch.setattr(handlers, "secretsmanager_client", secretsmanager_client)
    session = MagicMock()
    monkeypatch.setattr(handlers, "http_session", session)
    return session


def test_build_initializer_wires_settings(handler_env, settings):
    initializer = handlers.build_initializer(settings)

    assert initializer.settings is settings
    assert initializer.document_api.api_url == "https://wfdm.example.com/api"
    assert initializer.document_api.session is handler_env
    assert initializer.s3_client is handlers.s3_client


def test_handler_forwards_meta_messages(handler_env, lambda_client, lambda_context):
    body = json.dumps({"fileId": "12345", "eventType": "META"})

    result = handlers.lambda_handler({"Records": [make_record("m1", body)]}, lambda_context)

    assert result == {"batchItemFailures": []}
    lambda_client.invoke.assert_called_once_with(
        FunctionName="wfdm-open-search",
        InvocationType="RequestResponse",
        Payload=body,
    )


def test_handler_reports_failed_messages(handler_env, lambda_context):
    records = [make_record("m1", "not json"), make_record("m2", {"eventType": "meta"})]

    result = handlers.lambda_handler({"Records": records}, lambda_context)

    assert result == {
        "batchItemFailures": [{"itemIdentifier": "m1"}, {"itemIdentifier": "m2"}]
    }


def test_handler_with_empty_batch(handler_env, lambda_context):
    assert handlers.lambda_handler({"Records": []}, lambda_context) == {
        "batchItemFailures": []
    }


def test_handler_without_configuration_fails_the_batch(
    handler_env, monkeypatch, lambda_client, lambda_context
):
    monkeypatch.delenv("SCAN_BUCKET_NAME")
    monkeypatch.delenv("WFDM_CREDENTIALS_SECRET_ARN")
    record = make_record("m1", {"fileId": "1", "eventType": "meta"})

    with pytest.raises(ConfigurationError) as exc_info:
        handlers.lambda_handler({"Records": [record]}, lambda_context)

    assert exc_info.value.missing_configs == [
        "SCAN_BUCKET_NAME",
        "WFDM_CREDENTIALS_SECRET_ARN",
    ]
    lambda_client.invoke.assert_not_called()
