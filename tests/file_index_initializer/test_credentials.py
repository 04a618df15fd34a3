import json
from unittest.mock import MagicMock

import pytest

from credentials import ClientCredentials, load_client_credentials
from lambda_error_handler import AuthenticationError

SECRET_ARN = "arn:aws:secretsmanager:ca-central-1:123456789012:secret:wfdm-AbCdEf"


def secrets_returning(response):
    client = MagicMock()
    client.get_secret_value.return_value = response
    return client


def test_load_client_credentials():
    client = secrets_returning(
        {"SecretString": json.dumps({"clientId": "wfdm-client", "clientSecret": "s3cret"})}
    )

    credentials = load_client_credentials(client, SECRET_ARN)

    assert credentials == ClientCredentials("wfdm-client", "s3cret")
    client.get_secret_value.assert_called_once_with(SecretId=SECRET_ARN)


@pytest.mark.parametrize(
    "response",
    [
        {},
        {"SecretBinary": b"..."},
        {"SecretString": "not json"},
        {"SecretString": json.dumps({"clientId": "wfdm-client"})},
        {"SecretString": json.dumps({"clientId": "", "clientSecret": "s3cret"})},
    ],
)
def test_unusable_secret_is_rejected(response):
    with pytest.raises(AuthenticationError):
        load_client_credentials(secrets_returning(response), SECRET_ARN)


def test_secret_is_masked_in_repr():
    credentials = ClientCredentials("wfdm-client", "s3cret")

    assert "s3cret" not in repr(credentials)
    assert "wfdm-client" in repr(credentials)
