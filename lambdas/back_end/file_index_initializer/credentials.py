import json
from dataclasses import dataclass

from aws_lambda_powertools import Logger

from lambda_error_handler import AuthenticationError

logger = Logger()


@dataclass(frozen=True)
class ClientCredentials:
    client_id: str
    client_secret: str

    def __repr__(self) -> str:
        return f"ClientCredentials(client_id={self.client_id!r}, client_secret='*****')"


def load_client_credentials(secretsmanager_client, secret_arn: str) -> ClientCredentials:
    """
    Get the WFDM client identity from Secrets Manager.

    The secret is a JSON document: {"clientId": "...", "clientSecret": "..."}
    """
    logger.info(f"Loading WFDM client credentials from secret: {secret_arn}")
    secret_response = secretsmanager_client.get_secret_value(SecretId=secret_arn)

    if not secret_response or "SecretString" not in secret_response:
        raise AuthenticationError(f"No secret value found for {secret_arn}")

    try:
        secret_data = json.loads(secret_response["SecretString"])
    except ValueError:
        raise AuthenticationError(f"Secret {secret_arn} is not valid JSON")

    client_id = secret_data.get("clientId")
    client_secret = secret_data.get("clientSecret")
    if not client_id or not client_secret:
        raise AuthenticationError(
            f"Secret {secret_arn} must contain clientId and clientSecret"
        )

    return ClientCredentials(client_id=client_id, client_secret=client_secret)
