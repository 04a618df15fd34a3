from typing import Any, Dict, List, Optional

import requests
from aws_lambda_powertools import Logger, Metrics, Tracer
from aws_lambda_powertools.metrics import MetricUnit
from botocore.exceptions import ClientError

from credentials import ClientCredentials, load_client_credentials
from document_api import WfdmDocumentApi
from lambda_error_handler import (
    LambdaError,
    MetadataUpdateError,
    ResourceNotFoundError,
)
from models import FileNotification, build_batch_response, parse_notification
from settings import InitializerSettings, MetadataFailurePolicy

logger = Logger()
tracer = Tracer()
metrics = Metrics()

NOT_FOUND_CODES = ("404", "NoSuchKey", "NoSuchBucket", "NotFound")


class FileIndexInitializer:
    """
    Processes a batch of WFDM file notifications from SQS.

    BYTES notifications are fetched from WFDM and staged in the ClamAV scan
    bucket, everything else is forwarded as-is to the OpenSearch indexer
    Lambda. Each message succeeds or fails on its own; failed message ids are
    reported back so SQS only redelivers those.
    """

    def __init__(
        self,
        settings: InitializerSettings,
        document_api: WfdmDocumentApi,
        s3_client,
        lambda_client,
        secretsmanager_client,
    ):
        self.settings = settings
        self.document_api = document_api
        self.s3_client = s3_client
        self.lambda_client = lambda_client
        self.secretsmanager_client = secretsmanager_client
        # Loaded on first BYTES message, reused for the rest of the invocation
        self._credentials: Optional[ClientCredentials] = None

    def process_batch(self, event: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        failed_message_ids: List[str] = []

        records = (event or {}).get("Records") or []
        if not records:
            logger.info("No messages to handle, closing SQS batch")
            return build_batch_response(failed_message_ids)

        logger.info(f"Processing SQS batch of {len(records)} message(s)")
        for record in records:
            if self.process_record(record):
                continue
            message_id = record.get("messageId")
            if not message_id:
                # A null itemIdentifier makes SQS fail the whole batch
                logger.error("Failed record has no messageId, it cannot be reported")
                continue
            failed_message_ids.append(message_id)

        logger.info(
            "Close SQS batch",
            extra={
                "records": len(records),
                "failures": len(failed_message_ids),
            },
        )
        return build_batch_response(failed_message_ids)

    def process_record(self, record: Dict[str, Any]) -> bool:
        """Process one SQS record, returns False if it must be redelivered"""
        message_id = record.get("messageId")
        body = record.get("body")
        logger.append_keys(message_id=message_id)
        metrics.add_metric(name="NotificationsReceived", unit=MetricUnit.Count, value=1)

        try:
            logger.info(f"SQS message received: {body}")
            notification = parse_notification(body)
            logger.append_keys(file_id=notification.file_id)

            if notification.is_bytes_event:
                self._stage_file_bytes(notification)
            else:
                self._forward_to_indexer(body)
            return True

        except LambdaError as e:
            logger.error(
                f"Failed to process message {message_id}: {e.message}",
                extra={"error_type": e.__class__.__name__, "details": e.details},
            )
        except (requests.RequestException, ClientError) as e:
            logger.error(
                f"Failure communicating with a remote service for message {message_id}: {str(e)}",
                extra={"error_type": e.__class__.__name__},
            )
        except Exception as e:
            logger.exception(
                f"Unhandled error processing message {message_id}: {str(e)}",
                extra={"error_type": e.__class__.__name__},
            )
        finally:
            logger.info("Finalizing processing...")
            logger.remove_keys(["message_id", "file_id"])

        metrics.add_metric(name="NotificationFailures", unit=MetricUnit.Count, value=1)
        return False

    # ---------------------------------------------------------------- BYTES path

    def _get_credentials(self) -> ClientCredentials:
        if self._credentials is None:
            self._credentials = load_client_credentials(
                self.secretsmanager_client, self.settings.credentials_secret_arn
            )
        return self._credentials

    @tracer.capture_method
    def _stage_file_bytes(self, notification: FileNotification) -> None:
        file_id = notification.file_id
        version_number = notification.version_number

        token = self.document_api.get_access_token(self._get_credentials())
        descriptor = self.document_api.get_file_information(token, file_id)
        logger.info(
            f"File found on WFDM: {file_id}",
            extra={
                "mime_type": descriptor.mime_type,
                "file_size": descriptor.file_size,
            },
        )

        object_key = f"{descriptor.file_id}-{version_number}"
        if self.settings.skip_staged_versions and self._is_already_staged(object_key):
            logger.info(
                f"Version already staged as s3://{self.settings.scan_bucket_name}/{object_key}, skipping"
            )
            metrics.add_metric(name="StagingSkipped", unit=MetricUnit.Count, value=1)
            return

        metadata_added = self.document_api.set_virus_scan_metadata(
            token, file_id, version_number, descriptor
        )
        if not metadata_added:
            metrics.add_metric(
                name="MetadataUpdateFailures", unit=MetricUnit.Count, value=1
            )
            if (
                self.settings.metadata_failure_policy
                == MetadataFailurePolicy.FAIL_FAST
            ):
                raise MetadataUpdateError(file_id, version_number)
            logger.warning(
                f"Could not set virus scan metadata for {file_id}, continuing with transfer"
            )

        self._ensure_scan_bucket()

        stream = self.document_api.get_file_stream(token, file_id, version_number)
        try:
            self.s3_client.put_object(
                Bucket=self.settings.scan_bucket_name,
                Key=object_key,
                Body=stream,
                ContentType=descriptor.mime_type,
                ContentLength=descriptor.file_size,
                Metadata={"title": notification.object_key},
            )
        finally:
            stream.close()

        logger.info(
            f"Staged file for virus scan: s3://{self.settings.scan_bucket_name}/{object_key}"
        )
        metrics.add_metric(name="BytesStaged", unit=MetricUnit.Count, value=1)

    def _ensure_scan_bucket(self) -> None:
        bucket_name = self.settings.scan_bucket_name
        try:
            self.s3_client.head_bucket(Bucket=bucket_name)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                raise ResourceNotFoundError(
                    f"S3 Bucket {bucket_name} does not exist.",
                    resource_type="bucket",
                    resource_id=bucket_name,
                )
            raise

    def _is_already_staged(self, object_key: str) -> bool:
        try:
            self.s3_client.head_object(
                Bucket=self.settings.scan_bucket_name, Key=object_key
            )
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in NOT_FOUND_CODES:
                return False
            raise

    # ----------------------------------------------------------------- META path

    @tracer.capture_method
    def _forward_to_indexer(self, body: str) -> None:
        function_name = self.settings.indexer_function_name
        logger.info(f"Meta only update, invoking indexer Lambda: {function_name}")

        response = self.lambda_client.invoke(
            FunctionName=function_name,
            InvocationType="RequestResponse",
            Payload=body,
        )

        logger.info(
            f"Indexer Lambda invocation response: StatusCode={response.get('StatusCode')}"
        )
        metrics.add_metric(name="MetaForwarded", unit=MetricUnit.Count, value=1)
