from dataclasses import dataclass
from typing import Optional

import aws_cdk as cdk
from aws_cdk import CfnOutput, Duration, RemovalPolicy
from aws_cdk import aws_iam as iam
from aws_cdk import aws_lambda as lambda_
from aws_cdk import aws_lambda_event_sources as lambda_event_sources
from aws_cdk import aws_s3 as s3
from aws_cdk import aws_secretsmanager as secretsmanager
from constructs import Construct

from config import config
from wfdm_constructs.lambda_base import Lambda, LambdaConfig
from wfdm_constructs.sqs import SQSConstruct, SQSProps


@dataclass
class FileIndexInitializerStackProps:
    scan_bucket_name: str
    indexer_function_name: str
    credentials_secret_arn: str
    source_queue_name: Optional[str] = "file-index"


class FileIndexInitializerStack(cdk.Stack):
    """
    Queue, dead letter queue and the initializer Lambda that drains it.

    WFDM publishes file events to the queue; the Lambda stages BYTES events in
    the ClamAV bucket and forwards META events to the OpenSearch indexer.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        props: FileIndexInitializerStackProps,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        removal_policy = (
            RemovalPolicy.RETAIN
            if config.should_retain_resources
            else RemovalPolicy.DESTROY
        )

        self._queue = SQSConstruct(
            self,
            "FileIndexQueue",
            SQSProps(
                queue_name=props.source_queue_name,
                visibility_timeout=Duration.seconds(
                    config.queue.visibility_timeout_seconds
                ),
                max_receive_count=config.queue.max_receive_count,
                removal_policy=removal_policy,
            ),
        )

        self._scan_bucket = s3.Bucket.from_bucket_name(
            self, "ClamAvScanBucket", props.scan_bucket_name
        )
        self._credentials_secret = secretsmanager.Secret.from_secret_complete_arn(
            self, "WfdmClientCredentials", props.credentials_secret_arn
        )
        self._indexer_function = lambda_.Function.from_function_name(
            self, "OpenSearchIndexerLambda", props.indexer_function_name
        )

        initializer_env = {
            "POWERTOOLS_SERVICE_NAME": "wfdm-file-index-initializer",
            "POWERTOOLS_METRICS_NAMESPACE": "WFDM/FileIndexInitializer",
            "LOG_LEVEL": config.logging.level,
            "SCAN_BUCKET_NAME": props.scan_bucket_name,
            "INDEXER_FUNCTION_NAME": props.indexer_function_name,
            "WFDM_API_URL": config.wfdm.api_url,
            "WFDM_TOKEN_URL": config.wfdm.token_url,
            "WFDM_CREDENTIALS_SECRET_ARN": props.credentials_secret_arn,
            "WFDM_HTTP_TIMEOUT_SECONDS": str(config.wfdm.http_timeout_seconds),
            "METADATA_FAILURE_POLICY": config.scanning.metadata_failure_policy,
            "SKIP_STAGED_VERSIONS": str(config.scanning.skip_staged_versions).lower(),
        }

        self._initializer_lambda = Lambda(
            self,
            "FileIndexInitializerLambda",
            LambdaConfig(
                name="file-index-initializer",
                entry="lambdas/back_end/file_index_initializer",
                memory_size=config.lambda_memory_size,
                timeout_minutes=config.lambda_timeout_minutes,
                environment_variables=initializer_env,
            ),
        )

        self._grant_permissions()

        event_source_props = {
            "batch_size": config.queue.batch_size,
            "report_batch_item_failures": True,
        }
        if config.queue.max_batching_window_seconds:
            event_source_props["max_batching_window"] = Duration.seconds(
                config.queue.max_batching_window_seconds
            )
        self._initializer_lambda.function.add_event_source(
            lambda_event_sources.SqsEventSource(
                self._queue.queue, **event_source_props
            )
        )

        CfnOutput(
            self,
            "FileIndexQueueArn",
            value=self._queue.queue_arn,
            description="Queue receiving WFDM file events",
        )

        CfnOutput(
            self,
            "FileIndexInitializerLambdaArn",
            value=self._initializer_lambda.function_arn,
            description="File Index Initializer Lambda ARN",
        )

    def _grant_permissions(self) -> None:
        """Grant the initializer access to the bucket, secret and indexer"""
        function = self._initializer_lambda.function

        # PutObject plus HeadObject/HeadBucket for the existence checks
        self._scan_bucket.grant_put(function)
        self._scan_bucket.grant_read(function)
        function.add_to_role_policy(
            iam.PolicyStatement(
                actions=["s3:ListBucket"],
                resources=[self._scan_bucket.bucket_arn],
            )
        )

        self._credentials_secret.grant_read(function)
        self._indexer_function.grant_invoke(function)

    @property
    def queue(self) -> SQSConstruct:
        return self._queue

    @property
    def initializer_lambda(self) -> Lambda:
        return self._initializer_lambda
