from dataclasses import dataclass
from typing import Optional

from aws_cdk import CfnOutput, Duration, RemovalPolicy
from aws_cdk import aws_kms as kms
from aws_cdk import aws_sqs as sqs
from constructs import Construct

from config import config


@dataclass
class SQSProps:
    queue_name: Optional[str] = None
    visibility_timeout: Duration = Duration.seconds(30)
    retention_period: Duration = Duration.days(4)
    encryption: bool = True
    enforce_ssl: bool = True
    dead_letter_queue: Optional[sqs.IQueue] = None
    max_receive_count: int = 3
    removal_policy: RemovalPolicy = RemovalPolicy.DESTROY


class SQSConstruct(Construct):
    """
    A KMS encrypted queue with a dead letter queue.

    Messages that fail max_receive_count times (e.g. a WFDM file that never
    resolves) land in the DLQ instead of cycling forever.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        props: SQSProps,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.props = props or SQSProps()

        queue_name = (
            f"{config.resource_prefix}-{self.props.queue_name}-{config.environment}"
            if self.props.queue_name
            else None
        )

        encryption_key = None
        if self.props.encryption:
            encryption_key = kms.Key(
                self,
                f"{construct_id}EncryptionKey",
                enable_key_rotation=True,
                removal_policy=self.props.removal_policy,
            )

        # If no DLQ provided but max_receive_count > 0, create a new DLQ
        dlq = self.props.dead_letter_queue
        if dlq is None and self.props.max_receive_count > 0:
            dlq_construct = SQSConstruct(
                self,
                f"{construct_id}DLQ",
                SQSProps(
                    queue_name=f"{self.props.queue_name}-dlq"
                    if self.props.queue_name
                    else None,
                    retention_period=Duration.days(14),
                    encryption=self.props.encryption,
                    enforce_ssl=self.props.enforce_ssl,
                    removal_policy=self.props.removal_policy,
                    max_receive_count=0,
                ),
            )
            dlq = dlq_construct.queue

        queue_props = {
            "queue_name": queue_name,
            "visibility_timeout": self.props.visibility_timeout,
            "retention_period": self.props.retention_period,
            "enforce_ssl": self.props.enforce_ssl,
            "removal_policy": self.props.removal_policy,
        }

        if self.props.encryption:
            queue_props["encryption"] = sqs.QueueEncryption.KMS
            queue_props["encryption_master_key"] = encryption_key

        if dlq:
            queue_props["dead_letter_queue"] = sqs.DeadLetterQueue(
                queue=dlq, max_receive_count=self.props.max_receive_count
            )

        self._queue = sqs.Queue(self, f"{construct_id}Queue", **queue_props)

        CfnOutput(
            self,
            f"{construct_id}QueueUrl",
            value=self._queue.queue_url,
            export_name=f"{config.resource_prefix}-{construct_id}QueueUrl-{config.environment}",
        )

        self._encryption_key = encryption_key
        self._dlq = dlq

    @property
    def queue(self) -> sqs.IQueue:
        return self._queue

    @property
    def queue_url(self) -> str:
        return self._queue.queue_url

    @property
    def queue_arn(self) -> str:
        return self._queue.queue_arn

    @property
    def encryption_key(self) -> Optional[kms.IKey]:
        return self._encryption_key

    @property
    def dead_letter_queue(self) -> Optional[sqs.IQueue]:
        return self._dlq
