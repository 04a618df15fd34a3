"""
Lambda base construct that creates Python Lambda functions with the common
configuration: naming, log group retention, execution role, the Powertools
layer and active tracing.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from aws_cdk import Duration, RemovalPolicy, Stack
from aws_cdk import aws_iam as iam
from aws_cdk import aws_lambda as lambda_
from aws_cdk import aws_logs as logs
from aws_cdk.aws_lambda_python_alpha import BundlingOptions, PythonFunction
from constructs import Construct

from cdk_logger import get_logger
from config import config as env_config

# Constants
DEFAULT_MEMORY_SIZE = 128
DEFAULT_TIMEOUT_MINUTES = 5
DEFAULT_RUNTIME = lambda_.Runtime.PYTHON_3_12
DEFAULT_ARCHITECTURE = lambda_.Architecture.X86_64
MAX_LAMBDA_NAME_LENGTH = 64
MAX_ROLE_NAME_LENGTH = 64
POWERTOOLS_LAYER_ACCOUNT = "017000801446"
POWERTOOLS_LAYER_VERSION = 4

logger = get_logger("LambdaBase")


def validate_lambda_resources_names(base_name: str) -> str:
    """
    Validates and constructs Lambda resource names.
    """
    if not base_name:
        raise ValueError("Base name cannot be empty")

    lambda_full_name = (
        f"{env_config.resource_prefix}_{base_name}_{env_config.environment}"
    )

    if not re.match(r"^[a-zA-Z0-9_-]+$", lambda_full_name):
        raise ValueError(
            "Resource name can only contain alphanumeric characters, "
            "hyphens, and underscores"
        )

    if len(lambda_full_name) > MAX_LAMBDA_NAME_LENGTH:
        raise ValueError(
            f"Lambda function name '{lambda_full_name}' exceeds the "
            f"maximum length of {MAX_LAMBDA_NAME_LENGTH} characters"
        )

    return lambda_full_name


@dataclass
class LambdaConfig:
    """
    Configuration dataclass for Lambda function creation.

    Attributes:
        name (str): Name of the Lambda function
        entry (str): Directory holding the Lambda source (index.py)
        memory_size (int): Memory allocation in MB (default: 128)
        timeout_minutes (int): Function timeout in minutes (default: 5)
        environment_variables (Optional[Dict[str, str]]): Environment variables for the function
        runtime (lambda_.Runtime): Lambda runtime (default: PYTHON_3_12)
        architecture (lambda_.Architecture): CPU architecture (default: X86_64)
        layers (Optional[List[lambda_.ILayerVersion]]): Extra layers to attach
        log_removal_policy (RemovalPolicy): Removal policy for the CloudWatch log group
        reserved_concurrent_executions (Optional[int]): Reserved concurrency
    """

    name: str
    entry: str
    memory_size: int = DEFAULT_MEMORY_SIZE
    timeout_minutes: int = DEFAULT_TIMEOUT_MINUTES
    environment_variables: Optional[Dict[str, str]] = None
    runtime: lambda_.Runtime = DEFAULT_RUNTIME
    architecture: lambda_.Architecture = DEFAULT_ARCHITECTURE
    layers: Optional[List[lambda_.ILayerVersion]] = None
    lambda_handler: str = "lambda_handler"
    log_removal_policy: RemovalPolicy = RemovalPolicy.DESTROY
    reserved_concurrent_executions: Optional[int] = None


class Lambda(Construct):
    """
    A CDK construct for creating standardized Python Lambda functions.

    Example:
        ```python
        config = LambdaConfig(
            name="my-function",
            entry="lambdas/back_end/my_function",
            timeout_minutes=10,
        )
        lambda_function = Lambda(self, "MyFunction", config)
        ```
    """

    def __init__(
        self, scope: Construct, construct_id: str, config: LambdaConfig, **kwargs
    ):
        super().__init__(scope, construct_id, **kwargs)

        if config.memory_size < 128 or config.memory_size > 10240:
            raise ValueError("Memory size must be between 128 MB and 10,240 MB")

        if config.timeout_minutes < 1 or config.timeout_minutes > 15:
            raise ValueError("Timeout must be between 1 and 15 minutes")

        stack = Stack.of(self)
        lambda_function_name = validate_lambda_resources_names(config.name)
        logger.debug(f"Validated function name: {lambda_function_name}")

        arch = "arm64" if config.architecture == lambda_.Architecture.ARM_64 else "x86_64"
        powertools_layer = lambda_.LayerVersion.from_layer_version_arn(
            self,
            "PowertoolsLayer",
            f"arn:{stack.partition}:lambda:{stack.region}:{POWERTOOLS_LAYER_ACCOUNT}:"
            f"layer:AWSLambdaPowertoolsPythonV3-python312-{arch}:{POWERTOOLS_LAYER_VERSION}",
        )
        layer_objects = [powertools_layer]
        if config.layers:
            layer_objects.extend(config.layers)

        lambda_log_group = logs.LogGroup(
            self,
            "LambdaLogGroup",
            log_group_name=f"/aws/lambda/{lambda_function_name}",
            retention=env_config.logging.cloudwatch_retention,
        )
        lambda_log_group.apply_removal_policy(config.log_removal_policy)

        role_name = f"role-{lambda_function_name}"[:MAX_ROLE_NAME_LENGTH]
        self._lambda_role = iam.Role(
            self,
            f"{lambda_function_name}ExecutionRole",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            role_name=role_name,
        )
        self._lambda_role.add_managed_policy(
            iam.ManagedPolicy.from_aws_managed_policy_name(
                "service-role/AWSLambdaBasicExecutionRole"
            )
        )

        lambda_environment_variables = dict(config.environment_variables or {})
        lambda_environment_variables["RESOURCE_PREFIX"] = env_config.resource_prefix
        lambda_environment_variables["ENVIRONMENT"] = env_config.environment

        props = {
            "function_name": lambda_function_name,
            "handler": config.lambda_handler,
            "entry": config.entry,
            "role": self._lambda_role,
            "log_group": lambda_log_group,
            "runtime": config.runtime,
            "architecture": config.architecture,
            "timeout": Duration.minutes(config.timeout_minutes),
            "memory_size": config.memory_size,
            "tracing": lambda_.Tracing.ACTIVE,
            "layers": layer_objects,
            "environment": lambda_environment_variables,
        }
        if config.reserved_concurrent_executions is not None:
            props["reserved_concurrent_executions"] = (
                config.reserved_concurrent_executions
            )

        self._function = PythonFunction(
            self,
            "StandardPythonLambda",
            index="index.py",
            bundling=BundlingOptions(
                asset_excludes=["__pycache__", "*.pyc", "tests"],
            ),
            **props,
        )
        logger.info(f"Created Python Lambda: {lambda_function_name}")

    @property
    def function(self) -> lambda_.Function:
        return self._function

    @property
    def function_name(self) -> str:
        return self._function.function_name

    @property
    def function_arn(self) -> str:
        return self._function.function_arn

    @property
    def lambda_role(self) -> iam.Role:
        return self._lambda_role
