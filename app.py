#!/usr/bin/env python3
"""Entry point for the WFDM File Index Initializer CDK application."""
import os

import aws_cdk as cdk

from cdk_logger import CDKLogger, get_logger
from config import config
from wfdm_stacks.file_index_initializer_stack import (
    FileIndexInitializerStack,
    FileIndexInitializerStackProps,
)

# Initialize global logger configuration
CDKLogger.set_level(config.logging.level)

logger = get_logger("CDKApp")
logger.info(
    f"Initializing WFDM File Index Initializer CDK App with log level: {config.logging.level}"
)

app = cdk.App()

env = cdk.Environment(
    account=config.account_id or os.environ.get("CDK_DEFAULT_ACCOUNT"),
    region=config.primary_region,
)

file_index_initializer_stack = FileIndexInitializerStack(
    app,
    f"{config.resource_prefix}-file-index-initializer-{config.environment}",
    props=FileIndexInitializerStackProps(
        scan_bucket_name=config.scanning.bucket_name,
        indexer_function_name=config.indexer_function_name,
        credentials_secret_arn=config.wfdm.credentials_secret_arn,
    ),
    env=env,
    description="Stages WFDM file versions for virus scanning and forwards metadata events to the indexer",
)

cdk.Tags.of(app).add("Application", f"{config.resource_prefix}-file-index-initializer")
cdk.Tags.of(app).add("Environment", config.environment)

app.synth()
