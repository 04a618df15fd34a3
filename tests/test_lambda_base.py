import pytest

pytest.importorskip("aws_cdk.aws_lambda_python_alpha")

import config  # noqa: E402
from wfdm_constructs import lambda_base  # noqa: E402


def test_lambda_names_carry_prefix_and_environment():
    name = lambda_base.validate_lambda_resources_names("file-index-initializer")

    assert name == (
        f"{config.config.resource_prefix}_file-index-initializer_{config.config.environment}"
    )


@pytest.mark.parametrize("base_name", ["", "bad name", "x" * 64])
def test_invalid_lambda_names_are_rejected(base_name):
    with pytest.raises(ValueError):
        lambda_base.validate_lambda_resources_names(base_name)


def test_functions_are_bundled_from_source():
    # No dist/ build step ships with this app
    assert not hasattr(lambda_base, "DIST_PATH")
    assert not hasattr(config, "DIST_PATH")
    assert lambda_base.PythonFunction is not None
