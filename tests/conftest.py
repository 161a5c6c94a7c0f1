import pytest

from pipegen.core.models import CustomJobOptions, DeploymentEnvironment, PipelineOptions
from pipegen.core.services.builders import JobBuilder, StageBuilder, VariableBuilder
from pipegen.core.services.builders.pipeline import PipelineGenerator


@pytest.fixture
def dotnet_options() -> PipelineOptions:
    return PipelineOptions(project_type="dotnet")


@pytest.fixture
def full_options() -> PipelineOptions:
    return PipelineOptions(
        project_type="dotnet",
        dotnet_version="8.0",
        include_code_quality=True,
        include_security=True,
        include_performance=True,
        runner_tags=["docker", "linux"],
        custom_variables={"BUILD_CONFIGURATION": "Debug", "MY_FLAG": "on"},
        deployment_environments=[
            DeploymentEnvironment(
                name="Staging",
                url="https://staging.example.com",
                auto_deploy_pattern="develop",
            ),
            DeploymentEnvironment(name="production", url="https://example.com", is_manual=True),
        ],
        custom_jobs=[
            CustomJobOptions(name="cleanup_job", stage="cleanup", script=["./cleanup.sh"]),
        ],
    )


@pytest.fixture
def stage_builder() -> StageBuilder:
    return StageBuilder()


@pytest.fixture
def variable_builder() -> VariableBuilder:
    return VariableBuilder()


@pytest.fixture
def job_builder(variable_builder) -> JobBuilder:
    return JobBuilder(variable_builder)


@pytest.fixture
def generator() -> PipelineGenerator:
    return PipelineGenerator()
