import pytest

from pipegen.core.config import DEFAULT_ARTIFACT_EXPIRE_IN, DEFAULT_DOTNET_VERSION
from pipegen.core.exceptions import ArgumentMissingError
from pipegen.core.models import (
    ArtifactOptions,
    CacheOptions,
    CustomJobOptions,
    DeploymentEnvironment,
    PipelineOptions,
)
from pipegen.core.services.builders import JobBuilder

DOTNET_TEST_SCRIPT = (
    'dotnet test --configuration Release --no-build --collect:"XPlat Code Coverage" '
    "--logger trx --results-directory ./TestResults/"
)


class TestBuildJob:
    def test_dotnet_build_job(self, job_builder, dotnet_options):
        jobs = job_builder.build_jobs_for_stage("build", dotnet_options)

        assert list(jobs) == ["build"]
        job = jobs["build"]
        assert job.stage == "build"
        assert job.script == ["dotnet restore", "dotnet build --configuration Release --no-restore"]
        assert job.image.name == f"mcr.microsoft.com/dotnet/sdk:{DEFAULT_DOTNET_VERSION}"
        assert job.artifacts.paths == ["bin/", "obj/"]
        assert job.artifacts.expire_in == DEFAULT_ARTIFACT_EXPIRE_IN
        assert job.artifacts.when == "on_success"
        assert job.variables["DOTNET_VERBOSITY"] == "minimal"
        assert job.tags is None
        assert job.cache is None

    def test_dotnet_version_selects_sdk_image(self, job_builder):
        options = PipelineOptions(project_type="dotnet", dotnet_version="8.0")
        job = job_builder.create_build_job(options)
        assert job.image.name == "mcr.microsoft.com/dotnet/sdk:8.0"

    def test_docker_image_wins(self, job_builder):
        options = PipelineOptions(project_type="dotnet", dotnet_version="8.0", docker_image="my/sdk:1")
        assert job_builder.create_build_job(options).image.name == "my/sdk:1"

    @pytest.mark.parametrize(
        "project_type, image",
        [("nodejs", "node:18"), ("python", "python:3.11"), ("docker", "docker:latest"), ("generic", "ubuntu:latest")],
    )
    def test_default_images(self, job_builder, project_type, image):
        job = job_builder.create_build_job(PipelineOptions(project_type=project_type))
        assert job.image.name == image

    def test_runner_tags(self, job_builder):
        options = PipelineOptions(project_type="nodejs", runner_tags=["docker", "docker", "linux"])
        assert job_builder.create_build_job(options).tags == ["docker", "linux"]

    def test_artifact_options(self, job_builder):
        options = PipelineOptions(
            project_type="dotnet",
            artifacts=ArtifactOptions(default_paths=["publish/", "bin/"], default_expire_in="30 days"),
        )
        artifacts = job_builder.create_build_job(options).artifacts

        assert artifacts.paths == ["bin/", "obj/", "publish/"]
        assert artifacts.expire_in == "30 days"

    def test_docker_build_has_no_artifacts(self, job_builder):
        job = job_builder.create_build_job(PipelineOptions(project_type="docker"))
        assert job.artifacts is None
        assert job.script[0].startswith("docker build")

    def test_cache_uses_default_paths(self, job_builder):
        options = PipelineOptions(project_type="dotnet", cache=CacheOptions())
        cache = job_builder.create_build_job(options).cache

        assert cache.key == "$CI_COMMIT_REF_SLUG"
        assert cache.paths == ["~/.nuget/packages/"]
        assert cache.policy == "pull-push"

    def test_cache_explicit_paths(self, job_builder):
        options = PipelineOptions(project_type="nodejs", cache=CacheOptions(key="deps", paths=[".npm/"]))
        cache = job_builder.create_build_job(options).cache

        assert cache.key == "deps"
        assert cache.paths == [".npm/"]


class TestTestJobs:
    def test_dotnet_test_job(self, job_builder, dotnet_options):
        jobs = job_builder.build_jobs_for_stage("test", dotnet_options)

        job = jobs["test"]
        assert job.script == [DOTNET_TEST_SCRIPT]
        assert job.dependencies == ["build"]
        assert job.artifacts.reports.junit == ["TestResults/*.trx"]
        assert job.artifacts.reports.cobertura == ["TestResults/*/coverage.cobertura.xml"]
        assert job.artifacts.paths == ["TestResults/"]
        assert job.artifacts.when == "always"

    def test_disabled_tests(self, job_builder):
        options = PipelineOptions(project_type="dotnet", include_tests=False)
        assert job_builder.build_jobs_for_stage("test", options) == {}

    def test_python_reports(self, job_builder):
        job = job_builder.create_test_jobs(PipelineOptions(project_type="python"))["test"]

        assert job.artifacts.reports.junit == ["test-results.xml"]
        assert job.artifacts.reports.cobertura == ["coverage.xml"]
        assert job.artifacts.paths is None

    def test_report_switches(self, job_builder):
        options = PipelineOptions(
            project_type="python",
            artifacts=ArtifactOptions(include_test_reports=False),
        )
        reports = job_builder.create_test_jobs(options)["test"].artifacts.reports

        assert reports.junit is None
        assert reports.cobertura == ["coverage.xml"]

    def test_generic_test_job_has_no_artifacts(self, job_builder):
        job = job_builder.create_test_jobs(PipelineOptions(project_type="generic"))["test"]

        assert job.artifacts is None
        assert job.script == ["echo 'Running tests'", "# Add your test commands here"]


class TestDeploymentJobs:
    def test_generic_manual_deploy(self, job_builder, dotnet_options):
        job = job_builder.build_jobs_for_stage("deploy", dotnet_options)["deploy"]

        assert job.when == "manual"
        assert job.dependencies == ["build"]
        assert job.variables["DEPLOY_STRATEGY"] == "rolling"

    def test_deploy_disabled(self, job_builder):
        options = PipelineOptions(project_type="dotnet", include_deployment=False)
        assert job_builder.build_jobs_for_stage("deploy", options) == {}

    def test_environments_replace_generic_deploy(self, job_builder):
        options = PipelineOptions(
            project_type="dotnet",
            deployment_environments=[DeploymentEnvironment(name="staging")],
        )
        assert job_builder.build_jobs_for_stage("deploy", options) == {}

    def test_environment_named_deploy(self, job_builder):
        options = PipelineOptions(
            project_type="dotnet",
            deployment_environments=[DeploymentEnvironment(name="deploy", url="https://app.example.com")],
        )
        jobs = job_builder.build_jobs_for_stage("deploy", options)

        assert list(jobs) == ["deploy_deploy"]
        assert jobs["deploy_deploy"].stage == "deploy"
        assert jobs["deploy_deploy"].environment.url == "https://app.example.com"

    def test_environment_named_like_build_stage(self, job_builder):
        options = PipelineOptions(
            project_type="python",
            deployment_environments=[DeploymentEnvironment(name="Test")],
        )
        jobs = job_builder.build_jobs_for_stage("test", options)

        assert list(jobs) == ["test", "deploy_test"]
        assert jobs["deploy_test"].environment.name == "Test"

    def test_environment_with_auto_deploy(self, job_builder):
        options = PipelineOptions(
            project_type="dotnet",
            deployment_environments=[
                DeploymentEnvironment(
                    name="Staging",
                    url="https://staging.example.com",
                    auto_deploy_pattern="main",
                    variables={"APP_ENV": "staging"},
                )
            ],
        )
        jobs = job_builder.build_jobs_for_stage("staging", options)

        job = jobs["deploy_staging"]
        assert job.stage == "staging"
        assert job.environment.name == "Staging"
        assert job.environment.url == "https://staging.example.com"
        assert job.when is None
        assert job.rules[0].if_ == '$CI_COMMIT_BRANCH == "main"'
        assert job.rules[0].when == "on_success"
        assert job.rules[1].when == "manual"
        assert job.rules[1].allow_failure is True
        assert job.variables["APP_ENV"] == "staging"
        assert job.script[0] == "echo 'Deploying to Staging environment'"

    def test_manual_environment(self, job_builder):
        options = PipelineOptions(
            project_type="nodejs",
            deployment_environments=[DeploymentEnvironment(name="production", is_manual=True, kubernetes_namespace="prod")],
        )
        job = job_builder.build_jobs_for_stage("production", options)["deploy_production"]

        assert job.when == "manual"
        assert job.rules is None
        assert job.variables["KUBE_NAMESPACE"] == "prod"

    def test_auto_stop(self, job_builder):
        env = DeploymentEnvironment(name="review", auto_stop=True, auto_stop_in="1 day")
        options = PipelineOptions(project_type="generic", deployment_environments=[env])

        job = job_builder.create_environment_deployment_job(env, options)
        assert job.environment.auto_stop_in == "1 day"


class TestOptionalStages:
    def test_code_quality(self, job_builder):
        options = PipelineOptions(project_type="dotnet", include_code_quality=True)
        job = job_builder.build_jobs_for_stage("quality", options)["code_quality"]

        assert job.image.name == "sonarsource/sonar-scanner-cli:latest"
        assert job.allow_failure is True
        assert job.script[0].startswith("sonar-scanner")

    def test_security_scan(self, job_builder):
        options = PipelineOptions(project_type="dotnet", include_security=True)
        job = job_builder.build_jobs_for_stage("security", options)["security_scan"]
        assert job.image.name == "owasp/zap2docker-stable:latest"

    def test_performance_test(self, job_builder):
        options = PipelineOptions(project_type="dotnet", include_performance=True)
        job = job_builder.build_jobs_for_stage("performance", options)["performance_test"]
        assert job.image.name == "sitespeedio/sitespeed.io:latest"
        assert job.variables["LOAD_TEST_DURATION"] == "300s"

    @pytest.mark.parametrize("stage", ["quality", "security", "performance"])
    def test_disabled_by_default(self, job_builder, dotnet_options, stage):
        assert job_builder.build_jobs_for_stage(stage, dotnet_options) == {}


class TestDispatch:
    def test_unknown_stage_yields_nothing(self, job_builder, dotnet_options):
        assert job_builder.build_jobs_for_stage("cleanup", dotnet_options) == {}

    def test_stage_is_case_insensitive(self, job_builder, dotnet_options):
        assert list(job_builder.build_jobs_for_stage("BUILD", dotnet_options)) == ["build"]

    @pytest.mark.parametrize("stage", [None, "", "  "])
    def test_empty_stage(self, job_builder, dotnet_options, stage):
        with pytest.raises(ArgumentMissingError) as exc_info:
            job_builder.build_jobs_for_stage(stage, dotnet_options)
        assert exc_info.value.param_name == "stage"

    def test_none_options(self, job_builder):
        with pytest.raises(ArgumentMissingError) as exc_info:
            job_builder.build_jobs_for_stage("build", None)
        assert exc_info.value.param_name == "options"

    def test_default_variable_builder(self, dotnet_options):
        assert "build" in JobBuilder().build_jobs_for_stage("build", dotnet_options)


class TestCustomJob:
    def test_custom_job(self, job_builder):
        options = PipelineOptions(project_type="python", runner_tags=["shared"])
        custom = CustomJobOptions(
            name="lint",
            stage="test",
            script=["flake8 ."],
            before_script=["pip install flake8"],
            variables={"FLAKE8_OPTS": "--max-line-length=120"},
            allow_failure=True,
        )
        job = job_builder.build_custom_job(custom, options)

        assert job.stage == "test"
        assert job.script == ["flake8 ."]
        assert job.before_script == ["pip install flake8"]
        assert job.after_script is None
        assert job.image.name == "python:3.11"
        assert job.tags == ["shared"]
        assert job.allow_failure is True
        assert job.variables == {"FLAKE8_OPTS": "--max-line-length=120", "CUSTOM_JOB": "true"}

    def test_custom_image_and_tags(self, job_builder):
        options = PipelineOptions(project_type="python", docker_image="python:3.12", runner_tags=["shared"])
        custom = CustomJobOptions(name="x", stage="test", script=["true"], image="alpine", tags=["small"])
        job = job_builder.build_custom_job(custom, options)

        assert job.image.name == "alpine"
        assert job.tags == ["small"]

    def test_none_custom_job(self, job_builder, dotnet_options):
        with pytest.raises(ArgumentMissingError) as exc_info:
            job_builder.build_custom_job(None, dotnet_options)
        assert exc_info.value.param_name == "custom_job"
