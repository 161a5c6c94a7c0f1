import logging
from typing import Callable, Dict, List, NamedTuple, Optional

from pipegen.core import ci_scripts
from pipegen.core.config import DEFAULT_ARTIFACT_EXPIRE_IN, DEFAULT_DOTNET_VERSION
from pipegen.core.exceptions import ArgumentMissingError
from pipegen.core.models import CustomJobOptions, DeploymentEnvironment, PipelineOptions
from pipegen.model import ArtifactReports, Job, JobArtifacts, JobCache, JobEnvironment, Rule

from .variables import VariableBuilder

logger = logging.getLogger(__name__)


DEFAULT_IMAGES: Dict[str, str] = {
    "nodejs": "node:18",
    "python": "python:3.11",
    "docker": "docker:latest",
    "generic": "ubuntu:latest",
}

QUALITY_IMAGE = "sonarsource/sonar-scanner-cli:latest"
SECURITY_IMAGE = "owasp/zap2docker-stable:latest"
PERFORMANCE_IMAGE = "sitespeedio/sitespeed.io:latest"

DEFAULT_CACHE_PATHS: Dict[str, List[str]] = {
    "dotnet": ["~/.nuget/packages/"],
    "nodejs": ["node_modules/"],
    "python": [".pip-cache/"],
}

# Что сохраняем после сборки
BUILD_ARTIFACT_PATHS: Dict[str, List[str]] = {
    "dotnet": ["bin/", "obj/"],
    "nodejs": ["dist/", "build/"],
    "python": ["build/", "dist/"],
}

# (paths, junit, cobertura) для тестовых задач
TEST_REPORTS: Dict[str, Dict[str, List[str]]] = {
    "dotnet": {
        "paths": ["TestResults/"],
        "junit": ["TestResults/*.trx"],
        "cobertura": ["TestResults/*/coverage.cobertura.xml"],
    },
    "nodejs": {
        "junit": ["test-results.xml"],
    },
    "python": {
        "junit": ["test-results.xml"],
        "cobertura": ["coverage.xml"],
    },
}


def default_image(options: PipelineOptions) -> str:
    """
    docker_image из опций побеждает всегда; для .NET тег образа = версия SDK.
    """
    if options.docker_image:
        return options.docker_image
    project_type = options.normalized_project_type
    if project_type == "dotnet":
        return f"mcr.microsoft.com/dotnet/sdk:{options.dotnet_version or DEFAULT_DOTNET_VERSION}"
    return DEFAULT_IMAGES.get(project_type, DEFAULT_IMAGES["generic"])


def _runner_tags(options: PipelineOptions) -> Optional[List[str]]:
    return list(options.runner_tags) or None


def _expire_in(options: PipelineOptions) -> str:
    if options.artifacts is not None:
        return options.artifacts.default_expire_in
    return DEFAULT_ARTIFACT_EXPIRE_IN


def _find_environment(stage: str, options: PipelineOptions) -> Optional[DeploymentEnvironment]:
    normalized = stage.lower()
    for env in options.deployment_environments:
        if env.stage_name == normalized:
            return env
    return None


class _StageRule(NamedTuple):
    predicate: Callable[[PipelineOptions], bool]
    factory: Callable[["JobBuilder", PipelineOptions], Dict[str, Job]]


class JobBuilder:
    """
    Собирает задачи для отдельной стадии.

    Стадия -> (условие по опциям, фабрика задач) описаны таблицей
    _STAGE_JOB_RULES; стадии окружений деплоя разбираются отдельно.
    """

    def __init__(self, variable_builder: Optional[VariableBuilder] = None) -> None:
        self.variable_builder = variable_builder or VariableBuilder()

    def build_jobs_for_stage(self, stage: Optional[str], options: Optional[PipelineOptions]) -> Dict[str, Job]:
        if not stage or not stage.strip():
            raise ArgumentMissingError("stage", "Stage name cannot be null or empty")
        if options is None:
            raise ArgumentMissingError("options")

        normalized = stage.strip().lower()
        jobs: Dict[str, Job] = {}
        rule = _STAGE_JOB_RULES.get(normalized)
        if rule is not None:
            if rule.predicate(options):
                jobs.update(rule.factory(self, options))
            else:
                logger.debug("Stage %r disabled by options", stage)

        # окружение может называться как стандартная стадия (например, deploy)
        env = _find_environment(normalized, options)
        if env is not None:
            jobs[f"deploy_{env.stage_name}"] = self.create_environment_deployment_job(env, options)

        if not jobs:
            logger.debug("No jobs for stage %r", stage)
        return jobs

    # --- build / test / deploy ---

    def create_build_job(self, options: PipelineOptions) -> Job:
        project_type = options.normalized_project_type

        job = Job(
            stage="build",
            image=default_image(options),
            tags=_runner_tags(options),
            variables=self.variable_builder.build_job_variables("build", options),
            script=ci_scripts.make_script(project_type, "build"),
            artifacts=self._build_artifacts(options),
        )

        if options.cache is not None:
            job.cache = JobCache(
                key=options.cache.key or "$CI_COMMIT_REF_SLUG",
                paths=list(options.cache.paths) or list(DEFAULT_CACHE_PATHS.get(project_type, [])) or None,
                policy=options.cache.policy,
                when=options.cache.when,
            )

        return job

    def create_test_jobs(self, options: PipelineOptions) -> Dict[str, Job]:
        project_type = options.normalized_project_type

        job = Job(
            stage="test",
            image=default_image(options),
            tags=_runner_tags(options),
            variables=self.variable_builder.build_job_variables("test", options),
            dependencies=["build"],
            script=ci_scripts.make_script(project_type, "test"),
            artifacts=self._test_artifacts(options),
        )
        return {"test": job}

    def create_deployment_jobs(self, options: PipelineOptions) -> Dict[str, Job]:
        """
        Общая ручная задача deploy. При заданных окружениях не создаётся:
        у каждого окружения своя стадия и своя задача deploy_<env>.
        """
        if options.deployment_environments:
            return {}

        job = Job(
            stage="deploy",
            image=default_image(options),
            tags=_runner_tags(options),
            variables=self.variable_builder.build_job_variables("deploy", options),
            dependencies=["build"],
            script=ci_scripts.make_script(options.normalized_project_type, "deploy"),
            when="manual",
        )
        return {"deploy": job}

    def create_environment_deployment_job(self, env: DeploymentEnvironment, options: PipelineOptions) -> Job:
        variables = self.variable_builder.build_job_variables("deploy", options)
        variables.update(env.variables)
        if env.kubernetes_namespace:
            variables["KUBE_NAMESPACE"] = env.kubernetes_namespace

        job = Job(
            stage=env.stage_name,
            image=default_image(options),
            tags=_runner_tags(options),
            variables=variables,
            dependencies=["build"],
            script=ci_scripts.make_environment_deploy_script(env.name),
            environment=JobEnvironment(
                name=env.name,
                url=env.url,
                auto_stop_in=env.auto_stop_in if env.auto_stop else None,
            ),
        )

        if env.is_manual:
            job.when = "manual"
        elif env.auto_deploy_pattern:
            # автодеплой только из указанной ветки, иначе ручной запуск
            job.rules = [
                Rule(if_=f'$CI_COMMIT_BRANCH == "{env.auto_deploy_pattern}"', when="on_success"),
                Rule(when="manual", allow_failure=True),
            ]

        return job

    # --- необязательные стадии ---

    def create_code_quality_job(self, options: PipelineOptions) -> Dict[str, Job]:
        return {
            "code_quality": Job(
                stage="quality",
                image=QUALITY_IMAGE,
                tags=_runner_tags(options),
                variables=self.variable_builder.build_job_variables("quality", options),
                script=ci_scripts.make_quality_script(),
                allow_failure=True,
            )
        }

    def create_security_scan_job(self, options: PipelineOptions) -> Dict[str, Job]:
        return {
            "security_scan": Job(
                stage="security",
                image=SECURITY_IMAGE,
                tags=_runner_tags(options),
                variables=self.variable_builder.build_job_variables("security", options),
                script=ci_scripts.make_security_script(),
                allow_failure=True,
            )
        }

    def create_performance_test_job(self, options: PipelineOptions) -> Dict[str, Job]:
        return {
            "performance_test": Job(
                stage="performance",
                image=PERFORMANCE_IMAGE,
                tags=_runner_tags(options),
                variables=self.variable_builder.build_job_variables("performance", options),
                script=ci_scripts.make_performance_script(),
                allow_failure=True,
            )
        }

    # --- пользовательские задачи ---

    def build_custom_job(self, custom_job: Optional[CustomJobOptions], options: Optional[PipelineOptions]) -> Job:
        if custom_job is None:
            raise ArgumentMissingError("custom_job")
        if options is None:
            raise ArgumentMissingError("options")

        variables = dict(custom_job.variables)
        variables.update(self.variable_builder.build_job_variables("custom", options))

        return Job(
            stage=custom_job.stage,
            image=custom_job.image or default_image(options),
            script=list(custom_job.script),
            before_script=list(custom_job.before_script) or None,
            after_script=list(custom_job.after_script) or None,
            variables=variables,
            when=custom_job.when,
            allow_failure=custom_job.allow_failure or None,
            tags=list(custom_job.tags) or _runner_tags(options),
        )

    # --- артефакты ---

    def _build_artifacts(self, options: PipelineOptions) -> Optional[JobArtifacts]:
        paths = list(BUILD_ARTIFACT_PATHS.get(options.normalized_project_type, []))
        if options.artifacts is not None:
            paths.extend(p for p in options.artifacts.default_paths if p not in paths)

        if not paths:
            return None

        return JobArtifacts(paths=paths, expire_in=_expire_in(options), when="on_success")

    def _test_artifacts(self, options: PipelineOptions) -> Optional[JobArtifacts]:
        template = TEST_REPORTS.get(options.normalized_project_type)
        if template is None:
            return None

        include_junit = options.artifacts is None or options.artifacts.include_test_reports
        include_coverage = options.artifacts is None or options.artifacts.include_coverage_reports

        reports = ArtifactReports(
            junit=list(template["junit"]) if include_junit and "junit" in template else None,
            cobertura=list(template["cobertura"]) if include_coverage and "cobertura" in template else None,
        )
        has_reports = reports.junit is not None or reports.cobertura is not None

        paths = list(template.get("paths", []))
        if not paths and not has_reports:
            return None

        return JobArtifacts(
            paths=paths or None,
            reports=reports if has_reports else None,
            expire_in=_expire_in(options),
            when="always",
        )


_STAGE_JOB_RULES: Dict[str, _StageRule] = {
    "build": _StageRule(lambda o: True, lambda b, o: {"build": b.create_build_job(o)}),
    "test": _StageRule(lambda o: o.include_tests, JobBuilder.create_test_jobs),
    "quality": _StageRule(lambda o: o.include_code_quality, JobBuilder.create_code_quality_job),
    "security": _StageRule(lambda o: o.include_security, JobBuilder.create_security_scan_job),
    "performance": _StageRule(lambda o: o.include_performance, JobBuilder.create_performance_test_job),
    "deploy": _StageRule(
        lambda o: o.include_deployment and not o.deployment_environments,
        JobBuilder.create_deployment_jobs,
    ),
}
