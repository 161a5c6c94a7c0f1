import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from pipegen.core.exceptions import ArgumentMissingError
from pipegen.core.models import PipelineOptions
from pipegen.model import VariableValue

logger = logging.getLogger(__name__)

Variables = Dict[str, VariableValue]


DEFAULT_VARIABLES_BY_PROJECT_TYPE: Dict[str, Variables] = {
    "dotnet": {
        "DOTNET_CLI_TELEMETRY_OPTOUT": "true",
        "DOTNET_SKIP_FIRST_TIME_EXPERIENCE": "true",
        "NUGET_PACKAGES": "$CI_PROJECT_DIR/.nuget/packages",
        "DOTNET_RESTORE_DISABLE_PARALLEL": "true",
    },
    "nodejs": {
        "NODE_ENV": "production",
        "NPM_CONFIG_CACHE": "$CI_PROJECT_DIR/.npm",
        "CYPRESS_CACHE_FOLDER": "$CI_PROJECT_DIR/cache/Cypress",
    },
    "python": {
        "PIP_CACHE_DIR": "$CI_PROJECT_DIR/.pip-cache",
        "PYTHONPATH": "$CI_PROJECT_DIR",
        "PYTHONDONTWRITEBYTECODE": "1",
    },
    "docker": {
        "DOCKER_DRIVER": "overlay2",
        "DOCKER_TLS_CERTDIR": "/certs",
    },
    "generic": {},
}

# before_script блока default: по типу проекта
_SETUP_SCRIPTS: Dict[str, List[str]] = {
    "dotnet": ["echo 'Setting up .NET environment'", "dotnet --info"],
    "nodejs": ["echo 'Setting up Node.js environment'", "node --version", "npm --version"],
    "python": ["echo 'Setting up Python environment'", "python --version", "pip --version"],
}


# --- переменные по видам задач ---

def _build_job_variables(options: PipelineOptions) -> Variables:
    variables: Variables = {"BUILD_CONFIGURATION": "Release"}
    project_type = options.normalized_project_type

    if project_type == "dotnet":
        variables["DOTNET_CONFIGURATION"] = "Release"
        variables["DOTNET_VERBOSITY"] = "minimal"
    elif project_type == "nodejs":
        variables["NODE_ENV"] = "production"

    return variables


def _test_job_variables(options: PipelineOptions) -> Variables:
    variables: Variables = {"TEST_CONFIGURATION": "Release"}
    project_type = options.normalized_project_type

    if project_type == "dotnet":
        variables["DOTNET_CONFIGURATION"] = "Release"
        variables["COLLECT_COVERAGE"] = "true"
        variables["LOGGER"] = "trx"
    elif project_type == "nodejs":
        variables["NODE_ENV"] = "test"
        variables["CI"] = "true"
    elif project_type == "python":
        variables["PYTEST_ADDOPTS"] = "--strict-markers --disable-warnings"

    return variables


def _deploy_job_variables(options: PipelineOptions) -> Variables:
    variables: Variables = {
        "DEPLOY_STRATEGY": "rolling",
        "HEALTH_CHECK_ENABLED": "true",
    }
    if options.normalized_project_type == "docker":
        variables["DOCKER_REGISTRY"] = "$CI_REGISTRY"
        variables["DOCKER_IMAGE"] = "$CI_REGISTRY_IMAGE:$CI_COMMIT_SHA"
    return variables


def _quality_job_variables(options: PipelineOptions) -> Variables:
    return {"SONAR_USER_HOME": "${CI_PROJECT_DIR}/.sonar", "GIT_DEPTH": "0"}


def _security_job_variables(options: PipelineOptions) -> Variables:
    return {"SECURITY_SCAN_ENABLED": "true"}


def _performance_job_variables(options: PipelineOptions) -> Variables:
    return {"PERFORMANCE_TEST_ENABLED": "true", "LOAD_TEST_DURATION": "300s"}


def _custom_job_variables(options: PipelineOptions) -> Variables:
    return {"CUSTOM_JOB": "true"}


JOB_VARIABLE_FACTORIES: Dict[str, Callable[[PipelineOptions], Variables]] = {
    "build": _build_job_variables,
    "test": _test_job_variables,
    "deploy": _deploy_job_variables,
    "quality": _quality_job_variables,
    "security": _security_job_variables,
    "performance": _performance_job_variables,
    "custom": _custom_job_variables,
}


class VariableBuilder:
    """
    Глобальные переменные, переменные задач и блок `default:`.

    Приоритет переопределения:
    встроенные значения < значения вида задачи < custom_variables пользователя.
    """

    def build_global_variables(self, options: Optional[PipelineOptions]) -> Variables:
        if options is None:
            raise ArgumentMissingError("options")

        variables = self.get_default_variables(options.project_type)
        project_type = options.normalized_project_type

        if options.dotnet_version and project_type == "dotnet":
            variables["DOTNET_VERSION"] = options.dotnet_version

        if project_type == "docker" or options.docker_image:
            variables["DOCKER_REGISTRY"] = "$CI_REGISTRY"
            variables["DOCKER_IMAGE_NAME"] = "$CI_REGISTRY_IMAGE"
            variables["DOCKER_IMAGE_TAG"] = "$CI_COMMIT_SHA"

        if options.include_deployment or options.deployment_environments:
            variables["DEPLOY_ENABLED"] = "true"
            if options.deployment_environments:
                variables["DEPLOYMENT_ENVIRONMENTS"] = ",".join(
                    env.name for env in options.deployment_environments
                )

        # флаги для скриптов, которые хотят знать, что включено
        if options.include_tests:
            variables["RUN_TESTS"] = "true"
        if options.include_code_quality:
            variables["RUN_CODE_QUALITY"] = "true"
        if options.include_security:
            variables["RUN_SECURITY_SCAN"] = "true"
        if options.include_performance:
            variables["RUN_PERFORMANCE_TESTS"] = "true"

        return self.merge_variables(variables, options.custom_variables)

    def build_job_variables(self, job_type: Optional[str], options: Optional[PipelineOptions]) -> Variables:
        """
        Переменные конкретной задачи. С глобальными НЕ сливаются: это делает
        сам GitLab, и значение задачи побеждает при совпадении ключей.
        Пользовательские custom_variables перекрывают только совпадающие ключи.
        """
        if not job_type or not job_type.strip():
            raise ArgumentMissingError("job_type", "Job type cannot be null or empty")
        if options is None:
            raise ArgumentMissingError("options")

        factory = JOB_VARIABLE_FACTORIES.get(job_type.strip().lower())
        if factory is None:
            logger.debug("No job variables for job type %r", job_type)
            return {}

        variables = factory(options)
        overrides = {
            key: value for key, value in options.custom_variables.items() if key in variables
        }
        return self.merge_variables(variables, overrides)

    def build_default_configuration(self, options: Optional[PipelineOptions]) -> Dict[str, Any]:
        if options is None:
            raise ArgumentMissingError("options")

        default: Dict[str, Any] = {}

        if options.docker_image:
            default["image"] = options.docker_image

        if options.runner_tags:
            default["tags"] = list(options.runner_tags)

        before_script = _SETUP_SCRIPTS.get(options.normalized_project_type)
        if before_script:
            default["before_script"] = list(before_script)

        if options.cache is not None:
            cache: Dict[str, Any] = {
                "key": options.cache.key or "$CI_COMMIT_REF_SLUG",
                "policy": options.cache.policy,
                "when": options.cache.when,
            }
            if options.cache.paths:
                cache["paths"] = list(options.cache.paths)
            default["cache"] = cache

        default["retry"] = {
            "max": 2,
            "when": ["runner_system_failure", "stuck_or_timeout_failure"],
        }
        default["timeout"] = "1h"

        return default

    def get_default_variables(self, project_type: Optional[str]) -> Variables:
        normalized = (project_type or "").strip().lower()
        return dict(
            DEFAULT_VARIABLES_BY_PROJECT_TYPE.get(normalized, DEFAULT_VARIABLES_BY_PROJECT_TYPE["generic"])
        )

    def merge_variables(
        self,
        default_variables: Optional[Mapping[str, VariableValue]],
        custom_variables: Optional[Mapping[str, VariableValue]],
    ) -> Variables:
        """
        Объединение словарей: при совпадении ключа побеждает custom.
        Ключи сравниваются с учётом регистра.
        """
        if default_variables is None:
            raise ArgumentMissingError("default_variables")

        merged: Variables = dict(default_variables)
        if custom_variables:
            merged.update(custom_variables)
        return merged
