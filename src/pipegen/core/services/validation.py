import logging
import re
from typing import List, Optional

from pipegen.core.exceptions import ArgumentMissingError, InvalidPipelineOptionsError
from pipegen.core.models import PipelineOptions
from pipegen.core.services.builders.stages import SUPPORTED_PROJECT_TYPES, StageBuilder

logger = logging.getLogger(__name__)

VALID_DOTNET_VERSIONS: List[str] = ["6.0", "7.0", "8.0", "9.0"]

_VARIABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_stage_builder = StageBuilder()


def validate_options(options: Optional[PipelineOptions]) -> List[str]:
    """
    Проверяет опции и возвращает ВСЕ найденные нарушения (не останавливается
    на первом). Пустой список означает, что опции корректны.
    """
    if options is None:
        raise ArgumentMissingError("options")

    errors: List[str] = []

    # --- тип проекта ---
    project_type = options.normalized_project_type
    if not project_type:
        errors.append("Project type is required")
    elif project_type not in SUPPORTED_PROJECT_TYPES:
        errors.append(
            f"Invalid project type '{options.project_type}'. "
            f"Valid types are: {', '.join(SUPPORTED_PROJECT_TYPES)}"
        )

    # --- стадии ---
    # пустой список допустим: будут стадии по умолчанию.
    # стадии пользовательских задач произвольные (lint, package, ...), их не проверяем
    stages = list(options.stages)
    stages.extend(env.stage_name for env in options.deployment_environments if env.name.strip())
    if stages:
        for error in _stage_builder.validate_stages(stages, options.project_type):
            if error not in errors:
                errors.append(error)

    # --- версия .NET ---
    if options.dotnet_version is not None and options.dotnet_version not in VALID_DOTNET_VERSIONS:
        errors.append(
            f"Invalid .NET version '{options.dotnet_version}'. "
            f"Valid versions are: {', '.join(VALID_DOTNET_VERSIONS)}"
        )

    # --- переменные ---
    for name in options.custom_variables:
        if not name or not name.strip():
            errors.append("Variable names cannot be empty or whitespace")
        elif " " in name:
            errors.append(f"Variable name '{name}' cannot contain spaces")
        elif not _VARIABLE_NAME_RE.match(name):
            errors.append(
                f"Invalid variable name '{name}'. Use letters, digits and underscores, "
                "not starting with a digit"
            )

    # --- теги раннеров ---
    if any(not tag or not tag.strip() for tag in options.runner_tags):
        errors.append("Runner tags cannot be empty or whitespace")

    # --- вложенные объекты ---
    seen_envs = set()
    for env in options.deployment_environments:
        errors.extend(env.validate_environment())
        # имена без учёта регистра: Staging и staging дали бы одну стадию
        if env.name.strip() and env.stage_name in seen_envs:
            errors.append(f"Duplicate deployment environment '{env.name}'")
        seen_envs.add(env.stage_name)

    seen_jobs = set()
    for job in options.custom_jobs:
        errors.extend(job.validate_job())
        if job.name in seen_jobs:
            errors.append(f"Duplicate custom job name '{job.name}'")
        seen_jobs.add(job.name)

    if errors:
        logger.debug("Options validation failed: %s", errors)
    return errors


def validate_and_raise(options: Optional[PipelineOptions]) -> None:
    errors = validate_options(options)
    if errors:
        raise InvalidPipelineOptionsError(errors, options=options)


def get_validation_suggestions(errors: List[str]) -> List[str]:
    """
    Подсказки для CLI по тексту ошибок валидации. Без повторов.
    """
    suggestions: List[str] = []

    def add(text: str) -> None:
        if text not in suggestions:
            suggestions.append(text)

    for error in errors:
        lowered = error.lower()
        if "project type" in lowered:
            add(
                "Use one of the supported project types: "
                + ", ".join(SUPPORTED_PROJECT_TYPES)
            )
        if "at least one stage" in lowered:
            add("Provide at least one stage name, e.g., --stages build,test,deploy")
        if "invalid stage" in lowered:
            add("Use standard stage names (build, test, deploy) or environment names like staging, production")
        if ".net version" in lowered:
            add("Use a supported .NET version: " + ", ".join(VALID_DOTNET_VERSIONS))
        if "variable name" in lowered:
            add("Use the format 'KEY=VALUE' for variables, e.g., --variables \"BUILD_CONFIG=Release,NODE_ENV=production\"")
        if "cannot contain spaces" in lowered:
            add("Replace spaces with underscores or hyphens")
        if "invalid url" in lowered:
            add("Ensure environment URLs are valid and include the protocol (http:// or https://)")
        if "autostopin" in lowered:
            add("Set auto_stop_in (e.g. '1 day') when auto_stop is enabled")
        if "script command" in lowered:
            add("Give every custom job at least one script command")
        if "duplicate deployment environment" in lowered:
            add("Give every deployment environment a unique name (names are case-insensitive)")

    return suggestions
