import logging
from typing import Any, Dict, List, Optional, Set

import yaml
from pydantic import BaseModel, ValidationError

from pipegen.core.exceptions import ArgumentMissingError, YamlSerializationError
from pipegen.model import Job, PipelineConfiguration

logger = logging.getLogger(__name__)

# Ключи верхнего уровня, которые GitLab не считает задачами
RESERVED_KEYWORDS = frozenset({
    "stages", "variables", "default", "workflow", "include",
    "image", "services", "cache", "before_script", "after_script", "types",
})

JOB_KEY_ORDER: List[str] = [
    "stage", "image", "before_script", "script", "after_script", "variables",
    "cache", "artifacts", "dependencies", "rules", "when", "allow_failure",
    "timeout", "retry", "tags", "environment",
]


class _GitLabDumper(yaml.SafeDumper):
    """
    SafeDumper, который отступает элементы списков внутри словарей
    (как принято в .gitlab-ci.yml) и никогда не пишет якоря/алиасы.
    """

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)

    def ignore_aliases(self, data):
        return True


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (dict, list, tuple, set)) and not value)


def _plain(value: Any, path: str, seen: Set[int]) -> Any:
    """
    Превращает модели/контейнеры в обычные dict/list, выкидывая None
    и пустые коллекции. Циклические ссылки -> YamlSerializationError.
    """
    if isinstance(value, BaseModel):
        value = value.model_dump(by_alias=True, exclude_none=True)

    if isinstance(value, (dict, list, tuple)):
        marker = id(value)
        if marker in seen:
            raise YamlSerializationError(
                f"Circular reference detected at '{path}'", source=value
            )
        seen.add(marker)
        try:
            if isinstance(value, dict):
                result: Any = {}
                for key, item in value.items():
                    plain = _plain(item, f"{path}.{key}", seen)
                    if not _is_empty(plain):
                        result[key] = plain
            else:
                result = []
                for index, item in enumerate(value):
                    plain = _plain(item, f"{path}[{index}]", seen)
                    if plain is not None:
                        result.append(plain)
        finally:
            seen.discard(marker)
        return result

    return value


def _job_document(name: str, job: Job) -> Dict[str, Any]:
    document: Dict[str, Any] = {}
    for key in JOB_KEY_ORDER:
        value = getattr(job, key)
        if key == "image" and value is not None and value.is_simple:
            value = value.name
        plain = _plain(value, f"{name}.{key}", set())
        if not _is_empty(plain):
            document[key] = plain
    return document


def to_document(configuration: PipelineConfiguration) -> Dict[str, Any]:
    """
    Упорядоченный словарь будущего .gitlab-ci.yml:
    stages, variables, default, workflow, затем задачи в порядке добавления.
    """
    clashing = [name for name in configuration.jobs if name in RESERVED_KEYWORDS]
    if clashing:
        raise YamlSerializationError(
            f"Job names clash with reserved GitLab keywords: {', '.join(clashing)}",
            source=configuration,
        )

    document: Dict[str, Any] = {}
    header = {
        "stages": configuration.stages,
        "variables": configuration.variables,
        "default": configuration.default,
        "workflow": configuration.workflow,
    }
    for key, value in header.items():
        plain = _plain(value, key, set())
        if not _is_empty(plain):
            document[key] = plain

    for name, job in configuration.jobs.items():
        document[name] = _job_document(name, job)

    return document


def render(configuration: Optional[PipelineConfiguration]) -> str:
    if configuration is None:
        raise ArgumentMissingError("configuration")

    document = to_document(configuration)
    try:
        text = yaml.dump(
            document,
            Dumper=_GitLabDumper,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            width=1000,
        )
    except yaml.YAMLError as exc:
        raise YamlSerializationError(
            f"Failed to serialize pipeline configuration: {exc}", source=configuration
        ) from exc

    errors = validate_yaml(text)
    if errors:
        raise YamlSerializationError(
            "Generated YAML failed validation: " + "; ".join(errors),
            operation="validate",
            yaml_content=text,
            source=configuration,
        )

    logger.debug("Rendered %d jobs into %d bytes of YAML", len(configuration.jobs), len(text))
    return text


def validate_yaml(text: str) -> List[str]:
    """
    Локальная синтаксическая проверка .gitlab-ci.yml (без обращения к GitLab).
    Возвращает список ошибок.
    """
    if not text or not text.strip():
        return ["YAML content is empty"]

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        return [f"Invalid YAML syntax: {exc}"]

    if not isinstance(data, dict):
        return ["YAML root must be a mapping"]

    errors: List[str] = []
    jobs = {
        key: value for key, value in data.items()
        if key not in RESERVED_KEYWORDS and not str(key).startswith(".")
    }

    if "stages" not in data and not jobs:
        errors.append("Pipeline must define stages or at least one job")

    stages = data.get("stages")
    if stages is not None and not isinstance(stages, list):
        errors.append("'stages' must be a list")

    for name, job in jobs.items():
        if not isinstance(job, dict):
            errors.append(f"Job '{name}' must be a mapping")
            continue
        if not job.get("script") and "trigger" not in job and "extends" not in job:
            errors.append(f"Job '{name}' must have a script")

    return errors


def parse(text: str) -> PipelineConfiguration:
    """
    Читает .gitlab-ci.yml обратно в PipelineConfiguration.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise YamlSerializationError(
            f"Failed to parse YAML: {exc}", operation="deserialize", yaml_content=text
        ) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise YamlSerializationError(
            "YAML root must be a mapping", operation="deserialize", yaml_content=text
        )

    jobs = {
        key: value for key, value in data.items()
        if key not in RESERVED_KEYWORDS and isinstance(value, dict)
    }

    try:
        return PipelineConfiguration(
            stages=data.get("stages") or [],
            variables=data.get("variables") or {},
            default=data.get("default") or {},
            workflow=data.get("workflow"),
            jobs={name: Job.model_validate(job) for name, job in jobs.items()},
        )
    except ValidationError as exc:
        raise YamlSerializationError(
            f"YAML does not describe a valid pipeline: {exc}",
            operation="deserialize",
            yaml_content=text,
        ) from exc
