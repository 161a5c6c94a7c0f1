from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, field_validator
from typing import Any, Dict, List, Optional, Union


# Значение переменной GitLab: строго скаляр, без приведения типов
VariableValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr]


class JobImage(BaseModel):
    """
    Docker-образ задачи. Если задано только имя, в YAML пишется строкой.
    """

    name: str
    entrypoint: Optional[List[str]] = None
    pull_policy: Optional[str] = None

    @property
    def is_simple(self) -> bool:
        return self.entrypoint is None and self.pull_policy is None


class ArtifactReports(BaseModel):
    junit: Optional[List[str]] = None
    cobertura: Optional[List[str]] = None
    codequality: Optional[List[str]] = None
    sast: Optional[List[str]] = None
    performance: Optional[List[str]] = None


class JobArtifacts(BaseModel):
    paths: Optional[List[str]] = None
    exclude: Optional[List[str]] = None
    when: Optional[str] = None         # on_success, on_failure, always
    expire_in: Optional[str] = None
    name: Optional[str] = None
    reports: Optional[ArtifactReports] = None
    public: Optional[bool] = None


class JobCache(BaseModel):
    key: Optional[str] = None
    paths: Optional[List[str]] = None
    policy: Optional[str] = None       # pull, push, pull-push
    when: Optional[str] = None


class JobRetry(BaseModel):
    max: Optional[int] = None
    when: Optional[List[str]] = None


class JobEnvironment(BaseModel):
    name: str
    url: Optional[str] = None
    auto_stop_in: Optional[str] = None


class Rule(BaseModel):
    """
    Правило workflow/job. Ключ `if` в Python зарезервирован, поэтому alias.
    """

    model_config = ConfigDict(populate_by_name=True)

    if_: Optional[str] = Field(default=None, alias="if")
    when: Optional[str] = None
    allow_failure: Optional[bool] = None


class WorkflowRules(BaseModel):
    rules: List[Rule] = Field(default_factory=list)


class Job(BaseModel):
    """
    Задача GitLab CI. Ссылается на стадию по имени (стадия обязана быть
    объявлена в PipelineConfiguration.stages).
    """

    stage: str
    script: List[str] = Field(default_factory=list)
    before_script: Optional[List[str]] = None
    after_script: Optional[List[str]] = None
    variables: Optional[Dict[str, VariableValue]] = None
    tags: Optional[List[str]] = None   # runner tags
    artifacts: Optional[JobArtifacts] = None
    cache: Optional[JobCache] = None
    dependencies: Optional[List[str]] = None
    when: Optional[str] = None         # on_success, manual и т.п.
    allow_failure: Optional[bool] = None
    timeout: Optional[str] = None
    retry: Optional[JobRetry] = None
    rules: Optional[List[Rule]] = None
    image: Optional[JobImage] = None
    environment: Optional[JobEnvironment] = None

    @field_validator("image", mode="before")
    @classmethod
    def _image_from_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"name": value}
        return value

    @field_validator("environment", mode="before")
    @classmethod
    def _environment_from_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"name": value}
        return value

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        # теги - это множество, но порядок оставляем детерминированным
        if value is None:
            return None
        return list(dict.fromkeys(value))


class PipelineConfiguration(BaseModel):
    """
    Полная конфигурация пайплайна до рендеринга в YAML:
    порядок стадий + задачи + глобальные переменные.
    """

    stages: List[str] = Field(default_factory=list)
    jobs: Dict[str, Job] = Field(default_factory=dict)
    variables: Dict[str, VariableValue] = Field(default_factory=dict)
    default: Dict[str, Any] = Field(default_factory=dict)
    workflow: Optional[WorkflowRules] = None

    def find_reference_errors(self) -> List[str]:
        """
        Проверяет слабые ссылки: стадия каждой задачи объявлена,
        dependencies указывают на существующие задачи.
        """
        errors: List[str] = []
        for name, job in self.jobs.items():
            if job.stage not in self.stages:
                errors.append(f"Job '{name}' references undeclared stage '{job.stage}'")
            for dependency in job.dependencies or []:
                if dependency not in self.jobs:
                    errors.append(f"Job '{name}' depends on unknown job '{dependency}'")
        return errors
