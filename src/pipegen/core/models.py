import re
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Dict, Optional

_URL_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)


class DeploymentEnvironment(BaseModel):
    """
    Окружение деплоя. Имя окружения (в нижнем регистре) становится
    отдельной стадией, в которой живёт задача deploy_<name>.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    url: Optional[str] = None
    is_manual: bool = False
    auto_deploy_pattern: Optional[str] = None   # ветка для автодеплоя
    variables: Dict[str, str] = Field(default_factory=dict)
    kubernetes_namespace: Optional[str] = None
    auto_stop: bool = False
    auto_stop_in: Optional[str] = None          # "1 day", "2 weeks" и т.п.

    @property
    def stage_name(self) -> str:
        return self.name.lower()

    def validate_environment(self) -> List[str]:
        errors: List[str] = []

        if not self.name.strip():
            errors.append("Environment name is required")

        if self.url and not _URL_RE.match(self.url):
            errors.append(f"Invalid URL format for environment '{self.name}': {self.url}")

        if self.auto_stop and not self.auto_stop_in:
            errors.append(
                f"AutoStopIn is required when AutoStop is enabled for environment '{self.name}'"
            )

        return errors


class CacheOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: Optional[str] = None
    paths: List[str] = Field(default_factory=list)
    policy: Literal["pull", "push", "pull-push"] = "pull-push"
    when: Literal["on_success", "on_failure", "always"] = "on_success"


class ArtifactOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    default_paths: List[str] = Field(default_factory=list)
    default_expire_in: str = "1 week"
    include_test_reports: bool = True
    include_coverage_reports: bool = True


class CustomJobOptions(BaseModel):
    """
    Пользовательская задача, добавляется в пайплайн как есть.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    stage: str
    script: List[str] = Field(default_factory=list)
    before_script: List[str] = Field(default_factory=list)
    after_script: List[str] = Field(default_factory=list)
    variables: Dict[str, str] = Field(default_factory=dict)
    when: Optional[str] = None
    allow_failure: bool = False
    image: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    def validate_job(self) -> List[str]:
        errors: List[str] = []

        if not self.name.strip():
            errors.append("Job name is required")

        if not self.stage.strip():
            errors.append(f"Stage is required for job '{self.name}'")

        if not any(cmd.strip() for cmd in self.script):
            errors.append(f"At least one script command is required for job '{self.name}'")

        return errors


class PipelineOptions(BaseModel):
    """
    Входные опции генерации. После валидации не меняются
    (для вариаций используйте model_copy(update=...)).
    """

    model_config = ConfigDict(frozen=True)

    project_type: str = ""
    # пустой список => стадии по умолчанию для типа проекта
    stages: List[str] = Field(default_factory=list)
    dotnet_version: Optional[str] = None

    include_tests: bool = True
    include_deployment: bool = True
    include_code_quality: bool = False
    include_security: bool = False
    include_performance: bool = False

    custom_variables: Dict[str, str] = Field(default_factory=dict)
    docker_image: Optional[str] = None
    runner_tags: List[str] = Field(default_factory=list)

    deployment_environments: List[DeploymentEnvironment] = Field(default_factory=list)
    cache: Optional[CacheOptions] = None
    artifacts: Optional[ArtifactOptions] = None
    custom_jobs: List[CustomJobOptions] = Field(default_factory=list)

    @property
    def normalized_project_type(self) -> str:
        return self.project_type.strip().lower()


class PipelineSummary(BaseModel):
    stages_count: int
    jobs_count: int
    stages: List[str]
    job_names: List[str]
    # Короткое текстовое описание для CLI
    description: str


class GenerateResponse(BaseModel):
    status: Literal["ok", "error"]
    options: Optional[PipelineOptions] = None
    ci_template: Optional[str] = None
    errors: List[str] = []
    warnings: List[str] = []
    logs: List[str] = []
    pipeline_summary: Optional[PipelineSummary] = None
