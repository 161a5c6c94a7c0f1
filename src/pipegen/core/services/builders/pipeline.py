import logging
from typing import List, Optional, Tuple

from pipegen.core.exceptions import (
    ArgumentMissingError,
    PipelineExceptions,
    PipelineGenerationError,
)
from pipegen.core.models import PipelineOptions, PipelineSummary
from pipegen.core.renders import gitlab as gitlab_render
from pipegen.core.services.validation import validate_and_raise
from pipegen.model import PipelineConfiguration, Rule, WorkflowRules

from .jobs import JobBuilder
from .stages import StageBuilder
from .variables import VariableBuilder

logger = logging.getLogger(__name__)


def _ensure_stage(stages: List[str], stage: str) -> None:
    if stage not in stages:
        stages.append(stage)


def _workflow_rules(options: PipelineOptions) -> Optional[WorkflowRules]:
    """
    Правила запуска пайплайна. Нужны только когда есть деплой:
    MR-пайплайны не запускаем, ветки и теги запускаем.
    """
    if not (options.include_deployment or options.deployment_environments):
        return None

    return WorkflowRules(
        rules=[
            Rule(if_='$CI_PIPELINE_SOURCE == "merge_request_event"', when="never"),
            Rule(if_="$CI_COMMIT_BRANCH == $CI_DEFAULT_BRANCH", when="always"),
            Rule(if_="$CI_COMMIT_TAG", when="always"),
            Rule(if_="$CI_COMMIT_BRANCH", when="always"),
        ]
    )


class PipelineGenerator:
    """
    Оркестратор: опции -> PipelineConfiguration -> YAML.

    Билдеры синхронные и без состояния; асинхронна только точка входа,
    чтобы генератор можно было вызывать из async-кода (CLI, фасад).
    """

    def __init__(
        self,
        stage_builder: Optional[StageBuilder] = None,
        job_builder: Optional[JobBuilder] = None,
        variable_builder: Optional[VariableBuilder] = None,
    ) -> None:
        self.variable_builder = variable_builder or VariableBuilder()
        self.stage_builder = stage_builder or StageBuilder()
        self.job_builder = job_builder or JobBuilder(self.variable_builder)

    async def generate(self, options: Optional[PipelineOptions]) -> PipelineConfiguration:
        configuration, _, _ = await self.build(options)
        return configuration

    async def build(
        self, options: Optional[PipelineOptions]
    ) -> Tuple[PipelineConfiguration, List[str], List[str]]:
        """
        Строит конфигурацию пайплайна.

        Возвращает (PipelineConfiguration, logs, warnings).
        """
        if options is None:
            raise ArgumentMissingError("options")

        logs: List[str] = []
        warnings: List[str] = []

        validate_and_raise(options)
        logs.append(f"Options validated for project type '{options.project_type}'")

        step = "stages"
        try:
            stages = self.stage_builder.build_stages(options)
            warnings.extend(self.stage_builder.check_stage_order(stages))
            logs.append(f"Stages: {', '.join(stages)}")

            step = "variables"
            variables = self.variable_builder.build_global_variables(options)
            logs.append(f"Global variables: {len(variables)}")

            step = "jobs"
            configuration = PipelineConfiguration(stages=stages, variables=variables)
            for stage in stages:
                stage_jobs = self.job_builder.build_jobs_for_stage(stage, options)
                configuration.jobs.update(stage_jobs)
                if stage_jobs:
                    logs.append(f"Stage '{stage}': {', '.join(stage_jobs)}")

            step = "custom_jobs"
            for custom_job in options.custom_jobs:
                if custom_job.name in configuration.jobs:
                    warnings.append(
                        f"Custom job '{custom_job.name}' replaces the generated job with the same name"
                    )
                _ensure_stage(configuration.stages, custom_job.stage)
                configuration.jobs[custom_job.name] = self.job_builder.build_custom_job(custom_job, options)
                logs.append(f"Custom job added: {custom_job.name}")

            step = "default"
            configuration.default = self.variable_builder.build_default_configuration(options)

            step = "workflow"
            configuration.workflow = _workflow_rules(options)

            step = "references"
            self._prune_dependencies(configuration, warnings)
            reference_errors = configuration.find_reference_errors()
            if reference_errors:
                raise PipelineGenerationError(
                    f"Pipeline has broken references: {'; '.join(reference_errors)}",
                    options=options,
                    generation_stage=step,
                )
        except PipelineExceptions as exc:
            exc.logs = logs + exc.logs
            raise
        except Exception as exc:
            logger.exception("Pipeline generation failed at step %s", step)
            raise PipelineGenerationError(
                f"Failed to generate pipeline: {exc}",
                options=options,
                generation_stage=step,
                logs=logs,
            ) from exc

        logs.append(
            f"Pipeline built: {len(configuration.stages)} stages and {len(configuration.jobs)} jobs."
        )
        logger.info("Generated %d jobs for %s", len(configuration.jobs), options.project_type)
        return configuration, logs, warnings

    def serialize_to_yaml(self, configuration: Optional[PipelineConfiguration]) -> str:
        if configuration is None:
            raise ArgumentMissingError("configuration")
        return gitlab_render.render(configuration)

    @staticmethod
    def _prune_dependencies(configuration: PipelineConfiguration, warnings: List[str]) -> None:
        """
        dependencies на задачи, которых нет в пайплайне (например, build
        при отключённой стадии), GitLab отвергнет; убираем их.
        """
        for name, job in configuration.jobs.items():
            if not job.dependencies:
                continue
            kept = [dep for dep in job.dependencies if dep in configuration.jobs]
            for missing in job.dependencies:
                if missing not in kept:
                    warnings.append(
                        f"Job '{name}' depends on missing job '{missing}'; dependency removed"
                    )
            job.dependencies = kept or None


def summarize_pipeline(configuration: PipelineConfiguration) -> PipelineSummary:
    """
    Строит краткое резюме пайплайна для ответа CLI.
    """
    stages = list(configuration.stages)
    job_names = list(configuration.jobs)
    stages_count = len(stages)
    jobs_count = len(job_names)

    if stages_count == 0 and jobs_count == 0:
        description = "Pipeline is empty. Edit the configuration."
    else:
        description = (
            f"Generated pipeline with {stages_count} stages and {jobs_count} jobs: "
            f"stages {', '.join(stages)}."
        )

    return PipelineSummary(
        stages_count=stages_count,
        jobs_count=jobs_count,
        stages=stages,
        job_names=job_names,
        description=description,
    )
