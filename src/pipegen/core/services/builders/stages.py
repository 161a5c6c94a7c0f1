import logging
from typing import Dict, List, Optional, Sequence

from pipegen.core.exceptions import ArgumentMissingError, UnsupportedProjectTypeError
from pipegen.core.models import PipelineOptions

logger = logging.getLogger(__name__)


DEFAULT_STAGES_BY_PROJECT_TYPE: Dict[str, List[str]] = {
    "dotnet": ["build", "test", "deploy"],
    "nodejs": ["build", "test", "deploy"],
    "python": ["build", "test", "deploy"],
    "docker": ["build", "test", "deploy"],
    "generic": ["build", "test", "deploy"],
}

SUPPORTED_PROJECT_TYPES: List[str] = list(DEFAULT_STAGES_BY_PROJECT_TYPE)

VALID_STAGES: List[str] = [
    "build", "test", "deploy", "review", "staging", "production",
    "cleanup", "security", "quality", "performance", "package", "release",
]

# Имена окружений, которые допустимы как стадии (deploy-dev, qa-eu и т.п.)
ENVIRONMENT_STAGE_MARKERS = ("dev", "development", "staging", "prod", "production", "qa", "uat")

# Логический порядок известных стадий
STAGE_ORDER: Dict[str, int] = {
    "build": 1,
    "test": 2,
    "quality": 3,
    "security": 4,
    "performance": 5,
    "package": 6,
    "review": 7,
    "staging": 8,
    "production": 9,
    "deploy": 10,
    "cleanup": 11,
}


def _insert_after(stages: List[str], stage: str, anchors: Sequence[str]) -> None:
    """
    Вставляет stage сразу после первого найденного якоря; без якорей - в конец.
    """
    for anchor in anchors:
        if anchor in stages:
            stages.insert(stages.index(anchor) + 1, stage)
            return
    stages.append(stage)


def _insert_before(stages: List[str], stage: str, anchor: str) -> None:
    if anchor in stages:
        stages.insert(stages.index(anchor), stage)
    else:
        stages.append(stage)


def is_environment_stage(stage: str) -> bool:
    normalized = stage.lower()
    return any(marker in normalized for marker in ENVIRONMENT_STAGE_MARKERS)


class StageBuilder:
    """
    Строит упорядоченный список стадий пайплайна.
    Состояния не хранит: результат зависит только от опций.
    """

    def build_stages(self, options: Optional[PipelineOptions]) -> List[str]:
        if options is None:
            raise ArgumentMissingError("options")

        if options.stages:
            stages = list(options.stages)
        else:
            stages = self.get_default_stages(options.project_type)

        if options.include_code_quality and "quality" not in stages:
            _insert_after(stages, "quality", ["test"])

        if options.include_security and "security" not in stages:
            _insert_after(stages, "security", ["quality", "test"])

        if options.include_performance and "performance" not in stages:
            _insert_before(stages, "performance", "deploy")

        for env in options.deployment_environments:
            if env.stage_name not in stages:
                stages.append(env.stage_name)

        for job in options.custom_jobs:
            if job.stage not in stages:
                stages.append(job.stage)

        unique = list(dict.fromkeys(stages))
        logger.debug("Stages for %s: %s", options.project_type, unique)
        return unique

    def get_default_stages(self, project_type: Optional[str]) -> List[str]:
        normalized = (project_type or "").strip().lower()
        stages = DEFAULT_STAGES_BY_PROJECT_TYPE.get(normalized)
        if stages is None:
            raise UnsupportedProjectTypeError(project_type)
        return list(stages)

    def validate_stages(self, stages: Optional[Sequence[str]], project_type: Optional[str]) -> List[str]:
        """
        Возвращает список ошибок; пустой список - стадии корректны.
        """
        errors: List[str] = []

        if not stages:
            errors.append("At least one stage must be specified")
            return errors

        vocabulary = self._stage_vocabulary(project_type)

        for stage in stages:
            if not stage or not stage.strip():
                errors.append("Stage names cannot be empty or whitespace")
                continue

            normalized = stage.lower()
            if normalized not in vocabulary and not is_environment_stage(normalized):
                errors.append(
                    f"Invalid stage '{stage}'. Valid stages are: {', '.join(vocabulary)}"
                )

        return errors

    def check_stage_order(self, stages: Sequence[str]) -> List[str]:
        """
        Предупреждения о стадиях, стоящих не в логическом порядке.
        Не ошибка: порядок, заданный пользователем, сохраняется.
        """
        warnings: List[str] = []
        previous = 0
        for stage in stages:
            current = STAGE_ORDER.get(stage.lower())
            if current is None:
                continue
            if current < previous:
                warnings.append(
                    f"Stage '{stage}' appears out of logical order. Consider reordering stages."
                )
            previous = max(previous, current)
        return warnings

    @staticmethod
    def _stage_vocabulary(project_type: Optional[str]) -> List[str]:
        defaults = DEFAULT_STAGES_BY_PROJECT_TYPE.get((project_type or "").strip().lower(), [])
        return VALID_STAGES + [stage for stage in defaults if stage not in VALID_STAGES]
