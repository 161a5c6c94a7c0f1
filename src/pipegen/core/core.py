from typing import List, Optional

from .animation import run as run_animation
from .exceptions import InvalidPipelineOptionsError, PipelineExceptions
from .models import GenerateResponse, PipelineOptions
from .renders import gitlab as gitlab_render
from .services import validation
from .services.builders import pipeline as builder


class PipegenCore:
    def __init__(self, generator: Optional[builder.PipelineGenerator] = None):
        self.generator = generator or builder.PipelineGenerator()
        self.logs: List[str] = []
        self.warnings: List[str] = []

    def validate(self, options: PipelineOptions) -> GenerateResponse:
        errors = validation.validate_options(options)
        return GenerateResponse(
            status="error" if errors else "ok",
            options=options,
            errors=errors,
            warnings=validation.get_validation_suggestions(errors),
        )

    async def create_pipeline(self, options: PipelineOptions, show_progress: bool = False) -> GenerateResponse:
        self.logs = []
        self.warnings = []

        try:
            # 1) Строим конфигурацию пайплайна
            if show_progress:
                configuration, build_logs, build_warnings = await run_animation(
                    self.generator.build,
                    options,
                    text=f"Generating {options.project_type} pipeline",
                )
            else:
                configuration, build_logs, build_warnings = await self.generator.build(options)
            self.logs.extend(build_logs)
            self.warnings.extend(build_warnings)

            # 2) Краткое резюме
            pipeline_summary = builder.summarize_pipeline(configuration)

            # 3) Рендерим YAML
            ci_template = self.generator.serialize_to_yaml(configuration)
            self.logs.append("YAML rendered")

        except InvalidPipelineOptionsError as e:
            self.logs.extend(e.logs)
            return GenerateResponse(
                status="error",
                options=options,
                errors=e.validation_errors,
                warnings=validation.get_validation_suggestions(e.validation_errors),
                logs=self.logs,
            )
        except PipelineExceptions as e:
            self.logs.extend(e.logs)
            return GenerateResponse(
                status="error",
                options=options,
                errors=[e.description],
                warnings=self.warnings,
                logs=self.logs,
            )

        return GenerateResponse(
            status="ok",
            options=options,
            ci_template=ci_template,
            warnings=self.warnings,
            logs=self.logs,
            pipeline_summary=pipeline_summary,
        )
