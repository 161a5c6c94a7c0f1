import logging
import os
import sys
from typing import Any, Dict, List, NoReturn, Optional

import click
from click.core import ParameterSource
from pydantic import ValidationError

from pipegen import settings
from pipegen.core import config
from pipegen.core.core import PipegenCore
from pipegen.core.exceptions import InvalidPipelineOptionsError, PipelineExceptions
from pipegen.core.models import PipelineOptions
from pipegen.core.services.analyzer import detect_project_type
from pipegen.core.services.validation import get_validation_suggestions
from pipegen.exception import CLIException
from pipegen.utils import async_click, parse_environments, parse_key_value_pairs, split_csv

logger = logging.getLogger("pipegen")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(name)s | %(levelname)s | %(message)s",
        stream=sys.stderr,
    )


def _given(ctx: click.Context, name: str) -> bool:
    return ctx.get_parameter_source(name) == ParameterSource.COMMANDLINE


def _collect_options(ctx: click.Context, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Опции из файла (--config или PIPEGEN_CONFIG), поверх - явно заданные флаги.
    """
    config_path = params["config_file"] or config.DEFAULT_CONFIG_FILE
    data: Dict[str, Any] = {}
    if config_path:
        try:
            data = config.load_options_file(config_path)
        except (OSError, ValueError) as e:
            raise CLIException(description=f"Cannot read options file '{config_path}': {e}")
        logger.debug("Loaded options from %s", config_path)

    if params["project_type"]:
        data["project_type"] = params["project_type"]
    if params["stages"]:
        data["stages"] = split_csv(params["stages"])
    if params["dotnet_version"]:
        data["dotnet_version"] = params["dotnet_version"]
    if params["docker_image"]:
        data["docker_image"] = params["docker_image"]
    if params["runner_tags"]:
        data["runner_tags"] = split_csv(params["runner_tags"])
    if params["variables"]:
        data["custom_variables"] = {
            **(data.get("custom_variables") or {}),
            **parse_key_value_pairs(params["variables"]),
        }
    if params["environments"]:
        data["deployment_environments"] = parse_environments(params["environments"])

    for flag in (
        "include_tests",
        "include_deployment",
        "include_code_quality",
        "include_security",
        "include_performance",
    ):
        if _given(ctx, flag):
            data[flag] = params[flag]

    if params["cache_paths"] or params["cache_key"]:
        cache = dict(data.get("cache") or {})
        if params["cache_paths"]:
            cache["paths"] = split_csv(params["cache_paths"])
        if params["cache_key"]:
            cache["key"] = params["cache_key"]
        data["cache"] = cache

    if params["artifact_paths"] or params["artifact_expire"]:
        artifacts = dict(data.get("artifacts") or {})
        if params["artifact_paths"]:
            artifacts["default_paths"] = split_csv(params["artifact_paths"])
        if params["artifact_expire"]:
            artifacts["default_expire_in"] = params["artifact_expire"]
        data["artifacts"] = artifacts

    return data


def _resolve_project_type(data: Dict[str, Any], path: str, verbose: bool) -> None:
    if str(data.get("project_type", "")).strip().lower() != "auto":
        return

    project_type, logs, warnings = detect_project_type(path)
    data["project_type"] = project_type
    if verbose:
        for line in logs:
            click.echo(line, err=True)
    for warning in warnings:
        click.echo(f"Warning: {warning}", err=True)
    click.echo(f"Detected project type: {project_type}", err=True)


def _fail_validation(errors: List[str]) -> NoReturn:
    suggestions = get_validation_suggestions(errors)
    if suggestions:
        click.echo("Suggestions:", err=True)
        for suggestion in suggestions:
            click.echo(f"  * {suggestion}", err=True)
    raise InvalidPipelineOptionsError(errors)


def _output_path(output: str) -> str:
    if os.path.isdir(output):
        return os.path.join(output, config.DEFAULT_OUTPUT_FILE)
    return output


@click.command()
@click.option("-t", "--type", "project_type", help="Project type: dotnet, nodejs, python, docker, generic or auto")
@click.option("--path", "project_path", default=".", show_default=True, help="Project directory for --type auto")
@click.option("-o", "--output", default=config.DEFAULT_OUTPUT_FILE, show_default=True, help="Output file or directory")
@click.option("-s", "--stages", help="Comma-separated stage list, e.g. build,test,deploy")
@click.option("--dotnet-version", help=".NET SDK version (6.0, 7.0, 8.0, 9.0)")
@click.option("--include-tests/--no-include-tests", default=True, help="Add the test job")
@click.option("--include-deployment/--no-include-deployment", default=True, help="Add deployment jobs")
@click.option("--include-code-quality", is_flag=True, help="Add a SonarQube code quality job")
@click.option("--include-security", is_flag=True, help="Add a security scan job")
@click.option("--include-performance", is_flag=True, help="Add a performance test job")
@click.option("--docker-image", help="Docker image for all generated jobs")
@click.option("--runner-tags", help="Comma-separated runner tags")
@click.option("--variables", help="Custom variables: KEY=VALUE,KEY2=VALUE2")
@click.option("--environments", help="Deployment environments: name:url,name2:url2")
@click.option("--cache-paths", help="Comma-separated cache paths")
@click.option("--cache-key", help="Cache key")
@click.option("--artifact-paths", help="Comma-separated extra artifact paths for the build job")
@click.option("--artifact-expire", help="Artifact expiration, e.g. '1 week'")
@click.option("--config", "config_file", type=click.Path(dir_okay=False), help="YAML/JSON file with pipeline options")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging and generation log")
@click.option("--dry-run", is_flag=True, help="Print the pipeline without writing a file")
@click.option("--console-output", is_flag=True, help="Print the pipeline to stdout instead of a file")
@click.option("--validate-only", is_flag=True, help="Only validate options")
@click.version_option(settings.VERSION, prog_name="pipegen")
@click.pass_context
@async_click
async def main(ctx: click.Context, **params: Any):
    verbose: bool = params["verbose"]
    _setup_logging(verbose)
    click.echo(settings.LOGO, err=True)

    data = _collect_options(ctx, params)
    if not data.get("project_type"):
        raise click.UsageError("Missing option '-t' / '--type' (or 'project_type' in --config)")
    _resolve_project_type(data, params["project_path"], verbose)

    try:
        options = PipelineOptions.model_validate(data)
    except ValidationError as e:
        _fail_validation([
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ])

    pipegen = PipegenCore()

    # валидируем до генерации, чтобы показать все ошибки и подсказки сразу
    checked = pipegen.validate(options)
    if checked.status == "error":
        _fail_validation(checked.errors)
    if params["validate_only"]:
        click.echo("Options are valid.", err=True)
        return

    result = await pipegen.create_pipeline(options, show_progress=sys.stderr.isatty() and not verbose)

    if verbose:
        for line in result.logs:
            click.echo(line, err=True)

    if result.status == "error":
        raise PipelineExceptions(description="; ".join(result.errors) or "Pipeline generation failed")

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    template: Optional[str] = result.ci_template
    if params["dry_run"] or params["console_output"]:
        click.echo(template, nl=False)
        if params["dry_run"]:
            click.echo("Dry run: nothing written.", err=True)
    else:
        output = _output_path(params["output"])
        try:
            with open(output, "w", encoding="utf-8") as f:
                f.write(template)
        except OSError as e:
            raise CLIException(description=f"Failed to write pipeline to '{output}': {e}")
        click.echo(f"Pipeline written to: {output}", err=True)

    if result.pipeline_summary is not None:
        click.echo(result.pipeline_summary.description, err=True)


if __name__ == "__main__":
    main()
