import click
import pytest

from pipegen.core.exceptions import (
    ArgumentMissingError,
    InvalidPipelineOptionsError,
    PipelineExceptions,
    PipelineGenerationError,
    UnsupportedProjectTypeError,
    YamlSerializationError,
)
from pipegen.exception import CLIException
from pipegen.utils import parse_environments, parse_key_value_pairs, split_csv


class TestExceptions:
    def test_argument_missing(self):
        error = ArgumentMissingError("options")

        assert isinstance(error, ValueError)
        assert error.param_name == "options"
        assert str(error) == "Argument 'options' is required"

    def test_invalid_options_lists_every_error(self):
        error = InvalidPipelineOptionsError(["first", "second"])

        assert error.validation_errors == ["first", "second"]
        assert error.description == "Invalid pipeline options: first, second"
        assert error.format_message() == "Validation errors:\n  - first\n  - second"
        assert error.exit_code == 1

    def test_hierarchy(self):
        for error in (
            InvalidPipelineOptionsError([]),
            PipelineGenerationError("x"),
            YamlSerializationError("x"),
            UnsupportedProjectTypeError("cobol"),
        ):
            assert isinstance(error, PipelineExceptions)
            assert isinstance(error, CLIException)
            assert isinstance(error, click.ClickException)
        assert isinstance(UnsupportedProjectTypeError("cobol"), ValueError)

    def test_logs(self):
        error = PipelineGenerationError("failed", generation_stage="jobs", logs=["step 1"])

        assert error.logs == ["step 1"]
        assert error.generation_stage == "jobs"
        assert error.format_message() == "failed"

    def test_yaml_error_fields(self):
        error = YamlSerializationError("bad", operation="deserialize", yaml_content="a: [")

        assert error.operation == "deserialize"
        assert error.yaml_content == "a: ["
        assert error.logs == []


class TestParsers:
    def test_split_csv(self):
        assert split_csv(" build, test,,deploy ") == ["build", "test", "deploy"]
        assert split_csv(None) == []

    def test_key_value_pairs(self):
        assert parse_key_value_pairs("A=1, B=x=y") == {"A": "1", "B": "x=y"}

    def test_key_value_pairs_error(self):
        with pytest.raises(click.BadParameter):
            parse_key_value_pairs("A=1,B")

    def test_environments(self):
        assert parse_environments("staging:https://staging.example.com:8443,production") == [
            {"name": "staging", "url": "https://staging.example.com:8443"},
            {"name": "production"},
        ]

    def test_environments_error(self):
        with pytest.raises(click.BadParameter):
            parse_environments(":https://example.com")
