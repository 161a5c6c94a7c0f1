from typing import Any, Iterable, List, Optional

from pipegen.exception import CLIException


class ArgumentMissingError(ValueError):
    """
    Обязательный аргумент не передан (None или пустая строка).
    Бросается сразу на входе в операцию, до любой работы.
    """

    def __init__(self, param_name: str, message: Optional[str] = None) -> None:
        self.param_name = param_name
        super().__init__(message or f"Argument '{param_name}' is required")


class PipelineExceptions(CLIException):
    """
    Базовое исключение генератора пайплайнов.

    Дополнительно хранит логи, накопленные во время операции.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happend when generating pipeline",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description)
        self.logs: List[str] = logs or []


class InvalidPipelineOptionsError(PipelineExceptions):
    """
    Опции пайплайна не прошли валидацию. Несёт ПОЛНЫЙ список нарушений.
    """

    def __init__(
        self,
        validation_errors: Iterable[str],
        options: Any = None,
        logs: Optional[List[str]] = None,
    ) -> None:
        self.validation_errors: List[str] = list(validation_errors)
        description = "Invalid pipeline options: " + ", ".join(self.validation_errors)
        super().__init__(description=description, logs=logs)
        self.options = options

    def format_message(self) -> str:
        lines = ["Validation errors:"]
        lines.extend(f"  - {error}" for error in self.validation_errors)
        return "\n".join(lines)


class UnsupportedProjectTypeError(PipelineExceptions, ValueError):
    """
    Тип проекта не поддерживается генератором.
    """

    def __init__(self, project_type: Optional[str], logs: Optional[List[str]] = None) -> None:
        description = f"Unsupported project type '{project_type}'"
        super().__init__(description=description, logs=logs)
        self.project_type = project_type


class PipelineGenerationError(PipelineExceptions):
    """
    Непредвиденная ошибка при сборке стадий/задач/переменных.
    Исходное исключение доступно через __cause__.
    """

    def __init__(
        self,
        message: str,
        options: Any = None,
        generation_stage: Optional[str] = None,
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(description=message, logs=logs)
        self.options = options
        self.generation_stage = generation_stage


class YamlSerializationError(PipelineExceptions):
    """
    Собранную конфигурацию не удалось превратить в YAML (или прочитать обратно).
    """

    def __init__(
        self,
        message: str,
        operation: str = "serialize",
        yaml_content: Optional[str] = None,
        source: Any = None,
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(description=message, logs=logs)
        self.operation = operation
        self.yaml_content = yaml_content
        self.source = source
