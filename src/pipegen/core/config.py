"""
Базовая настройка генератора через переменные окружения.

PIPEGEN_OUTPUT_FILE         - имя файла результата (по умолчанию .gitlab-ci.yml)
PIPEGEN_DOTNET_VERSION      - версия .NET SDK, если в опциях не указана
PIPEGEN_ARTIFACT_EXPIRE_IN  - срок хранения артефактов по умолчанию
PIPEGEN_CONFIG              - файл с опциями пайплайна (YAML или JSON)
PIPEGEN_LOG_LEVEL           - уровень логирования, если не задан --verbose
"""
from pathlib import Path
import os
from typing import Any, Dict, Optional, Union

import yaml

DEFAULT_OUTPUT_FILE = os.getenv("PIPEGEN_OUTPUT_FILE", ".gitlab-ci.yml")

DEFAULT_DOTNET_VERSION = os.getenv("PIPEGEN_DOTNET_VERSION", "9.0")

DEFAULT_ARTIFACT_EXPIRE_IN = os.getenv("PIPEGEN_ARTIFACT_EXPIRE_IN", "1 week")

DEFAULT_CONFIG_FILE: Optional[str] = os.getenv("PIPEGEN_CONFIG")

LOG_LEVEL = os.getenv("PIPEGEN_LOG_LEVEL", "WARNING").upper()


def load_options_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Читает файл с опциями пайплайна. JSON - подмножество YAML,
    поэтому оба формата читаются одним safe_load.

    :raises FileNotFoundError: если файла нет.
    :raises ValueError: если в корне документа не словарь.
    """
    config_path = Path(path)
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(
            f"Options file {config_path} must contain a mapping, got {type(data).__name__}"
        )
    return data
