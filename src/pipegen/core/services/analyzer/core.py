from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

logger = logging.getLogger(__name__)


# Директории, которые игнорируем при обходе проекта
IGNORED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    ".venv",
    "venv",
    "__pycache__",
    "dist",
    "build",
    "bin",
    "obj",
    "target",
    ".idea",
    ".vscode",
}

# Порядок важен: первый найденный тип побеждает
PROJECT_MARKERS: List[Tuple[str, Tuple[str, ...]]] = [
    ("dotnet", (".csproj", ".sln", ".fsproj")),
    ("nodejs", ("package.json",)),
    ("python", ("requirements.txt", "pyproject.toml", "setup.py", "pipfile")),
    ("docker", ("dockerfile",)),
]


def _iter_files(base_dir: Path) -> Iterable[Path]:
    """
    Обход файлов проекта с пропуском служебных и тяжёлых директорий.
    """
    for root, dirs, files in os.walk(base_dir):
        dirs[:] = [d for d in dirs if d not in IGNORED_DIRS]
        for filename in files:
            yield Path(root) / filename


def _matches(name: str, markers: Tuple[str, ...]) -> bool:
    # маркеры с точкой в начале - расширения, остальные - точные имена
    for marker in markers:
        if marker.startswith("."):
            if name.endswith(marker):
                return True
        elif name == marker:
            return True
    return False


def _collect_markers(project_path: Path) -> Dict[str, List[Path]]:
    found: Dict[str, List[Path]] = {}
    for file_path in _iter_files(project_path):
        name = file_path.name.lower()
        for project_type, markers in PROJECT_MARKERS:
            if _matches(name, markers):
                found.setdefault(project_type, []).append(file_path)
    return found


def detect_project_type(path: Union[str, Path]) -> Tuple[str, List[str], List[str]]:
    """
    Определяет тип проекта по файлам в директории.

    Возвращает (project_type, logs, warnings). Если ничего не найдено - generic.
    """
    project_path = Path(path)
    logs: List[str] = [f"Detecting project type in {project_path}"]
    warnings: List[str] = []

    if not project_path.is_dir():
        warnings.append(f"Path {project_path} is not a directory, falling back to 'generic'.")
        return "generic", logs, warnings

    found = _collect_markers(project_path)
    for project_type, files in found.items():
        relative = ", ".join(str(f.relative_to(project_path)) for f in files[:5])
        logs.append(f"{project_type}: {relative}")

    for project_type, _ in PROJECT_MARKERS:
        if project_type in found:
            others = [t for t in found if t != project_type]
            if others:
                warnings.append(
                    f"Several project types detected ({', '.join([project_type] + others)}); "
                    f"using '{project_type}'. Pass --type to override."
                )
            logs.append(f"Detected project type: {project_type}")
            logger.debug("Detected project type %s in %s", project_type, project_path)
            return project_type, logs, warnings

    warnings.append("Could not detect project type, using 'generic'.")
    logs.append("Detected project type: generic")
    return "generic", logs, warnings
