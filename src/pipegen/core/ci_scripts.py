# core/ci_scripts.py
from __future__ import annotations

from typing import Callable, Dict, List, Literal


JobKind = Literal["build", "test", "deploy"]


# ======
# .NET
# ======

def make_dotnet_script(kind: JobKind) -> List[str]:
    """
    Генерирует script для .NET-проектов.
    kind:
      - 'build' -> dotnet restore + dotnet build (Release)
      - 'test'  -> dotnet test с покрытием и trx-логгером
    """
    if kind == "build":
        return [
            "dotnet restore",
            "dotnet build --configuration Release --no-restore",
        ]
    if kind == "test":
        return [
            'dotnet test --configuration Release --no-build --collect:"XPlat Code Coverage" '
            "--logger trx --results-directory ./TestResults/",
        ]
    if kind == "deploy":
        return make_generic_script("deploy")
    raise ValueError(f"Unsupported dotnet job kind: {kind}")


# ================
# Node / JavaScript
# ================

def make_node_script(kind: JobKind) -> List[str]:
    if kind == "build":
        return ["npm ci", "npm run build"]
    if kind == "test":
        return ["npm test"]
    if kind == "deploy":
        return make_generic_script("deploy")
    raise ValueError(f"Unsupported node job kind: {kind}")


# ======
# Python
# ======

def make_python_script(kind: JobKind) -> List[str]:
    if kind == "build":
        return ["pip install -r requirements.txt", "python setup.py build"]
    if kind == "test":
        return ["python -m pytest --junitxml=test-results.xml --cov=. --cov-report=xml"]
    if kind == "deploy":
        return make_generic_script("deploy")
    raise ValueError(f"Unsupported python job kind: {kind}")


# ======
# Docker
# ======

def make_docker_script(kind: JobKind) -> List[str]:
    """
    Для docker-проектов сборка = build + push образа в registry проекта.
    Отдельного тестового сценария нет, используем generic.
    """
    if kind == "build":
        return [
            "docker build -t $CI_REGISTRY_IMAGE:$CI_COMMIT_SHA .",
            "docker push $CI_REGISTRY_IMAGE:$CI_COMMIT_SHA",
        ]
    if kind in ("test", "deploy"):
        return make_generic_script(kind)
    raise ValueError(f"Unsupported docker job kind: {kind}")


# =======
# Generic
# =======

def make_generic_script(kind: JobKind) -> List[str]:
    """
    Заглушки, которые пользователь должен заменить своими командами.
    """
    if kind == "build":
        return ["echo 'Starting build process'", "# Add your build commands here"]
    if kind == "test":
        return ["echo 'Running tests'", "# Add your test commands here"]
    if kind == "deploy":
        return ["echo 'Starting deployment'", "# Add your deployment commands here"]
    raise ValueError(f"Unsupported generic job kind: {kind}")


SCRIPT_FACTORIES: Dict[str, Callable[[JobKind], List[str]]] = {
    "dotnet": make_dotnet_script,
    "nodejs": make_node_script,
    "python": make_python_script,
    "docker": make_docker_script,
    "generic": make_generic_script,
}


def make_script(project_type: str, kind: JobKind) -> List[str]:
    """
    Script для пары (тип проекта, вид задачи). Неизвестный тип -> generic.
    """
    factory = SCRIPT_FACTORIES.get(project_type.lower(), make_generic_script)
    return factory(kind)


# ==========================
# Стадии, не зависящие от стека
# ==========================

def make_environment_deploy_script(environment: str) -> List[str]:
    return [
        f"echo 'Deploying to {environment} environment'",
        "# Add environment-specific deployment commands here",
    ]


def make_quality_script() -> List[str]:
    return [
        "sonar-scanner -Dsonar.projectKey=$CI_PROJECT_NAME -Dsonar.sources=. "
        "-Dsonar.host.url=$SONAR_HOST_URL -Dsonar.login=$SONAR_TOKEN",
    ]


def make_security_script() -> List[str]:
    return ["echo 'Running security scan'", "# Add security scanning commands here"]


def make_performance_script() -> List[str]:
    return ["echo 'Running performance tests'", "# Add performance testing commands here"]
