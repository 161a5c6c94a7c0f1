from .core import detect_project_type

__all__ = [
    "detect_project_type",
]
