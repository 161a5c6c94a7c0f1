from . import gitlab

__all__ = [
    "gitlab",
]
