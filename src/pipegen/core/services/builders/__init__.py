from .jobs import JobBuilder
from .stages import StageBuilder
from .variables import VariableBuilder

__all__ = [
    "JobBuilder",
    "StageBuilder",
    "VariableBuilder",
]
