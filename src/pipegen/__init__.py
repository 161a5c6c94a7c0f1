from .settings import VERSION

__version__ = VERSION
