# config package

from .run_config import RunConfig

__all__ = ['RunConfig']
