"""Result values, exit codes and the openmods.json model."""

from .config import ConfigError, OpenModsConfig, load_config, save_config
from .errors import ErrorCode
from .result import Err, Ok, Result, collect

__all__ = [
    "ConfigError",
    "ErrorCode",
    "Err",
    "Ok",
    "OpenModsConfig",
    "Result",
    "collect",
    "load_config",
    "save_config",
]
