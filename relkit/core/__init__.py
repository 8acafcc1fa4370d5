"""Core types: results, configuration, context store, templates."""

from .config import Config, ConfigError, load_config
from .context import ContextStore, deep_merge, get_path
from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok
from .template import render

__all__ = [
    # config
    "Config",
    "ConfigError",
    "load_config",
    # context
    "ContextStore",
    "deep_merge",
    "get_path",
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # template
    "render",
]
