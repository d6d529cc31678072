# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .logger import CliLogger, LogFormat, Logger
from .utils import DottableDict, convert_dottable, deep_update, load_yaml_config

__all__ = [
    "Logger",
    "CliLogger",
    "LogFormat",
    "convert_dottable",
    "DottableDict",
    "deep_update",
    "load_yaml_config",
]
