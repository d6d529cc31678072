# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


import copy
import io
import os

from yaml import safe_load

from ecosched.utils.exception.cli_exception import ConfigError


class DottableDict(dict):
    """A wrapper to dictionary to make possible to key as property."""

    def __init__(self, *args, **kwargs):
        dict.__init__(self, *args, **kwargs)
        self.__dict__ = self


def convert_dottable(natural_dict: dict) -> DottableDict:
    """Convert a dictionary to DottableDict.

    Args:
        natural_dict (dict): Dictionary to convert to DottableDict.

    Returns:
        DottableDict: Dottable object.
    """
    dottable_dict = DottableDict(natural_dict)
    for k, v in natural_dict.items():
        if isinstance(v, dict):
            v = convert_dottable(v)
            dottable_dict[k] = v
    return dottable_dict


def deep_update(base: dict, overrides: dict) -> dict:
    """Return a copy of ``base`` with ``overrides`` merged into it recursively.

    Nested dictionaries are merged key by key, any other value in ``overrides`` replaces the one in ``base``.

    Args:
        base (dict): Default values.
        overrides (dict): Values to apply on top of the defaults.

    Returns:
        dict: The merged dictionary, ``base`` is not modified.
    """
    merged = copy.deepcopy(dict(base))
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_update(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_yaml_config(path: str) -> DottableDict:
    """Load a YAML file and convert it to a DottableDict.

    Args:
        path (str): Path of the YAML file, ``~`` is expanded.

    Returns:
        DottableDict: Loaded configuration.
    """
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        raise ConfigError(f"Config file '{path}' does not exist.")

    with io.open(path, "r") as in_file:
        raw_config = safe_load(in_file)

    if raw_config is None:
        raw_config = {}
    elif not isinstance(raw_config, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping at the top level.")

    return convert_dottable(raw_config)
