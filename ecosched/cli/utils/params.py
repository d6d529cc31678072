# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


import logging
import os


class GlobalParams:
    LOG_LEVEL = logging.INFO


class GlobalPaths:
    ECOSCHED_HOME = "~/.ecosched"
    ECOSCHED_LOG = "~/.ecosched/log"
    ABS_ECOSCHED_HOME = os.path.expanduser(ECOSCHED_HOME)
    ABS_ECOSCHED_LOG = os.path.expanduser(ECOSCHED_LOG)
