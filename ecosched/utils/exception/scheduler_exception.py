# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


from .base_exception import EcoschedException
from .error_code import ERROR_CODE


class SchedulerError(EcoschedException):
    """Base class for all errors raised by the placement & rebalancing engine."""

    def __init__(self, msg: str = None, error_code: int = 2200):
        super().__init__(error_code, msg)


class UnknownStrategyError(SchedulerError):
    """The configured placement strategy is not one of the supported ones."""

    def __init__(self, strategy: str):
        super().__init__(f"{ERROR_CODE[2201]}: '{strategy}'", 2201)


class ClusterStateError(SchedulerError):
    """A cluster state mutation does not match the current view."""

    def __init__(self, msg: str = None):
        super().__init__(msg, 2202)


class SchedulerShutdownError(SchedulerError):
    """An event was delivered after the scheduler was shut down."""

    def __init__(self, msg: str = None):
        super().__init__(msg, 2203)
