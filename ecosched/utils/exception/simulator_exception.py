# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


from .base_exception import EcoschedException


class SimulatorError(EcoschedException):
    """Base class for errors raised by the reference cluster simulator."""

    def __init__(self, msg: str = None, error_code: int = 2300):
        super().__init__(error_code, msg)


class InvalidCommandError(SimulatorError):
    """A command breaks the rules of the simulated cluster, e.g. attaching a VM to a standby machine."""

    def __init__(self, msg: str = None):
        super().__init__(msg, 2301)


class EntityNotFoundError(SimulatorError):
    """A machine, VM or task id is unknown to the simulated cluster."""

    def __init__(self, msg: str = None):
        super().__init__(msg, 2302)
