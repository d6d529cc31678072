# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


from .base_exception import EcoschedException


class CliError(EcoschedException):
    """ Base class for all ecosched CLI errors."""

    def __init__(self, message: str = None, error_code: int = 3000):
        super().__init__(error_code, message)

    def get_message(self) -> str:
        """ Get the error message of the Exception.

        Returns:
            str: Error message.
        """
        return self.strerror


class CommandNotFoundError(CliError):
    """ Users should be responsible for the errors.
    ErrorCode with 3001."""

    def __init__(self, message: str = None, usage: str = ""):
        self.usage = usage
        super().__init__(message, 3001)


class ConfigError(CliError):
    """ The given topology or scheduler config cannot be loaded.
    ErrorCode with 3002."""

    def __init__(self, message: str = None):
        super().__init__(message, 3002)
