# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

# native lib
import logging
import os
import sys
from datetime import datetime
from enum import Enum
from typing import Optional

# private lib
from ecosched.cli.utils.params import GlobalParams as CliGlobalParams
from ecosched.cli.utils.params import GlobalPaths


class LogFormat(Enum):
    """The Enum class of the log format.

    Example:
        - ``LogFormat.simple``: simple time | tag | level | msg
        - ``LogFormat.cli_debug``: full time | level | msg
        - ``LogFormat.cli_info``: msg on stdout, full time | level | msg in the dumped file
    """
    simple = 1
    cli_debug = 2
    cli_info = 3


FORMAT_NAME_TO_FILE_FORMAT = {
    LogFormat.simple: logging.Formatter(
        fmt='%(asctime)s | %(tag)s | %(levelname)s | %(message)s', datefmt='%H:%M:%S'),
    LogFormat.cli_debug: logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"),
    LogFormat.cli_info: logging.Formatter(
        fmt="%(asctime)s | %(levelname)-7s | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"),
}

FORMAT_NAME_TO_STDOUT_FORMAT = {
    # Reports are printed as they are in the INFO mode.
    LogFormat.cli_info: logging.Formatter(fmt='%(message)s'),
}

COLORS = {
    "green": '\033[32m',
    "yellow": '\033[33m',
    "red": '\033[31m',
}


def msgformat(logfunc):
    """The decorator used to construct the log msg."""

    def _msgformatter(self, msg, *args):
        if args:
            logfunc(self, "%s %s", isinstance(msg, str) and msg or repr(msg), repr(args))
        else:
            logfunc(self, "%s", isinstance(msg, str) and msg or repr(msg))

    return _msgformatter


class Logger(object):
    """A simple wrapper for logging.

    The Logger hosts a stdout handler and, if ``dump_folder`` is given, a file handler set to ``DEBUG``
    level. The level of the stdout handler can be redirected by the environment variable ``LOG_LEVEL``.

    Args:
        tag (str): Log tag for stream and file output.
        format_ (LogFormat): Predefined formatter. Defaults to ``LogFormat.simple``.
        dump_folder (str): Folder of the dumped ``tag.log`` file, None disables the dump.
        dump_mode (str): Write log file mode. Defaults to ``a``.
        stdout_level (str): The logging level of the stdout handler. Defaults to ``INFO``.
    """

    def __init__(
        self, tag: str, format_: LogFormat = LogFormat.simple, dump_folder: Optional[str] = None,
        dump_mode: str = 'a', stdout_level="INFO"
    ):
        file_format = FORMAT_NAME_TO_FILE_FORMAT[format_]
        stdout_format = FORMAT_NAME_TO_STDOUT_FORMAT.get(format_, file_format)

        self._logger = logging.getLogger(tag)
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False
        self._extra = {'tag': tag}

        # Re-initialization replaces the previous handlers of the same tag.
        for handler in list(self._logger.handlers):
            self._logger.removeHandler(handler)
            handler.close()

        if dump_folder is not None:
            os.makedirs(dump_folder, exist_ok=True)
            fh = logging.FileHandler(filename=os.path.join(dump_folder, f"{tag}.log"), mode=dump_mode, encoding="utf-8")
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(file_format)
            self._logger.addHandler(fh)

        sh = logging.StreamHandler(sys.stdout)
        sh.setLevel(os.environ.get('LOG_LEVEL') or stdout_level)
        sh.setFormatter(stdout_format)
        self._logger.addHandler(sh)

    @msgformat
    def debug(self, msg, *args):
        """Add a log with ``DEBUG`` level."""
        self._logger.debug(msg, *args, extra=self._extra)

    @msgformat
    def info(self, msg, *args):
        """Add a log with ``INFO`` level."""
        self._logger.info(msg, *args, extra=self._extra)

    @msgformat
    def warn(self, msg, *args):
        """Add a log with ``WARN`` level."""
        self._logger.warning(msg, *args, extra=self._extra)

    @msgformat
    def error(self, msg, *args):
        """Add a log with ``ERROR`` level."""
        self._logger.error(msg, *args, extra=self._extra)


class CliLogger:
    """The shared logger of the scheduler, the simulator and the CLI.

    It maintains a singleton logger in a process lifecycle. The logger is inited at the first call and
    re-inited when ``GlobalParams.LOG_LEVEL`` changes, which the ``--debug`` argument switches to ``DEBUG``.
    Logs are dumped under ``~/.ecosched/log/cli/<date>`` when the ``ECOSCHED_LOG_DUMP`` environment variable
    is set.

    Args:
        name (str): Name of the module the logger is used in, added to the debug messages.
    """

    class _CliLogger(Logger):
        def __init__(self):
            self.log_level = CliGlobalParams.LOG_LEVEL
            dump_folder = None
            if os.environ.get("ECOSCHED_LOG_DUMP"):
                dump_folder = os.path.join(GlobalPaths.ABS_ECOSCHED_LOG, "cli", datetime.now().strftime('%Y%m%d'))

            super().__init__(
                tag='ecosched',
                format_=LogFormat.cli_debug if self.log_level == logging.DEBUG else LogFormat.cli_info,
                dump_folder=dump_folder,
                stdout_level=self.log_level
            )

    _logger = None

    def __init__(self, name):
        self.name = name

    def passive_init(self) -> None:
        """Init a new ``CliLogger`` if current logger is not matched with the parameters."""
        if not CliLogger._logger or CliLogger._logger.log_level != CliGlobalParams.LOG_LEVEL:
            CliLogger._logger = self._CliLogger()

    def debug(self, message: str) -> None:
        self.passive_init()
        self._logger.debug(f"[{self.name}] {message}")

    def info(self, message: str) -> None:
        self.passive_init()
        self._logger.info(message)

    def warning(self, message: str) -> None:
        self.passive_init()
        self._logger.warn(message)

    def error(self, message: str) -> None:
        self.passive_init()
        self._logger.error(message)

    def info_green(self, message: str) -> None:
        """``logger.info()`` in green."""
        self.info(self._colored(message, "green"))

    def warning_yellow(self, message: str) -> None:
        """``logger.warning()`` in yellow."""
        self.warning(self._colored(message, "yellow"))

    def error_red(self, message: str) -> None:
        """``logger.error()`` in red."""
        self.error(self._colored(message, "red"))

    @staticmethod
    def _colored(message: str, color: str) -> str:
        return COLORS[color] + message + '\033[0m'
