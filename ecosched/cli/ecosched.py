# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


import logging
import traceback
from argparse import Namespace
from copy import deepcopy

import ecosched.cli.utils.examples as CliExamples
from ecosched import __version__
from ecosched.cli.utils.params import GlobalParams
from ecosched.cli.utils.parser import ArgumentParser
from ecosched.scheduler.enums import PlacementStrategy
from ecosched.utils.exception import EcoschedException
from ecosched.utils.exception.cli_exception import CliError, CommandNotFoundError
from ecosched.utils.logger import CliLogger

ECOSCHED_BANNER = """
Welcome to the ecosched CLI, energy-aware placement and rebalancing of tasks on a simulated cluster.

Use `ecosched --version` to get the current version.

"""

logger = CliLogger(name=__name__)


def main():
    global_parser = ArgumentParser()
    global_parser.add_argument("--debug", action='store_true', help="Enable debug mode")
    global_parser.add_argument("-h", "--help", action='store_true', help="Show this message and exit")

    parser = ArgumentParser(prog='ecosched', description=ECOSCHED_BANNER, parents=[global_parser])
    parser.set_defaults(func=_help_func(parser=parser))
    parser.add_argument('--version', action='store_true', help='Get version info')
    subparsers = parser.add_subparsers()

    # ecosched run
    parser_run = subparsers.add_parser(
        'run',
        help="Run a workload on a simulated cluster and report energy and SLA figures.",
        examples=CliExamples.ECOSCHED_RUN,
        parents=[global_parser]
    )
    load_parser_run(parser_run)

    args = None
    try:
        # Get args and parse global arguments
        args = parser.parse_args()
        if args.debug:
            GlobalParams.LOG_LEVEL = logging.DEBUG
        else:
            GlobalParams.LOG_LEVEL = logging.INFO
        if args.version:
            logger.info(f'{__version__}')
            return

        actual_args = _get_actual_args(namespace=args)

        # WARNING: We cannot assign any argument like 'func' in the CLI
        args.func(**actual_args)
    except CommandNotFoundError as e:
        logger.error_red(f"{e.__class__.__name__}: {e.get_message()}")
        logger.info(f"{e.usage}")
    except CliError as e:
        if args is None or args.debug:
            logger.error_red(f"{e.__class__.__name__}: {e.get_message()}\n{traceback.format_exc()}")
        else:
            logger.error_red(f"{e.__class__.__name__}: {e.get_message()}")
    except EcoschedException as e:
        if args is None or args.debug:
            logger.error_red(f"{e.__class__.__name__}: {e.strerror}\n{traceback.format_exc()}")
        else:
            logger.error_red(f"{e.__class__.__name__}: {e.strerror}")


def load_parser_run(prev_parser: ArgumentParser) -> None:
    from ecosched.cli.run.simulation import run

    prev_parser.add_argument(
        '-t', '--topology',
        required=True,
        help='Name of a built-in topology, or path of a topology file.'
    )
    prev_parser.add_argument(
        '-w', '--workload',
        default=None,
        help='Path of a workload CSV file, added to the tasks inlined in the topology.'
    )
    prev_parser.add_argument(
        '-s', '--strategy',
        default=None,
        choices=[strategy.value for strategy in PlacementStrategy],
        help='Placement strategy, overrides the scheduler config.'
    )
    prev_parser.add_argument(
        '-c', '--config',
        default=None,
        help='Path of a YAML file with scheduler config overrides.'
    )
    prev_parser.add_argument(
        '--durations',
        type=int,
        default=None,
        help='Ticks to simulate, runs until the workload is drained if not set.'
    )
    prev_parser.add_argument(
        '--check-interval',
        type=int,
        default=10,
        help='Ticks between two periodic checks, 0 disables them.'
    )
    prev_parser.set_defaults(func=run)


def _help_func(parser):
    def wrapper(*args, **kwargs):
        parser.print_help()

    return wrapper


def _get_actual_args(namespace: Namespace) -> dict:
    actual_args = vars(deepcopy(namespace))
    return actual_args


if __name__ == '__main__':
    main()
