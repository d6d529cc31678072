# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


from ecosched.simulator import Env
from ecosched.utils.exception.cli_exception import ConfigError
from ecosched.utils.logger import CliLogger
from ecosched.utils.utils import deep_update, load_yaml_config

logger = CliLogger(name=__name__)


# ecosched run
def run(
    topology: str,
    workload: str = None,
    strategy: str = None,
    durations: int = None,
    check_interval: int = 10,
    config: str = None,
    **kwargs
):
    """Run a simulation and print its final report.

    Args:
        topology (str): Name of a built-in topology or path of a topology file.
        workload (str): Path of a workload CSV file.
        strategy (str): Placement strategy, overrides the one of the scheduler config.
        durations (int): Ticks to simulate, None runs until the workload is drained.
        check_interval (int): Ticks between two periodic checks.
        config (str): Path of a YAML file with scheduler config overrides.
    """
    if durations is not None and durations <= 0:
        raise ConfigError(f"Durations must be positive, got {durations}.")
    if check_interval < 0:
        raise ConfigError(f"Check interval cannot be negative, got {check_interval}.")

    scheduler_config = {}
    if config is not None:
        scheduler_config = deep_update(scheduler_config, load_yaml_config(config))
    if strategy is not None:
        scheduler_config["placement_strategy"] = strategy

    env = Env(
        topology=topology,
        workload=workload,
        durations=durations,
        check_interval=check_interval,
        scheduler_config=scheduler_config
    )

    logger.debug(f"Running topology '{topology}' with strategy '{env.scheduler.config.placement_strategy}'.")
    report = env.run()

    logger.info_green("Scheduler metrics:")
    logger.info(f"{report['metrics']}")
    logger.info_green("Cluster metrics:")
    logger.info(f"{env.metrics}")

    return report
