# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Dict, List

from ecosched.utils.exception.cli_exception import ConfigError
from ecosched.utils.logger import CliLogger

from .cluster_state import ClusterState
from .collaborator import AbsClusterCollaborator
from .enums import PowerState

logger = CliLogger(name=__name__)


class PowerManager:
    """Put empty Active machines in standby on periodic checks.

    Power-up is never done here, the placement engine wakes machines up when it needs them.

    Args:
        collaborator (AbsClusterCollaborator): The cluster to query and command.
        cluster_state (ClusterState): The shared cluster view.
        standby_grace_checks (int): Number of extra consecutive checks a machine has to be found empty
            before it is put in standby. 0 powers it down on the first empty check.
    """

    def __init__(self, collaborator: AbsClusterCollaborator, cluster_state: ClusterState, standby_grace_checks: int = 0):
        if standby_grace_checks < 0:
            raise ConfigError(f"standby_grace_checks cannot be negative, got {standby_grace_checks}.")

        self._collaborator = collaborator
        self._cluster_state = cluster_state
        self._standby_grace_checks = standby_grace_checks
        # Machine id -> number of consecutive checks the machine was found empty.
        self._empty_checks: Dict[int, int] = {}

    def check(self) -> List[int]:
        """Inspect every known machine once.

        Returns:
            List[int]: Machines switched to standby by this check.
        """
        standby_machines = []

        for machine_id in self._cluster_state.machines:
            machine = self._collaborator.machine_info(machine_id)
            if machine.s_state != PowerState.ACTIVE or machine.active_tasks != 0 or machine.active_vms != 0:
                self._empty_checks.pop(machine_id, None)
                continue

            empty_checks = self._empty_checks.get(machine_id, 0) + 1
            if empty_checks <= self._standby_grace_checks:
                self._empty_checks[machine_id] = empty_checks
                continue

            self._empty_checks.pop(machine_id, None)
            self._collaborator.set_machine_state(machine_id, PowerState.STANDBY)
            standby_machines.append(machine_id)

            logger.debug(f"Machine {machine_id} is empty, switched to standby.")

        return standby_machines
