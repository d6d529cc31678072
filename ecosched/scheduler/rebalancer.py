# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import List, Optional, Tuple

from ecosched.utils.logger import CliLogger

from .cluster_state import ClusterState
from .collaborator import AbsClusterCollaborator
from .common import Migration
from .enums import PowerState
from .machine_queue import MachineEnergyQueue

logger = CliLogger(name=__name__)


def split_roster(ordered_machines: List[int]) -> Tuple[List[int], List[int]]:
    """Split an ordered roster in a low part of ``n // 2`` machines and a high part with the rest."""
    mid = len(ordered_machines) // 2
    return ordered_machines[:mid], ordered_machines[mid:]


class Rebalancer:
    """Drain lightly loaded machines by migrating their smallest VM to a busier machine.

    The roster is ordered by energy consumption and split in halves. For each machine of the low half,
    the attached non-migrating VM with the smallest nonzero workload (sum of the memory of its tasks)
    is moved to the first machine of the high half that is Active, has the same CPU and enough memory
    for the workload plus the VM overhead. At most one VM leaves each low-half machine per pass.

    Args:
        collaborator (AbsClusterCollaborator): The cluster to query and command.
        cluster_state (ClusterState): The shared cluster view.
        machine_queue (MachineEnergyQueue): The shared energy-ordered machine queue.
        vm_memory_overhead (int): Memory reserved per VM on the destination.
    """

    def __init__(
        self,
        collaborator: AbsClusterCollaborator,
        cluster_state: ClusterState,
        machine_queue: MachineEnergyQueue,
        vm_memory_overhead: int
    ):
        self._collaborator = collaborator
        self._cluster_state = cluster_state
        self._machine_queue = machine_queue
        self._vm_memory_overhead = vm_memory_overhead

    def rebalance(self) -> List[Migration]:
        """Run one rebalancing pass.

        Returns:
            List[Migration]: The migrations issued by this pass.
        """
        self._machine_queue.refresh()
        ordered_machines = self._machine_queue.drain()
        migrations: List[Migration] = []

        try:
            low_machines, high_machines = split_roster(ordered_machines)

            for source in low_machines:
                candidate = self._smallest_vm(source)
                if candidate is None:
                    continue

                vm_id, workload = candidate
                destination = self._find_destination(vm_id, workload, high_machines)
                if destination is None:
                    continue

                self._cluster_state.relocate(vm_id, source, destination)
                self._cluster_state.mark_migrating(vm_id)
                self._collaborator.migrate_vm(vm_id, destination)
                migrations.append(Migration(vm_id=vm_id, source=source, destination=destination, workload=workload))

                logger.debug(f"Migrating VM {vm_id} (workload {workload}) from machine {source} to {destination}.")
        finally:
            self._machine_queue.extend(ordered_machines)

        return migrations

    def workload_of(self, vm_id: int) -> int:
        """Sum of the memory required by the active tasks of a VM."""
        return sum(
            self._collaborator.task_info(task_id).required_memory
            for task_id in self._collaborator.vm_info(vm_id).active_tasks
        )

    def _smallest_vm(self, machine_id: int) -> Optional[Tuple[int, int]]:
        smallest: Optional[Tuple[int, int]] = None

        for vm_id in self._cluster_state.vms_on(machine_id):
            if self._cluster_state.is_migrating(vm_id):
                continue

            workload = self.workload_of(vm_id)
            if workload > 0 and (smallest is None or workload < smallest[1]):
                smallest = (vm_id, workload)

        return smallest

    def _find_destination(self, vm_id: int, workload: int, high_machines: List[int]) -> Optional[int]:
        vm_cpu = self._collaborator.vm_info(vm_id).cpu

        for machine_id in high_machines:
            machine = self._collaborator.machine_info(machine_id)
            if (
                machine.s_state == PowerState.ACTIVE
                and machine.cpu == vm_cpu
                and machine.available_memory >= workload + self._vm_memory_overhead
            ):
                return machine_id

        return None
