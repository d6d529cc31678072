# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import abc
from typing import Dict, Optional

from ecosched.utils.exception.scheduler_exception import UnknownStrategyError
from ecosched.utils.logger import CliLogger

from .cluster_state import ClusterState
from .collaborator import AbsClusterCollaborator
from .common import MachineInfo, Placement, TaskInfo, determine_priority
from .enums import PlacementStrategy, PowerState
from .machine_queue import MachineEnergyQueue

logger = CliLogger(name=__name__)


class AbsPlacementStrategy(abc.ABC):
    """Base class of the placement strategies.

    A strategy only looks at Active machines. It either reuses a VM or creates one and returns the
    resulting placement, the standby fallback and the task hand-over are done by ``PlacementEngine``.

    Args:
        collaborator (AbsClusterCollaborator): The cluster to query and command.
        cluster_state (ClusterState): The shared cluster view.
        vm_memory_overhead (int): Memory reserved per VM on top of the task requirement.
        machine_queue (MachineEnergyQueue): The shared energy-ordered machine queue.
    """

    def __init__(
        self,
        collaborator: AbsClusterCollaborator,
        cluster_state: ClusterState,
        vm_memory_overhead: int,
        machine_queue: MachineEnergyQueue = None
    ):
        self._collaborator = collaborator
        self._cluster_state = cluster_state
        self._vm_memory_overhead = vm_memory_overhead
        self._machine_queue = machine_queue

    @abc.abstractmethod
    def select(self, task: TaskInfo) -> Optional[Placement]:
        """Choose an Active machine and a VM on it for the task.

        Args:
            task (TaskInfo): The task to place.

        Returns:
            Optional[Placement]: The placement, None if no Active machine can host the task.
        """
        raise NotImplementedError

    def admits(self, machine: MachineInfo, task: TaskInfo) -> bool:
        """Admission check: Active, same CPU and enough memory for the task plus the VM overhead."""
        return (
            machine.s_state == PowerState.ACTIVE
            and machine.cpu == task.required_cpu
            and machine.available_memory >= task.required_memory + self._vm_memory_overhead
        )

    def reusable_vm(self, machine_id: int, task: TaskInfo) -> Optional[int]:
        """The lowest id VM hosted on the machine that has the task's type and is not migrating."""
        for vm_id in self._cluster_state.vms_on(machine_id):
            if self._cluster_state.is_migrating(vm_id) or self._cluster_state.host_of(vm_id) != machine_id:
                continue

            vm_info = self._collaborator.vm_info(vm_id)
            if vm_info.vm_type == task.required_vm and vm_info.cpu == task.required_cpu:
                return vm_id

        return None

    def create_vm_on(self, machine_id: int, task: TaskInfo) -> int:
        vm_id = self._collaborator.create_vm(task.required_vm, task.required_cpu)
        self._cluster_state.register_vm(vm_id)
        self._collaborator.attach_vm(vm_id, machine_id)
        self._cluster_state.attach_vm(vm_id, machine_id)

        logger.debug(f"Created VM {vm_id} ({task.required_vm.name}) on machine {machine_id}.")

        return vm_id

    def place_on(self, machine_id: int, task: TaskInfo) -> Placement:
        """Reuse a VM of the right type on the machine, or create one."""
        vm_id = self.reusable_vm(machine_id, task)
        if vm_id is not None:
            return Placement(task_id=task.id, vm_id=vm_id, machine_id=machine_id)

        vm_id = self.create_vm_on(machine_id, task)
        return Placement(task_id=task.id, vm_id=vm_id, machine_id=machine_id, created_vm=True)


class BestFitExisting(AbsPlacementStrategy):
    """Pick the eligible VM with the fewest active tasks, lowest VM id on ties.

    A VM is eligible if it is attached, not migrating, has the task's type and CPU, and its Active
    host admits the task. Without any eligible VM, a new one is created on the first admitting
    machine of the roster.
    """

    def select(self, task: TaskInfo) -> Optional[Placement]:
        machine_infos: Dict[int, MachineInfo] = {}
        best_vm, best_host, min_tasks = None, None, None

        for vm_id in self._cluster_state.vms:
            if self._cluster_state.is_migrating(vm_id):
                continue

            host = self._cluster_state.host_of(vm_id)
            if host is None:
                continue

            if host not in machine_infos:
                machine_infos[host] = self._collaborator.machine_info(host)
            if not self.admits(machine_infos[host], task):
                continue

            vm_info = self._collaborator.vm_info(vm_id)
            if vm_info.cpu != task.required_cpu or vm_info.vm_type != task.required_vm:
                continue

            if best_vm is None or (len(vm_info.active_tasks), vm_id) < (min_tasks, best_vm):
                best_vm, best_host, min_tasks = vm_id, host, len(vm_info.active_tasks)

        if best_vm is not None:
            return Placement(task_id=task.id, vm_id=best_vm, machine_id=best_host)

        for machine_id in self._cluster_state.machines:
            machine = machine_infos.get(machine_id) or self._collaborator.machine_info(machine_id)
            if self.admits(machine, task):
                vm_id = self.create_vm_on(machine_id, task)
                return Placement(task_id=task.id, vm_id=vm_id, machine_id=machine_id, created_vm=True)

        return None


class RoundRobinMachine(AbsPlacementStrategy):
    """Scan the roster circularly from a rotating cursor and take the first admitting machine.

    The cursor starts at the first machine and moves to one past the chosen machine after each
    placement, so uniform machines receive one task each before any receives a second.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._cursor: int = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    def select(self, task: TaskInfo) -> Optional[Placement]:
        machines = self._cluster_state.machines
        machine_num = len(machines)

        for offset in range(machine_num):
            idx = (self._cursor + offset) % machine_num
            machine_id = machines[idx]
            if self.admits(self._collaborator.machine_info(machine_id), task):
                self._cursor = (idx + 1) % machine_num
                return self.place_on(machine_id, task)

        return None


class EnergyPriorityQueue(AbsPlacementStrategy):
    """Prefer the machines that consumed the least energy.

    Candidates are popped from the energy queue until one admits the task, then every popped machine,
    the winner included, is pushed back so the queue keeps covering the full roster.
    """

    def select(self, task: TaskInfo) -> Optional[Placement]:
        self._machine_queue.refresh()
        popped = []

        try:
            while len(self._machine_queue) > 0:
                machine_id = self._machine_queue.pop()
                popped.append(machine_id)

                if self.admits(self._collaborator.machine_info(machine_id), task):
                    return self.place_on(machine_id, task)
        finally:
            self._machine_queue.extend(popped)

        return None


STRATEGY_CLASSES = {
    PlacementStrategy.BEST_FIT: BestFitExisting,
    PlacementStrategy.ROUND_ROBIN: RoundRobinMachine,
    PlacementStrategy.ENERGY_PRIORITY: EnergyPriorityQueue,
}


def build_strategy(
    strategy,
    collaborator: AbsClusterCollaborator,
    cluster_state: ClusterState,
    vm_memory_overhead: int,
    machine_queue: MachineEnergyQueue
) -> AbsPlacementStrategy:
    """Build a placement strategy from a ``PlacementStrategy`` or its config name."""
    try:
        strategy = PlacementStrategy(strategy)
    except ValueError:
        raise UnknownStrategyError(str(strategy))

    return STRATEGY_CLASSES[strategy](
        collaborator=collaborator,
        cluster_state=cluster_state,
        vm_memory_overhead=vm_memory_overhead,
        machine_queue=machine_queue
    )


class PlacementEngine:
    """Map an arriving task to a VM, waking a standby machine up if no Active one fits.

    Args:
        strategy (AbsPlacementStrategy): Strategy used on the Active machines.
        collaborator (AbsClusterCollaborator): The cluster to query and command.
        cluster_state (ClusterState): The shared cluster view.
        vm_memory_overhead (int): Memory reserved per VM on top of the task requirement.
    """

    def __init__(
        self,
        strategy: AbsPlacementStrategy,
        collaborator: AbsClusterCollaborator,
        cluster_state: ClusterState,
        vm_memory_overhead: int
    ):
        self._strategy = strategy
        self._collaborator = collaborator
        self._cluster_state = cluster_state
        self._vm_memory_overhead = vm_memory_overhead

    @property
    def strategy(self) -> AbsPlacementStrategy:
        return self._strategy

    def place(self, task_id: int) -> Optional[Placement]:
        """Place a task and start it on the chosen VM.

        Returns:
            Optional[Placement]: The placement, None if the task is unplaceable.
        """
        task = self._collaborator.task_info(task_id)

        placement = self._strategy.select(task)
        if placement is None:
            placement = self._activate_standby_machine(task)
        if placement is None:
            return None

        self._collaborator.add_task(placement.vm_id, task_id, determine_priority(task.required_sla))
        self._cluster_state.assign_task(task_id, placement.vm_id)

        return placement

    def _activate_standby_machine(self, task: TaskInfo) -> Optional[Placement]:
        for machine_id in self._cluster_state.machines:
            machine = self._collaborator.machine_info(machine_id)
            if (
                machine.s_state != PowerState.STANDBY
                or machine.cpu != task.required_cpu
                or machine.available_memory < task.required_memory + self._vm_memory_overhead
            ):
                continue

            self._collaborator.set_machine_state(machine_id, PowerState.ACTIVE)
            vm_id = self._strategy.create_vm_on(machine_id, task)

            logger.debug(f"Powered on standby machine {machine_id} for task {task.id}.")

            return Placement(
                task_id=task.id, vm_id=vm_id, machine_id=machine_id, created_vm=True, activated_machine=True
            )

        return None
