# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import os
from typing import List, Optional

from yaml import safe_load

from ecosched.utils.exception.scheduler_exception import SchedulerShutdownError
from ecosched.utils.logger import CliLogger
from ecosched.utils.utils import DottableDict, convert_dottable, deep_update

from .cluster_state import ClusterState
from .collaborator import AbsClusterCollaborator
from .common import Migration, Placement, default_vm_for_cpu
from .enums import PowerState, Priority, SlaType, VmType
from .helpers import DocableDict
from .machine_queue import MachineEnergyQueue
from .placement import PlacementEngine, build_strategy
from .power_manager import PowerManager
from .rebalancer import Rebalancer

metrics_desc = """
Scheduler metrics used provide statistics information until now.
It contains following keys:

total_tasks (int): Tasks received by the scheduler.
placed_tasks (int): Tasks placed on a VM.
unplaced_tasks (int): Tasks no machine could host.
completed_tasks (int): Tasks reported as completed.
created_vms (int): VMs created by the scheduler, default VMs included.
activated_machines (int): Standby machines woken up to host a task or a default VM.
standby_transitions (int): Active machines put in standby by the power manager.
issued_migrations (int): Migrations decided by the rebalancer.
completed_migrations (int): Migrations reported as completed.
"""

report_desc = """
Final report of the scheduler, produced at shutdown.
It contains following keys:

time (int): Time of the shutdown event.
total_energy (float): Energy consumed by the whole cluster.
sla0 (float): Percentage of SLA0 tasks that missed their deadline.
sla1 (float): Percentage of SLA1 tasks that missed their deadline.
sla2 (float): Percentage of SLA2 tasks that missed their deadline.
metrics (DocableDict): Scheduler metrics at shutdown.
"""

logger = CliLogger(name=__name__)


class Scheduler:
    """Entry points of the placement & rebalancing engine.

    The harness creates one scheduler per cluster and delivers the events to it in non-decreasing
    time order, one at a time. Every handler leaves the cluster state consistent before returning.

    Args:
        collaborator (AbsClusterCollaborator): The cluster the scheduler runs against.
        config (dict): Overrides of the default configuration in ``config.yml``.
    """

    def __init__(self, collaborator: AbsClusterCollaborator, config: dict = None):
        self._collaborator = collaborator
        self._load_configs(config)

        self._cluster_state = ClusterState()
        self._machine_queue = MachineEnergyQueue(
            energy_of=lambda machine_id: self._collaborator.machine_info(machine_id).energy_consumption
        )

        strategy = build_strategy(
            strategy=self._config.placement_strategy,
            collaborator=collaborator,
            cluster_state=self._cluster_state,
            vm_memory_overhead=self._vm_memory_overhead,
            machine_queue=self._machine_queue
        )
        self._placement_engine = PlacementEngine(
            strategy=strategy,
            collaborator=collaborator,
            cluster_state=self._cluster_state,
            vm_memory_overhead=self._vm_memory_overhead
        )
        self._power_manager = PowerManager(
            collaborator=collaborator,
            cluster_state=self._cluster_state,
            standby_grace_checks=self._config.power.standby_grace_checks
        )
        self._rebalancer = Rebalancer(
            collaborator=collaborator,
            cluster_state=self._cluster_state,
            machine_queue=self._machine_queue,
            vm_memory_overhead=self._vm_memory_overhead
        )

        self._unplaced_tasks: List[int] = []
        self._is_initialized: bool = False
        self._is_shutdown: bool = False

        self._init_metrics()

    @property
    def config(self) -> DottableDict:
        """DottableDict: Current configuration."""
        return self._config

    @property
    def cluster_state(self) -> ClusterState:
        return self._cluster_state

    @property
    def placement_engine(self) -> PlacementEngine:
        return self._placement_engine

    @property
    def power_manager(self) -> PowerManager:
        return self._power_manager

    @property
    def rebalancer(self) -> Rebalancer:
        return self._rebalancer

    @property
    def machine_queue(self) -> MachineEnergyQueue:
        return self._machine_queue

    @property
    def unplaced_tasks(self) -> List[int]:
        """List[int]: Tasks that could not be placed, in arrival order."""
        return self._unplaced_tasks

    @property
    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def _load_configs(self, config: Optional[dict]):
        """Load the default configuration and apply the overrides on it."""
        with open(os.path.join(os.path.dirname(__file__), "config.yml")) as fp:
            default_config = safe_load(fp)

        self._config = convert_dottable(deep_update(default_config, dict(config or {})))
        self._vm_memory_overhead: int = self._config.vm_memory_overhead

    def _init_metrics(self):
        self._total_tasks: int = 0
        self._placed_tasks: int = 0
        self._completed_tasks: int = 0
        self._created_vms: int = 0
        self._activated_machines: int = 0
        self._standby_transitions: int = 0
        self._issued_migrations: int = 0
        self._completed_migrations: int = 0

    def _check_running(self, event_name: str):
        if self._is_shutdown:
            raise SchedulerShutdownError(f"Received '{event_name}' after shutdown.")

    def init(self):
        """Register the machine roster and create the default VMs."""
        self._check_running("init")
        if self._is_initialized:
            logger.warning("Scheduler is already initialized, ignoring the second init.")
            return

        total_machines = self._collaborator.machine_total()
        logger.debug(f"Initializing scheduler, total number of machines is {total_machines}.")

        for machine_id in range(total_machines):
            self._cluster_state.register_machine(machine_id)
            self._machine_queue.push(machine_id)

            if self._config.init.create_default_vms:
                self._create_default_vm(machine_id)

        self._is_initialized = True
        logger.debug(f"Scheduler initialized with {len(self._cluster_state.vms)} default VMs.")

    def _create_default_vm(self, machine_id: int):
        machine = self._collaborator.machine_info(machine_id)
        vm_type = default_vm_for_cpu(machine.cpu)
        if vm_type == VmType.INVALID:
            return

        if machine.s_state != PowerState.ACTIVE:
            self._collaborator.set_machine_state(machine_id, PowerState.ACTIVE)
            self._activated_machines += 1
            logger.debug(f"Powered on standby machine {machine_id} for its default VM.")

        vm_id = self._collaborator.create_vm(vm_type, machine.cpu)
        self._cluster_state.register_vm(vm_id)
        self._collaborator.attach_vm(vm_id, machine_id)
        self._cluster_state.attach_vm(vm_id, machine_id)
        self._created_vms += 1

    def new_task(self, now: int, task_id: int) -> Optional[Placement]:
        """Place a newly arrived task.

        Returns:
            Optional[Placement]: The placement, None if the task is unplaceable.
        """
        self._check_running("new_task")
        self._total_tasks += 1

        placement = self._placement_engine.place(task_id)
        if placement is None:
            self._unplaced_tasks.append(task_id)
            logger.warning_yellow(f"No placement found for task {task_id} at time {now}.")
            return None

        self._placed_tasks += 1
        if placement.created_vm:
            self._created_vms += 1
        if placement.activated_machine:
            self._activated_machines += 1

        logger.debug(
            f"Task {task_id} assigned to VM {placement.vm_id} on machine {placement.machine_id} at time {now}."
        )

        return placement

    def task_complete(self, now: int, task_id: int) -> List[Migration]:
        """Release a finished task and rebalance the cluster.

        Returns:
            List[Migration]: Migrations issued in response to the completion.
        """
        self._check_running("task_complete")
        self._cluster_state.release_task(task_id)
        self._completed_tasks += 1

        logger.debug(f"Task {task_id} is complete at time {now}.")

        if not self._config.rebalance.on_task_complete:
            return []

        return self._rebalance()

    def migration_complete(self, now: int, vm_id: int):
        """Finalize the relocation of a VM, the VM can receive new tasks again."""
        self._check_running("migration_complete")

        host = self._cluster_state.clear_migrating(vm_id)
        if host is None:
            logger.warning(f"Migration of VM {vm_id} completed at time {now}, but it was not migrating.")
            return

        self._completed_migrations += 1
        logger.debug(f"Migration of VM {vm_id} to machine {host} completed at time {now}.")

    def periodic_check(self, now: int) -> List[int]:
        """Put empty machines in standby, and rebalance if configured.

        Returns:
            List[int]: Machines switched to standby.
        """
        self._check_running("periodic_check")

        standby_machines = self._power_manager.check()
        self._standby_transitions += len(standby_machines)

        if self._config.rebalance.on_periodic_check:
            self._rebalance()

        return standby_machines

    def memory_warning(self, now: int, machine_id: int):
        self._check_running("memory_warning")
        logger.warning_yellow(f"Memory overflow at machine {machine_id} was detected at time {now}.")

    def sla_warning(self, now: int, task_id: int):
        """Raise the priority of a task at risk of missing its SLA."""
        self._check_running("sla_warning")
        self._collaborator.set_task_priority(task_id, Priority.HIGH)
        logger.debug(f"SLA warning for task {task_id} at time {now}, priority raised to HIGH.")

    def state_change_complete(self, now: int, machine_id: int):
        self._check_running("state_change_complete")
        logger.debug(f"Machine {machine_id} finished its power state change at time {now}.")

    def shutdown(self, now: int) -> DocableDict:
        """Shut every known VM down and report the energy and SLA figures.

        No event is accepted after the shutdown.

        Returns:
            DocableDict: The final report.
        """
        self._check_running("shutdown")

        for vm_id in self._cluster_state.vms:
            self._collaborator.shutdown_vm(vm_id)

        self._is_shutdown = True

        report = DocableDict(
            report_desc,
            time=now,
            total_energy=self._collaborator.cluster_energy(),
            sla0=self._collaborator.sla_report(SlaType.SLA0),
            sla1=self._collaborator.sla_report(SlaType.SLA1),
            sla2=self._collaborator.sla_report(SlaType.SLA2),
            metrics=self.get_metrics()
        )

        logger.info(f"Simulation finished at time {now}.")
        logger.info(f"Total Energy: {report['total_energy']:.4f} KW-Hour")
        logger.info(f"SLA0: {report['sla0']:.2f}%")
        logger.info(f"SLA1: {report['sla1']:.2f}%")
        logger.info(f"SLA2: {report['sla2']:.2f}%")
        logger.info("SLA3: best-effort")

        return report

    def get_metrics(self) -> DocableDict:
        """Get current scheduler metrics information.

        Returns:
            DocableDict: Metrics information.
        """
        return DocableDict(
            metrics_desc,
            total_tasks=self._total_tasks,
            placed_tasks=self._placed_tasks,
            unplaced_tasks=len(self._unplaced_tasks),
            completed_tasks=self._completed_tasks,
            created_vms=self._created_vms,
            activated_machines=self._activated_machines,
            standby_transitions=self._standby_transitions,
            issued_migrations=self._issued_migrations,
            completed_migrations=self._completed_migrations
        )

    def _rebalance(self) -> List[Migration]:
        migrations = self._rebalancer.rebalance()
        self._issued_migrations += len(migrations)
        return migrations
