# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import math
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np

from ecosched.event_buffer import EventBuffer
from ecosched.scheduler.collaborator import AbsClusterCollaborator
from ecosched.scheduler.common import MachineInfo, TaskInfo, VmInfo
from ecosched.scheduler.enums import CpuType, PowerState, Priority, SlaType, VmType
from ecosched.scheduler.helpers import DocableDict
from ecosched.utils.exception.simulator_exception import EntityNotFoundError, InvalidCommandError
from ecosched.utils.logger import CliLogger
from ecosched.utils.utils import DottableDict, convert_dottable, deep_update, load_yaml_config

from .events import Events
from .physical_machine import PhysicalMachine
from .task import Task
from .virtual_machine import VirtualMachine
from .workload import parse_enum, tasks_from_records

metrics_desc = """
Cluster simulation metrics used provide statistics information until now.
It contains following keys:

total_tasks (int): Tasks registered in the workload.
arrived_tasks (int): Tasks that arrived until now.
started_tasks (int): Tasks started inside a VM.
finished_tasks (int): Tasks that ran to completion.
sla_violations (int): Finished tasks that missed their deadline.
total_energy_consumption (float): Accumulative energy consumption of all the machines (unit: KWh).
total_vms (int): VMs created until now.
total_migrations (int): Migrations started until now.
total_state_changes (int): Machine power state transitions until now.
memory_warnings (int): Memory overflows detected until now.
"""

DEFAULT_OPTIONS = {
    "vm_memory_overhead": 1024,
    "migration_latency": 1,
    "state_change_latency": 1,
    "ticks_per_hour": 60,
    # Deadline of a task is its arrival plus its duration times the slack of its SLA class.
    "sla_slack": {
        "SLA0": 1.2,
        "SLA1": 1.5,
        "SLA2": 2.0,
        "SLA3": 4.0,
    },
    "machines": [],
    "workload": [],
}

logger = CliLogger(name=__name__)


class ClusterBusinessEngine(AbsClusterCollaborator):
    """In-memory cluster simulation that the scheduler runs against.

    The business engine owns the machines, the VMs and the tasks, it executes the scheduler commands,
    meters the energy and keeps the SLA statistics. Asynchronous outcomes (task completion, migration
    completion, power transition completion) and advisories (memory overflow, SLA risk) are inserted
    into the event buffer.

    Args:
        event_buffer (EventBuffer): Event buffer the outcomes are inserted into.
        topology (Union[str, dict]): Name of a built-in topology, path of a topology file, or the
            topology itself.
        start_tick (int): Start tick of the simulation.
        max_tick (int): The simulation stops before this tick, None means no limit.
    """

    def __init__(
        self,
        event_buffer: EventBuffer,
        topology: Union[str, dict],
        start_tick: int = 0,
        max_tick: Optional[int] = None
    ):
        self._event_buffer = event_buffer
        self._start_tick = start_tick
        self._max_tick = max_tick
        self._tick: int = start_tick

        self._init_metrics()
        self._load_configs(topology)
        self._init_machines()

        self._vms: Dict[int, VirtualMachine] = {}
        self._tasks: Dict[int, Task] = {}
        # Tasks sorted by arrival, and the index of the next one to arrive.
        self._arrival_order: List[Task] = []
        self._next_arrival: int = 0

        self.register_tasks(tasks_from_records(self._config.workload))

    @property
    def configs(self) -> DottableDict:
        """DottableDict: Current configuration."""
        return self._config

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def machines(self) -> List[PhysicalMachine]:
        return self._machines

    @property
    def vms(self) -> Dict[int, VirtualMachine]:
        return self._vms

    @property
    def tasks(self) -> Dict[int, Task]:
        return self._tasks

    @property
    def has_pending_arrivals(self) -> bool:
        return self._next_arrival < len(self._arrival_order)

    def _load_configs(self, topology: Union[str, dict]):
        """Load configurations."""
        if isinstance(topology, dict):
            raw_config = topology
        else:
            path = Path(topology)
            built_in_path = Path(os.path.dirname(os.path.realpath(__file__)), "topologies", topology, "config.yml")
            if path.is_dir():
                path = path / "config.yml"
            elif not path.exists() and built_in_path.exists():
                path = built_in_path

            raw_config = load_yaml_config(str(path))

        self._config = convert_dottable(deep_update(DEFAULT_OPTIONS, raw_config))

        self._vm_memory_overhead: int = self._config.vm_memory_overhead
        self._migration_latency: int = self._config.migration_latency
        self._state_change_latency: int = self._config.state_change_latency
        self._ticks_per_hour: float = self._config.ticks_per_hour
        self._sla_slack: Dict[SlaType, float] = {
            parse_enum(SlaType, sla): float(slack) for sla, slack in self._config.sla_slack.items()
        }

    def _init_metrics(self):
        self._arrived_tasks: int = 0
        self._started_tasks: int = 0
        self._total_energy_consumption: float = 0.0
        self._total_migrations: int = 0
        self._total_state_changes: int = 0
        self._memory_warnings: int = 0
        # SLA class -> (finished tasks, finished tasks that missed their deadline).
        self._finished_by_sla: Dict[SlaType, int] = {sla: 0 for sla in SlaType}
        self._violations_by_sla: Dict[SlaType, int] = {sla: 0 for sla in SlaType}

    def _init_machines(self):
        self._machines: List[PhysicalMachine] = []

        for machine_spec in self._config.machines:
            power_curve = machine_spec["power_curve"]
            for _ in range(machine_spec.get("amount", 1)):
                self._machines.append(
                    PhysicalMachine(
                        id=len(self._machines),
                        machine_type=machine_spec.get("type", "default"),
                        cpu=parse_enum(CpuType, machine_spec["cpu"]),
                        cpu_cores=machine_spec["cpu_cores"],
                        memory_capacity=machine_spec["memory"],
                        idle_power=power_curve["idle_power"],
                        busy_power=power_curve["busy_power"],
                        standby_power=power_curve.get("standby_power", 0),
                        calibration_parameter=power_curve["calibration_parameter"],
                        s_state=PowerState[str(machine_spec.get("s_state", "ACTIVE")).upper()]
                    )
                )

        # Static machine features used by the energy metering.
        self._cpu_cores = np.array([machine.cpu_cores for machine in self._machines], dtype=float)
        self._idle_power = np.array([machine.idle_power for machine in self._machines], dtype=float)
        self._busy_power = np.array([machine.busy_power for machine in self._machines], dtype=float)
        self._standby_power = np.array([machine.standby_power for machine in self._machines], dtype=float)
        self._calibration = np.array([machine.calibration_parameter for machine in self._machines], dtype=float)

    def register_tasks(self, tasks: List[Task]):
        """Add tasks to the workload, their arrival events are generated when their arrival tick is stepped."""
        for task in tasks:
            if task.id in self._tasks:
                raise InvalidCommandError(f"Task {task.id} is already registered.")

            task.deadline = task.arrival + task.duration * self._sla_slack.get(task.sla, 1.0)
            self._tasks[task.id] = task

        pending = self._arrival_order[self._next_arrival:] + list(tasks)
        self._arrival_order = self._arrival_order[:self._next_arrival] + sorted(
            pending, key=lambda task: (task.arrival, task.id)
        )

    def step(self, tick: int):
        """Push business to next step.

        Args:
            tick (int): Current tick to process.
        """
        self._tick = tick

        while self.has_pending_arrivals and self._arrival_order[self._next_arrival].arrival <= tick:
            task = self._arrival_order[self._next_arrival]
            self._next_arrival += 1
            self._arrived_tasks += 1

            arrival_event = self._event_buffer.gen_atom_event(
                tick=tick,
                event_type=Events.TASK_ARRIVAL,
                payload=task.id
            )
            self._event_buffer.insert_event(event=arrival_event)

    def post_step(self, tick: int) -> bool:
        """Meter the energy of the tick.

        Returns:
            bool: If the simulation reached its max tick.
        """
        if len(self._machines) > 0:
            is_active = np.array([machine.s_state == PowerState.ACTIVE for machine in self._machines])
            active_tasks = np.array([machine.active_tasks for machine in self._machines], dtype=float)

            energy = self._energy_consumption(is_active, active_tasks)
            for machine, machine_energy in zip(self._machines, energy):
                machine.energy_consumption += float(machine_energy)

            self._total_energy_consumption += float(energy.sum())

        return self._max_tick is not None and tick + 1 >= self._max_tick

    def _energy_consumption(self, is_active: np.ndarray, active_tasks: np.ndarray) -> np.ndarray:
        """Convert the load of the machines to their energy consumption during one tick.

        The formulation refers to https://dl.acm.org/doi/epdf/10.1145/1273440.1250665
        """
        utilization = np.minimum(1.0, active_tasks / self._cpu_cores)
        active_power = (
            self._idle_power
            + (self._busy_power - self._idle_power) * (2 * utilization - np.power(utilization, self._calibration))
        )
        power = np.where(is_active, active_power, self._standby_power)

        return (power / self._ticks_per_hour) / 1000

    def get_metrics(self) -> DocableDict:
        """Get current environment metrics information.

        Returns:
            DocableDict: Metrics information.
        """
        return DocableDict(
            metrics_desc,
            total_tasks=len(self._tasks),
            arrived_tasks=self._arrived_tasks,
            started_tasks=self._started_tasks,
            finished_tasks=sum(self._finished_by_sla.values()),
            sla_violations=sum(self._violations_by_sla.values()),
            total_energy_consumption=self._total_energy_consumption,
            total_vms=len(self._vms),
            total_migrations=self._total_migrations,
            total_state_changes=self._total_state_changes,
            memory_warnings=self._memory_warnings
        )

    # Queries.

    def machine_total(self) -> int:
        return len(self._machines)

    def machine_info(self, machine_id: int) -> MachineInfo:
        return self._get_machine(machine_id).to_info()

    def vm_info(self, vm_id: int) -> VmInfo:
        return self._get_vm(vm_id).to_info()

    def task_info(self, task_id: int) -> TaskInfo:
        return self._get_task(task_id).to_info()

    def cluster_energy(self) -> float:
        return self._total_energy_consumption

    def sla_report(self, sla: SlaType) -> float:
        sla = SlaType(sla)
        finished = self._finished_by_sla[sla]
        if finished == 0:
            return 0.0

        return 100.0 * self._violations_by_sla[sla] / finished

    # Commands.

    def create_vm(self, vm_type: VmType, cpu: CpuType) -> int:
        vm_type, cpu = VmType(vm_type), CpuType(cpu)
        if vm_type == VmType.INVALID:
            raise InvalidCommandError(f"Cannot create a VM of invalid type for CPU {cpu.name}.")

        vm = VirtualMachine(id=len(self._vms), vm_type=vm_type, cpu=cpu, memory_overhead=self._vm_memory_overhead)
        self._vms[vm.id] = vm

        return vm.id

    def attach_vm(self, vm_id: int, machine_id: int):
        vm = self._get_vm(vm_id)
        machine = self._get_machine(machine_id)

        if vm.is_shutdown:
            raise InvalidCommandError(f"VM {vm_id} is shut down.")
        if vm.machine_id is not None:
            raise InvalidCommandError(f"VM {vm_id} is already attached to machine {vm.machine_id}.")
        if machine.s_state != PowerState.ACTIVE:
            raise InvalidCommandError(f"Cannot attach VM {vm_id} to machine {machine_id} in {machine.s_state.name}.")
        if vm.cpu != machine.cpu:
            raise InvalidCommandError(
                f"CPU of VM {vm_id} ({vm.cpu.name}) does not match machine {machine_id} ({machine.cpu.name})."
            )

        vm.machine_id = machine_id
        machine.allocate_vms([vm_id])
        machine.memory_allocated += vm.memory_footprint

        self._check_memory(machine)

    def add_task(self, vm_id: int, task_id: int, priority: Priority):
        vm = self._get_vm(vm_id)
        task = self._get_task(task_id)

        if vm.is_shutdown or vm.machine_id is None:
            raise InvalidCommandError(f"VM {vm_id} is not running on any machine.")
        if vm.is_migrating:
            raise InvalidCommandError(f"VM {vm_id} is migrating to machine {vm.migration_destination}.")
        if task.is_started:
            raise InvalidCommandError(f"Task {task_id} is already started in VM {task.vm_id}.")
        if task.cpu != vm.cpu or task.vm_type != vm.vm_type:
            raise InvalidCommandError(f"Task {task_id} cannot run in VM {vm_id}.")

        machine = self._machines[vm.machine_id]
        if machine.s_state != PowerState.ACTIVE:
            raise InvalidCommandError(f"Machine {machine.id} hosting VM {vm_id} is in {machine.s_state.name}.")

        task.vm_id = vm_id
        task.priority = Priority(priority)
        task.start_tick = self._tick
        self._started_tasks += 1

        vm.add_task(task_id, task.memory)
        machine.memory_allocated += task.memory
        machine.active_tasks += 1

        runtime = max(1, math.ceil(task.duration * max(1.0, machine.active_tasks / machine.cpu_cores)))
        completion_event = self._event_buffer.gen_atom_event(
            tick=self._tick + runtime,
            event_type=Events.TASK_COMPLETION,
            payload=task_id
        )
        self._event_buffer.insert_event(event=completion_event)

        if self._tick + runtime > task.deadline:
            sla_event = self._event_buffer.gen_atom_event(
                tick=self._tick,
                event_type=Events.SLA_WARNING,
                payload=task_id
            )
            self._event_buffer.insert_event(event=sla_event)

        self._check_memory(machine)

    def shutdown_vm(self, vm_id: int):
        vm = self._get_vm(vm_id)
        if vm.is_shutdown:
            raise InvalidCommandError(f"VM {vm_id} is already shut down.")

        if vm.machine_id is not None:
            machine = self._machines[vm.machine_id]
            machine.deallocate_vms([vm_id])
            machine.memory_allocated -= vm.memory_footprint
            machine.active_tasks -= len(vm.active_tasks)

        if vm.is_migrating:
            destination = self._machines[vm.migration_destination]
            destination.unreserve_vm(vm_id)
            destination.memory_allocated -= vm.memory_footprint
            vm.migration_destination = None

        vm.is_shutdown = True

    def set_machine_state(self, machine_id: int, state: PowerState):
        machine = self._get_machine(machine_id)
        state = PowerState(state)

        if machine.s_state == state:
            return
        if state == PowerState.STANDBY and not machine.is_empty:
            raise InvalidCommandError(f"Machine {machine_id} still hosts VMs, it cannot be put in standby.")

        machine.s_state = state
        self._total_state_changes += 1

        state_change_event = self._event_buffer.gen_atom_event(
            tick=self._tick + self._state_change_latency,
            event_type=Events.STATE_CHANGE_COMPLETE,
            payload=machine_id
        )
        self._event_buffer.insert_event(event=state_change_event)

    def migrate_vm(self, vm_id: int, machine_id: int):
        vm = self._get_vm(vm_id)
        destination = self._get_machine(machine_id)

        if vm.is_shutdown or vm.machine_id is None:
            raise InvalidCommandError(f"VM {vm_id} is not running on any machine.")
        if vm.is_migrating:
            raise InvalidCommandError(f"VM {vm_id} is already migrating to machine {vm.migration_destination}.")
        if vm.machine_id == machine_id:
            raise InvalidCommandError(f"VM {vm_id} is already on machine {machine_id}.")
        if destination.s_state != PowerState.ACTIVE:
            raise InvalidCommandError(f"Cannot migrate VM {vm_id} to machine {machine_id} in {destination.s_state.name}.")
        if vm.cpu != destination.cpu:
            raise InvalidCommandError(f"CPU of VM {vm_id} does not match machine {machine_id}.")

        vm.migration_destination = machine_id
        destination.reserve_vm(vm_id)
        destination.memory_allocated += vm.memory_footprint
        self._total_migrations += 1

        migration_event = self._event_buffer.gen_atom_event(
            tick=self._tick + self._migration_latency,
            event_type=Events.MIGRATION_COMPLETE,
            payload=vm_id
        )
        self._event_buffer.insert_event(event=migration_event)

        self._check_memory(destination)

    def set_task_priority(self, task_id: int, priority: Priority):
        self._get_task(task_id).priority = Priority(priority)

    # Outcomes of the asynchronous operations, called by the environment before notifying the scheduler.

    def finish_task(self, task_id: int) -> bool:
        """Release a task at the end of its runtime.

        Returns:
            bool: False if the VM of the task was shut down in the meantime.
        """
        task = self._get_task(task_id)
        vm = self._vms[task.vm_id]
        if vm.is_shutdown:
            return False

        task.finish_tick = self._tick
        vm.remove_task(task_id, task.memory)

        machine = self._machines[vm.machine_id]
        machine.memory_allocated -= task.memory
        machine.active_tasks -= 1
        if vm.is_migrating:
            self._machines[vm.migration_destination].memory_allocated -= task.memory

        self._finished_by_sla[task.sla] += 1
        if task.missed_deadline:
            self._violations_by_sla[task.sla] += 1

        return True

    def complete_migration(self, vm_id: int) -> bool:
        """Move a migrating VM to its destination and release its source.

        Returns:
            bool: False if the migration was aborted by a VM shutdown.
        """
        vm = self._get_vm(vm_id)
        if not vm.is_migrating:
            return False

        source = self._machines[vm.machine_id]
        destination = self._machines[vm.migration_destination]

        source.deallocate_vms([vm_id])
        source.memory_allocated -= vm.memory_footprint
        source.active_tasks -= len(vm.active_tasks)

        destination.unreserve_vm(vm_id)
        destination.allocate_vms([vm_id])
        destination.active_tasks += len(vm.active_tasks)

        vm.machine_id = destination.id
        vm.migration_destination = None

        return True

    def _check_memory(self, machine: PhysicalMachine):
        if not machine.is_overflowed:
            return

        self._memory_warnings += 1
        memory_event = self._event_buffer.gen_atom_event(
            tick=self._tick,
            event_type=Events.MEMORY_WARNING,
            payload=machine.id
        )
        self._event_buffer.insert_event(event=memory_event)

    def _get_machine(self, machine_id: int) -> PhysicalMachine:
        if not 0 <= machine_id < len(self._machines):
            raise EntityNotFoundError(f"Machine {machine_id} does not exist.")

        return self._machines[machine_id]

    def _get_vm(self, vm_id: int) -> VirtualMachine:
        if vm_id not in self._vms:
            raise EntityNotFoundError(f"VM {vm_id} does not exist.")

        return self._vms[vm_id]

    def _get_task(self, task_id: int) -> Task:
        if task_id not in self._tasks:
            raise EntityNotFoundError(f"Task {task_id} does not exist.")

        return self._tasks[task_id]
