# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import List, Optional

from ecosched.utils.logger import CliLogger

from .enums import CpuType, PowerState, Priority, SlaType, VmType

logger = CliLogger(name=__name__)

SLA_TO_PRIORITY = {
    SlaType.SLA0: Priority.HIGH,
    SlaType.SLA1: Priority.HIGH,
    SlaType.SLA2: Priority.MID,
    SlaType.SLA3: Priority.LOW,
}

CPU_TO_DEFAULT_VM = {
    CpuType.X86: VmType.LINUX,
    CpuType.POWER: VmType.AIX,
    CpuType.ARM: VmType.WIN,
}


def determine_priority(sla: SlaType) -> Priority:
    """Map the SLA class of a task to its scheduling priority, unknown classes get ``MID``."""
    return SLA_TO_PRIORITY.get(sla, Priority.MID)


def default_vm_for_cpu(cpu: CpuType) -> VmType:
    """Get the default VM image type for a CPU architecture.

    Unknown architectures are not fatal, a warning is logged and ``VmType.INVALID`` is returned,
    callers should treat it as a best-effort default.
    """
    if cpu in CPU_TO_DEFAULT_VM:
        return CPU_TO_DEFAULT_VM[cpu]

    logger.warning(f"Unknown CPU type {cpu!r}, no default VM type for it.")
    return VmType.INVALID


class MachineInfo:
    """Machine information queried from the cluster collaborator.

    Args:
        id (int): The machine id.
        cpu (CpuType): CPU architecture of the machine.
        memory_size (int): Total memory capacity.
        memory_used (int): Memory used by attached VMs and their tasks.
        s_state (PowerState): Current power state.
        active_vms (int): Number of VMs attached to the machine.
        active_tasks (int): Number of tasks running on the machine.
        energy_consumption (float): Energy consumed by the machine so far.
    """

    def __init__(
        self,
        id: int,
        cpu: CpuType,
        memory_size: int,
        memory_used: int,
        s_state: PowerState,
        active_vms: int = 0,
        active_tasks: int = 0,
        energy_consumption: float = 0.0
    ):
        self.id = id
        self.cpu = cpu
        self.memory_size = memory_size
        self.memory_used = memory_used
        self.s_state = s_state
        self.active_vms = active_vms
        self.active_tasks = active_tasks
        self.energy_consumption = energy_consumption

    @property
    def available_memory(self) -> int:
        return self.memory_size - self.memory_used

    @property
    def is_active(self) -> bool:
        return self.s_state == PowerState.ACTIVE

    def __repr__(self):
        return "%s {id: %r, cpu: %r, memory: %r/%r, s_state: %r, active_vms: %r, active_tasks: %r}" % \
            (
                self.__class__.__name__,
                self.id,
                self.cpu,
                self.memory_used,
                self.memory_size,
                self.s_state,
                self.active_vms,
                self.active_tasks
            )


class VmInfo:
    """VM information queried from the cluster collaborator.

    Args:
        id (int): The VM id.
        vm_type (VmType): VM image type.
        cpu (CpuType): CPU architecture of the VM.
        machine_id (int): The machine the collaborator has the VM attached to, None if unattached.
        active_tasks (List[int]): Ids of the tasks running inside the VM.
    """

    def __init__(
        self, id: int, vm_type: VmType, cpu: CpuType, machine_id: Optional[int] = None, active_tasks: List[int] = None
    ):
        self.id = id
        self.vm_type = vm_type
        self.cpu = cpu
        self.machine_id = machine_id
        self.active_tasks: List[int] = list(active_tasks) if active_tasks else []

    def __repr__(self):
        return "%s {id: %r, vm_type: %r, cpu: %r, machine_id: %r, active_tasks: %r}" % \
            (self.__class__.__name__, self.id, self.vm_type, self.cpu, self.machine_id, self.active_tasks)


class TaskInfo:
    """Task information queried from the cluster collaborator.

    Args:
        id (int): The task id.
        required_cpu (CpuType): CPU architecture the task must run on.
        required_vm (VmType): VM image type the task must run in.
        required_memory (int): Memory requested by the task.
        required_sla (SlaType): SLA class of the task.
        priority (Priority): Current scheduling priority.
    """

    def __init__(
        self,
        id: int,
        required_cpu: CpuType,
        required_vm: VmType,
        required_memory: int,
        required_sla: SlaType = SlaType.SLA3,
        priority: Priority = None
    ):
        self.id = id
        self.required_cpu = required_cpu
        self.required_vm = required_vm
        self.required_memory = required_memory
        self.required_sla = required_sla
        self.priority = priority if priority is not None else determine_priority(required_sla)

    def __repr__(self):
        return "%s {id: %r, required_cpu: %r, required_vm: %r, required_memory: %r, required_sla: %r}" % \
            (
                self.__class__.__name__,
                self.id,
                self.required_cpu,
                self.required_vm,
                self.required_memory,
                self.required_sla
            )


class Placement:
    """Result of a successful task placement.

    Args:
        task_id (int): The placed task.
        vm_id (int): The VM that hosts the task.
        machine_id (int): The machine that hosts the VM.
        created_vm (bool): The VM was created for this task.
        activated_machine (bool): The machine was woken up from standby for this task.
    """

    def __init__(
        self, task_id: int, vm_id: int, machine_id: int, created_vm: bool = False, activated_machine: bool = False
    ):
        self.task_id = task_id
        self.vm_id = vm_id
        self.machine_id = machine_id
        self.created_vm = created_vm
        self.activated_machine = activated_machine

    def __repr__(self):
        return "%s {task_id: %r, vm_id: %r, machine_id: %r, created_vm: %r, activated_machine: %r}" % \
            (
                self.__class__.__name__,
                self.task_id,
                self.vm_id,
                self.machine_id,
                self.created_vm,
                self.activated_machine
            )


class Migration:
    """A migration decision issued by the rebalancer.

    Args:
        vm_id (int): The migrated VM.
        source (int): Machine the VM leaves.
        destination (int): Machine the VM moves to.
        workload (int): Sum of the memory required by the tasks inside the VM.
    """

    def __init__(self, vm_id: int, source: int, destination: int, workload: int):
        self.vm_id = vm_id
        self.source = source
        self.destination = destination
        self.workload = workload

    def __repr__(self):
        return "%s {vm_id: %r, source: %r, destination: %r, workload: %r}" % \
            (self.__class__.__name__, self.vm_id, self.source, self.destination, self.workload)
