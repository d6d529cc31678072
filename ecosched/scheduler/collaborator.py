# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from abc import ABC, abstractmethod

from .common import MachineInfo, TaskInfo, VmInfo
from .enums import CpuType, PowerState, Priority, SlaType, VmType


class AbsClusterCollaborator(ABC):
    """Abstract interface of the cluster the scheduler runs against.

    The collaborator owns the ground truth of the cluster: capacity accounting, the actual execution
    of migrations and power transitions, energy metering and SLA statistics. The scheduler only
    queries it and sends commands to it, it never caches machine, VM or task information.

    Queries are the ``*_info``, ``machine_total``, ``cluster_energy`` and ``sla_report`` methods,
    all the others are commands.
    """

    @abstractmethod
    def machine_total(self) -> int:
        """int: Number of machines in the cluster, machine ids are ``0 .. machine_total() - 1``."""
        pass

    @abstractmethod
    def machine_info(self, machine_id: int) -> MachineInfo:
        """Get the current information of a machine.

        Args:
            machine_id (int): Id of the machine.

        Returns:
            MachineInfo: Machine information.
        """
        pass

    @abstractmethod
    def vm_info(self, vm_id: int) -> VmInfo:
        """Get the current information of a VM.

        Args:
            vm_id (int): Id of the VM.

        Returns:
            VmInfo: VM information.
        """
        pass

    @abstractmethod
    def task_info(self, task_id: int) -> TaskInfo:
        """Get the information of a task.

        Args:
            task_id (int): Id of the task.

        Returns:
            TaskInfo: Task information.
        """
        pass

    @abstractmethod
    def cluster_energy(self) -> float:
        """float: Total energy consumed by the cluster so far."""
        pass

    @abstractmethod
    def sla_report(self, sla: SlaType) -> float:
        """Percentage of the finished tasks of an SLA class that missed their deadline.

        Args:
            sla (SlaType): The SLA class.

        Returns:
            float: Violation percentage, from 0 to 100.
        """
        pass

    @abstractmethod
    def create_vm(self, vm_type: VmType, cpu: CpuType) -> int:
        """Create an unattached VM.

        Args:
            vm_type (VmType): VM image type.
            cpu (CpuType): CPU architecture of the VM.

        Returns:
            int: Id of the new VM.
        """
        pass

    @abstractmethod
    def attach_vm(self, vm_id: int, machine_id: int):
        """Attach a VM to a machine."""
        pass

    @abstractmethod
    def add_task(self, vm_id: int, task_id: int, priority: Priority):
        """Start a task inside a VM with the given priority."""
        pass

    @abstractmethod
    def shutdown_vm(self, vm_id: int):
        """Shut a VM down."""
        pass

    @abstractmethod
    def set_machine_state(self, machine_id: int, state: PowerState):
        """Switch the power state of a machine."""
        pass

    @abstractmethod
    def migrate_vm(self, vm_id: int, machine_id: int):
        """Start migrating a VM to another machine, the completion is reported asynchronously."""
        pass

    @abstractmethod
    def set_task_priority(self, task_id: int, priority: Priority):
        """Change the scheduling priority of a running task."""
        pass
