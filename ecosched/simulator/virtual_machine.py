# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Optional, Set

from ecosched.scheduler.common import VmInfo
from ecosched.scheduler.enums import CpuType, VmType


class VirtualMachine:
    """VM object.

    A VM is created unattached, then attached to one machine. During a migration it stays on its source
    machine until the migration completes.

    Args:
        id (int): The VM id.
        vm_type (VmType): VM image type.
        cpu (CpuType): CPU architecture of the VM.
        memory_overhead (int): Memory the VM itself takes on its host.
    """
    def __init__(self, id: int, vm_type: VmType, cpu: CpuType, memory_overhead: int):
        self.id: int = id
        self.vm_type: VmType = vm_type
        self.cpu: CpuType = cpu
        self.memory_overhead: int = memory_overhead

        # The machine the VM is attached to, None before attachment.
        self.machine_id: Optional[int] = None
        # Destination machine of the in-flight migration.
        self.migration_destination: Optional[int] = None
        self.is_shutdown: bool = False

        self._active_tasks: Set[int] = set()
        # Memory requested by the active tasks.
        self._task_memory: int = 0

    @property
    def active_tasks(self) -> Set[int]:
        return self._active_tasks

    @property
    def is_migrating(self) -> bool:
        return self.migration_destination is not None

    @property
    def memory_footprint(self) -> int:
        """int: Memory taken on the host, VM overhead plus the memory of its tasks."""
        return self.memory_overhead + self._task_memory

    def add_task(self, task_id: int, memory: int):
        self._active_tasks.add(task_id)
        self._task_memory += memory

    def remove_task(self, task_id: int, memory: int):
        self._active_tasks.remove(task_id)
        self._task_memory -= memory

    def to_info(self) -> VmInfo:
        return VmInfo(
            id=self.id,
            vm_type=self.vm_type,
            cpu=self.cpu,
            machine_id=self.machine_id,
            active_tasks=sorted(self._active_tasks)
        )
