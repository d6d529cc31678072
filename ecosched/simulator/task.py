# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Optional

from ecosched.scheduler.common import TaskInfo, determine_priority
from ecosched.scheduler.enums import CpuType, Priority, SlaType, VmType


class Task:
    """Task object.

    The task runs from its start tick to its finish tick. The runtime is fixed at admission, from the
    duration and the load of the host at that time.

    Args:
        id (int): The task id.
        arrival (int): The tick the task arrives at.
        duration (int): Runtime of the task on an uncontended machine, in ticks.
        cpu (CpuType): CPU architecture the task must run on.
        vm_type (VmType): VM image type the task must run in.
        memory (int): Memory requested by the task.
        sla (SlaType): SLA class of the task.
    """
    def __init__(
        self,
        id: int,
        arrival: int,
        duration: int,
        cpu: CpuType,
        vm_type: VmType,
        memory: int,
        sla: SlaType
    ):
        self.id: int = id
        self.arrival: int = arrival
        self.duration: int = duration
        self.cpu: CpuType = cpu
        self.vm_type: VmType = vm_type
        self.memory: int = memory
        self.sla: SlaType = sla

        self.priority: Priority = determine_priority(sla)
        # The VM that runs the task, None before admission.
        self.vm_id: Optional[int] = None
        self.start_tick: int = -1
        self.finish_tick: int = -1
        # Latest tick the task can finish at without violating its SLA, set by the business engine.
        self.deadline: float = -1

    @property
    def is_started(self) -> bool:
        return self.start_tick >= 0

    @property
    def is_finished(self) -> bool:
        return self.finish_tick >= 0

    @property
    def missed_deadline(self) -> bool:
        return self.is_finished and self.finish_tick > self.deadline

    def to_info(self) -> TaskInfo:
        return TaskInfo(
            id=self.id,
            required_cpu=self.cpu,
            required_vm=self.vm_type,
            required_memory=self.memory,
            required_sla=self.sla,
            priority=self.priority
        )

    def __repr__(self):
        return "%s {id: %r, arrival: %r, duration: %r, cpu: %r, vm_type: %r, memory: %r, sla: %r}" % \
            (self.__class__.__name__, self.id, self.arrival, self.duration, self.cpu, self.vm_type, self.memory,
             self.sla)
