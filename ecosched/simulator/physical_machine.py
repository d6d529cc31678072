# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import List, Set

from ecosched.scheduler.common import MachineInfo
from ecosched.scheduler.enums import CpuType, PowerState


class PhysicalMachine:
    """Physical machine of the simulated cluster.

    Memory accounting covers the VMs attached to the machine and the VMs migrating to it, whose memory
    is reserved on the destination as soon as the migration starts.
    """

    def __init__(
        self,
        id: int,
        machine_type: str,
        cpu: CpuType,
        cpu_cores: int,
        memory_capacity: int,
        idle_power: float,
        busy_power: float,
        standby_power: float,
        calibration_parameter: float,
        s_state: PowerState = PowerState.ACTIVE
    ):
        """Set initialize state, that will be used after reset.

        Args:
            id (int): Machine id, from 0 to N. N means the amount of machines, which can be set in topology.
            machine_type (str): Name of the machine type in the topology.
            cpu (CpuType): CPU architecture of the machine.
            cpu_cores (int): Number of cores, a machine running that many tasks is fully utilized.
            memory_capacity (int): The capacity of memory of the machine.
            idle_power (float): Power drawn by an Active machine without load, in watts.
            busy_power (float): Power drawn by a fully loaded machine, in watts.
            standby_power (float): Power drawn in standby, in watts.
            calibration_parameter (float): Exponent of the power curve.
            s_state (PowerState): Initial power state.
        """
        self.id = id
        self.machine_type = machine_type
        self.cpu = cpu
        self.cpu_cores = cpu_cores
        self.memory_capacity = memory_capacity

        self.idle_power = idle_power
        self.busy_power = busy_power
        self.standby_power = standby_power
        self.calibration_parameter = calibration_parameter

        self._init_s_state = s_state

        self._live_vms: Set[int] = set()
        # VMs migrating to this machine.
        self._incoming_vms: Set[int] = set()

        self.reset()

    def reset(self):
        """Reset to initial state."""
        self.s_state: PowerState = self._init_s_state
        self.memory_allocated: int = 0
        self.active_tasks: int = 0
        self.energy_consumption: float = 0.0

        self._live_vms.clear()
        self._incoming_vms.clear()

    @property
    def live_vms(self) -> Set[int]:
        return self._live_vms

    @property
    def incoming_vms(self) -> Set[int]:
        return self._incoming_vms

    @property
    def memory_available(self) -> int:
        return self.memory_capacity - self.memory_allocated

    @property
    def is_overflowed(self) -> bool:
        return self.memory_allocated > self.memory_capacity

    @property
    def is_empty(self) -> bool:
        return len(self._live_vms) == 0 and len(self._incoming_vms) == 0

    def allocate_vms(self, vm_ids: List[int]):
        for vm_id in vm_ids:
            self._live_vms.add(vm_id)

    def deallocate_vms(self, vm_ids: List[int]):
        for vm_id in vm_ids:
            self._live_vms.remove(vm_id)

    def reserve_vm(self, vm_id: int):
        self._incoming_vms.add(vm_id)

    def unreserve_vm(self, vm_id: int):
        self._incoming_vms.remove(vm_id)

    def to_info(self) -> MachineInfo:
        return MachineInfo(
            id=self.id,
            cpu=self.cpu,
            memory_size=self.memory_capacity,
            memory_used=self.memory_allocated,
            s_state=self.s_state,
            active_vms=len(self._live_vms) + len(self._incoming_vms),
            active_tasks=self.active_tasks,
            energy_consumption=self.energy_consumption
        )

    def __repr__(self):
        return "%s {id: %r, type: %r, cpu: %r, memory: %r/%r, s_state: %r, live_vms: %r}" % \
            (
                self.__class__.__name__,
                self.id,
                self.machine_type,
                self.cpu,
                self.memory_allocated,
                self.memory_capacity,
                self.s_state,
                sorted(self._live_vms)
            )
