# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Dict, List, Optional, Set

from ecosched.utils.exception.scheduler_exception import ClusterStateError


class ClusterState:
    """In-process view of the machines and VMs the scheduler knows about.

    It keeps the relationships only (roster, machine to VMs, VM to host, VMs in flight, task to VM),
    the capacity and usage numbers stay with the cluster collaborator.

    The rosters only grow during a run. A VM under migration has already left the attachment set of
    its source machine and been added to the one of its destination, while its host stays the source
    until ``clear_migrating`` finalizes the move.
    """

    def __init__(self):
        self._machines: List[int] = []
        self._vms: List[int] = []
        self._machine_to_vms: Dict[int, Set[int]] = {}
        self._vm_to_machine: Dict[int, Optional[int]] = {}
        self._migrating: Set[int] = set()
        # VM id -> destination machine of the in-flight migration.
        self._pending_destination: Dict[int, int] = {}
        self._task_to_vm: Dict[int, int] = {}

    @property
    def machines(self) -> List[int]:
        """List[int]: Machine roster in registration order."""
        return self._machines

    @property
    def vms(self) -> List[int]:
        """List[int]: VM roster in creation order."""
        return self._vms

    @property
    def migrating_vms(self) -> Set[int]:
        return set(self._migrating)

    def register_machine(self, machine_id: int):
        if machine_id in self._machine_to_vms:
            return

        self._machines.append(machine_id)
        self._machine_to_vms[machine_id] = set()

    def register_vm(self, vm_id: int):
        if vm_id in self._vm_to_machine:
            raise ClusterStateError(f"VM {vm_id} is already registered.")

        self._vms.append(vm_id)
        self._vm_to_machine[vm_id] = None

    def attach_vm(self, vm_id: int, machine_id: int):
        if vm_id not in self._vm_to_machine:
            raise ClusterStateError(f"Cannot attach unknown VM {vm_id}.")
        if machine_id not in self._machine_to_vms:
            raise ClusterStateError(f"Cannot attach VM {vm_id} to unknown machine {machine_id}.")

        previous = self._vm_to_machine[vm_id]
        if previous is not None:
            self._machine_to_vms[previous].discard(vm_id)

        self._vm_to_machine[vm_id] = machine_id
        self._machine_to_vms[machine_id].add(vm_id)

    def mark_migrating(self, vm_id: int):
        if vm_id in self._migrating:
            raise ClusterStateError(f"VM {vm_id} already has an outstanding migration.")

        self._migrating.add(vm_id)

    def clear_migrating(self, vm_id: int) -> Optional[int]:
        """Clear the migrating flag of a VM and finalize its pending relocation.

        Returns:
            Optional[int]: The new host of the VM, or None if the VM was not migrating.
        """
        if vm_id not in self._migrating:
            return None

        self._migrating.discard(vm_id)
        destination = self._pending_destination.pop(vm_id, None)
        if destination is not None:
            self._vm_to_machine[vm_id] = destination

        return self._vm_to_machine[vm_id]

    def relocate(self, vm_id: int, from_machine: int, to_machine: int):
        """Move a VM from the attachment set of one machine to another one."""
        if vm_id not in self._machine_to_vms.get(from_machine, ()):
            raise ClusterStateError(f"VM {vm_id} is not attached to machine {from_machine}.")
        if to_machine not in self._machine_to_vms:
            raise ClusterStateError(f"Cannot relocate VM {vm_id} to unknown machine {to_machine}.")

        self._machine_to_vms[from_machine].discard(vm_id)
        self._machine_to_vms[to_machine].add(vm_id)
        self._pending_destination[vm_id] = to_machine

    def assign_task(self, task_id: int, vm_id: int):
        if task_id in self._task_to_vm:
            raise ClusterStateError(f"Task {task_id} is already assigned to VM {self._task_to_vm[task_id]}.")

        self._task_to_vm[task_id] = vm_id

    def release_task(self, task_id: int) -> Optional[int]:
        return self._task_to_vm.pop(task_id, None)

    def vms_on(self, machine_id: int) -> List[int]:
        """VMs in the attachment set of a machine, in id order."""
        return sorted(self._machine_to_vms.get(machine_id, ()))

    def host_of(self, vm_id: int) -> Optional[int]:
        return self._vm_to_machine.get(vm_id)

    def destination_of(self, vm_id: int) -> Optional[int]:
        return self._pending_destination.get(vm_id)

    def is_migrating(self, vm_id: int) -> bool:
        return vm_id in self._migrating

    def vm_of(self, task_id: int) -> Optional[int]:
        return self._task_to_vm.get(task_id)
