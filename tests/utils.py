# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import Dict, List

from ecosched.scheduler import (
    AbsClusterCollaborator, ClusterState, CpuType, MachineEnergyQueue, MachineInfo, PlacementEngine, PowerState,
    Priority, SlaType, TaskInfo, VmInfo, VmType, build_strategy
)

VM_MEMORY_OVERHEAD = 1024


class FakeCollaborator(AbsClusterCollaborator):
    """Collaborator over plain dicts, it records every command it receives.

    Memory accounting follows the simulator: attaching a VM charges the VM overhead, adding a task charges
    the task memory, a migration reserves the VM memory on the destination until it completes.
    """

    def __init__(self, vm_memory_overhead: int = VM_MEMORY_OVERHEAD):
        self.vm_memory_overhead = vm_memory_overhead

        self.machines: Dict[int, MachineInfo] = {}
        self.vms: Dict[int, VmInfo] = {}
        self.tasks: Dict[int, TaskInfo] = {}
        self.migrations: Dict[int, int] = {}
        self.shutdown_vms: List[int] = []
        self.commands: List[tuple] = []

        self.energy: float = 0.0
        self.sla: Dict[SlaType, float] = {sla: 0.0 for sla in SlaType}

    def add_machine(
        self,
        cpu: CpuType = CpuType.X86,
        memory_size: int = 16384,
        s_state: PowerState = PowerState.ACTIVE,
        energy_consumption: float = 0.0
    ) -> int:
        machine_id = len(self.machines)
        self.machines[machine_id] = MachineInfo(
            id=machine_id,
            cpu=cpu,
            memory_size=memory_size,
            memory_used=0,
            s_state=s_state,
            energy_consumption=energy_consumption
        )
        return machine_id

    def add_task_spec(
        self,
        memory: int,
        cpu: CpuType = CpuType.X86,
        vm_type: VmType = VmType.LINUX,
        sla: SlaType = SlaType.SLA1
    ) -> int:
        task_id = len(self.tasks)
        self.tasks[task_id] = TaskInfo(
            id=task_id, required_cpu=cpu, required_vm=vm_type, required_memory=memory, required_sla=sla
        )
        return task_id

    def vm_footprint(self, vm_id: int) -> int:
        task_memory = sum(self.tasks[task_id].required_memory for task_id in self.vms[vm_id].active_tasks)
        return self.vm_memory_overhead + task_memory

    def finish_task(self, task_id: int):
        """Release a task like the cluster does at the end of its runtime."""
        for vm in self.vms.values():
            if task_id in vm.active_tasks:
                vm.active_tasks.remove(task_id)
                machine = self.machines[vm.machine_id]
                machine.memory_used -= self.tasks[task_id].required_memory
                machine.active_tasks -= 1
                if vm.id in self.migrations:
                    self.machines[self.migrations[vm.id]].memory_used -= self.tasks[task_id].required_memory
                return

    def complete_migration(self, vm_id: int):
        vm = self.vms[vm_id]
        source = self.machines[vm.machine_id]
        destination = self.machines[self.migrations.pop(vm_id)]

        source.memory_used -= self.vm_footprint(vm_id)
        source.active_vms -= 1
        source.active_tasks -= len(vm.active_tasks)
        destination.active_tasks += len(vm.active_tasks)
        vm.machine_id = destination.id

    # Queries.

    def machine_total(self) -> int:
        return len(self.machines)

    def machine_info(self, machine_id: int) -> MachineInfo:
        return self.machines[machine_id]

    def vm_info(self, vm_id: int) -> VmInfo:
        return self.vms[vm_id]

    def task_info(self, task_id: int) -> TaskInfo:
        return self.tasks[task_id]

    def cluster_energy(self) -> float:
        return self.energy

    def sla_report(self, sla: SlaType) -> float:
        return self.sla[sla]

    # Commands.

    def create_vm(self, vm_type: VmType, cpu: CpuType) -> int:
        vm_id = len(self.vms)
        self.vms[vm_id] = VmInfo(id=vm_id, vm_type=vm_type, cpu=cpu)
        self.commands.append(("create_vm", vm_type, cpu))
        return vm_id

    def attach_vm(self, vm_id: int, machine_id: int):
        self.vms[vm_id].machine_id = machine_id
        self.machines[machine_id].memory_used += self.vm_memory_overhead
        self.machines[machine_id].active_vms += 1
        self.commands.append(("attach_vm", vm_id, machine_id))

    def add_task(self, vm_id: int, task_id: int, priority: Priority):
        vm = self.vms[vm_id]
        vm.active_tasks.append(task_id)
        self.machines[vm.machine_id].memory_used += self.tasks[task_id].required_memory
        self.machines[vm.machine_id].active_tasks += 1
        self.tasks[task_id].priority = priority
        self.commands.append(("add_task", vm_id, task_id, priority))

    def shutdown_vm(self, vm_id: int):
        self.shutdown_vms.append(vm_id)
        self.commands.append(("shutdown_vm", vm_id))

    def set_machine_state(self, machine_id: int, state: PowerState):
        self.machines[machine_id].s_state = state
        self.commands.append(("set_machine_state", machine_id, state))

    def migrate_vm(self, vm_id: int, machine_id: int):
        self.migrations[vm_id] = machine_id
        self.machines[machine_id].memory_used += self.vm_footprint(vm_id)
        self.machines[machine_id].active_vms += 1
        self.commands.append(("migrate_vm", vm_id, machine_id))

    def set_task_priority(self, task_id: int, priority: Priority):
        self.tasks[task_id].priority = priority
        self.commands.append(("set_task_priority", task_id, priority))


def deploy_vm(collaborator: FakeCollaborator, cluster_state: ClusterState, machine_id: int, vm_type=VmType.LINUX) -> int:
    """Create a VM on a machine, in the collaborator and in the cluster state."""
    vm_id = collaborator.create_vm(vm_type, collaborator.machines[machine_id].cpu)
    collaborator.attach_vm(vm_id, machine_id)
    cluster_state.register_vm(vm_id)
    cluster_state.attach_vm(vm_id, machine_id)
    return vm_id


def build_components(collaborator: FakeCollaborator, strategy: str = "energy_priority"):
    """Build a cluster state, an energy queue and a placement engine over the collaborator roster."""
    cluster_state = ClusterState()
    machine_queue = MachineEnergyQueue(lambda machine_id: collaborator.machine_info(machine_id).energy_consumption)

    for machine_id in range(collaborator.machine_total()):
        cluster_state.register_machine(machine_id)
        machine_queue.push(machine_id)

    placement_strategy = build_strategy(
        strategy, collaborator, cluster_state, collaborator.vm_memory_overhead, machine_queue
    )
    engine = PlacementEngine(placement_strategy, collaborator, cluster_state, collaborator.vm_memory_overhead)

    return cluster_state, machine_queue, engine
