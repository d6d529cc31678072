# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import copy
import unittest

from ecosched.event_buffer import EventBuffer
from ecosched.scheduler import CpuType, PowerState, Priority, SlaType, VmType
from ecosched.simulator import ClusterBusinessEngine, Events, Task
from ecosched.utils.exception.simulator_exception import EntityNotFoundError, InvalidCommandError

POWER_CURVE = {"idle_power": 100, "busy_power": 200, "standby_power": 10, "calibration_parameter": 1.4}

TOPOLOGY = {
    "vm_memory_overhead": 1024,
    "migration_latency": 2,
    "state_change_latency": 1,
    "ticks_per_hour": 60,
    "machines": [
        {"type": "x86", "cpu": "X86", "cpu_cores": 2, "memory": 8192, "amount": 2, "power_curve": POWER_CURVE},
        {
            "type": "x86", "cpu": "X86", "cpu_cores": 2, "memory": 8192, "amount": 1, "s_state": "STANDBY",
            "power_curve": POWER_CURVE
        },
        {"type": "arm", "cpu": "ARM", "cpu_cores": 2, "memory": 8192, "power_curve": POWER_CURVE},
    ],
}


def make_task(task_id: int, memory: int = 2048, duration: int = 10, sla: SlaType = SlaType.SLA3, arrival: int = 0):
    return Task(
        id=task_id, arrival=arrival, duration=duration, cpu=CpuType.X86, vm_type=VmType.LINUX, memory=memory, sla=sla
    )


def event_types(events) -> list:
    return [(event.event_type, event.payload) for event in events]


class TestClusterBusinessEngine(unittest.TestCase):
    def setUp(self):
        self.eb = EventBuffer()
        self.be = ClusterBusinessEngine(self.eb, copy.deepcopy(TOPOLOGY))

    def _running_vm(self, machine_id: int = 0) -> int:
        vm_id = self.be.create_vm(VmType.LINUX, CpuType.X86)
        self.be.attach_vm(vm_id, machine_id)
        return vm_id

    def test_topology(self):
        self.assertEqual(4, self.be.machine_total())
        self.assertEqual(PowerState.ACTIVE, self.be.machine_info(1).s_state)
        self.assertEqual(PowerState.STANDBY, self.be.machine_info(2).s_state)
        self.assertEqual(CpuType.ARM, self.be.machine_info(3).cpu)
        self.assertEqual(8192, self.be.machine_info(3).available_memory)
        # Options missing in the topology get their default value.
        self.assertEqual(1.2, self.be.configs.sla_slack.SLA0)

    def test_attach_and_add_task(self):
        vm_id = self._running_vm()
        machine = self.be.machine_info(0)
        self.assertEqual(1024, machine.memory_used)
        self.assertEqual(1, machine.active_vms)
        self.assertEqual(0, self.be.vm_info(vm_id).machine_id)

        self.be.register_tasks([make_task(0)])
        self.be.add_task(vm_id, 0, Priority.LOW)

        machine = self.be.machine_info(0)
        self.assertEqual(1024 + 2048, machine.memory_used)
        self.assertEqual(1, machine.active_tasks)
        self.assertListEqual([0], self.be.vm_info(vm_id).active_tasks)
        self.assertEqual(Priority.LOW, self.be.task_info(0).priority)
        self.assertListEqual([(Events.TASK_COMPLETION, 0)], event_types(self.eb.get_pending_events(10)))

        self.assertTrue(self.be.finish_task(0))
        self.assertEqual(1024, self.be.machine_info(0).memory_used)
        self.assertEqual(0, self.be.machine_info(0).active_tasks)

    def test_invalid_commands(self):
        vm_id = self._running_vm()
        self.be.register_tasks([make_task(0), Task(1, 0, 10, CpuType.X86, VmType.WIN, 1024, SlaType.SLA3)])

        with self.assertRaises(InvalidCommandError):
            self.be.attach_vm(vm_id, 1)

        with self.assertRaises(InvalidCommandError):
            self.be.attach_vm(self.be.create_vm(VmType.LINUX, CpuType.X86), 2)

        with self.assertRaises(InvalidCommandError):
            self.be.attach_vm(self.be.create_vm(VmType.LINUX, CpuType.X86), 3)

        with self.assertRaises(InvalidCommandError):
            self.be.add_task(self.be.create_vm(VmType.LINUX, CpuType.X86), 0, Priority.MID)

        with self.assertRaises(InvalidCommandError):
            self.be.add_task(vm_id, 1, Priority.MID)

        with self.assertRaises(InvalidCommandError):
            self.be.create_vm(VmType.INVALID, CpuType.RISCV)

        with self.assertRaises(InvalidCommandError):
            self.be.set_machine_state(0, PowerState.STANDBY)

        with self.assertRaises(EntityNotFoundError):
            self.be.machine_info(42)

        with self.assertRaises(EntityNotFoundError):
            self.be.add_task(vm_id, 42, Priority.MID)

    def test_set_machine_state(self):
        self.be.step(3)
        self.be.set_machine_state(2, PowerState.ACTIVE)

        self.assertEqual(PowerState.ACTIVE, self.be.machine_info(2).s_state)
        self.assertListEqual([(Events.STATE_CHANGE_COMPLETE, 2)], event_types(self.eb.get_pending_events(4)))

        self.be.set_machine_state(1, PowerState.STANDBY)
        self.assertEqual(PowerState.STANDBY, self.be.machine_info(1).s_state)
        self.assertEqual(2, self.be.get_metrics()["total_state_changes"])

    def test_migration(self):
        vm_id = self._running_vm()
        self.be.register_tasks([make_task(0), make_task(1, memory=1024)])
        self.be.add_task(vm_id, 0, Priority.LOW)

        self.be.migrate_vm(vm_id, 1)

        # Memory is reserved on the destination, the VM still runs on the source.
        self.assertEqual(3072, self.be.machine_info(0).memory_used)
        self.assertEqual(3072, self.be.machine_info(1).memory_used)
        self.assertEqual(1, self.be.machine_info(1).active_vms)
        self.assertEqual(0, self.be.vm_info(vm_id).machine_id)
        self.assertListEqual([(Events.MIGRATION_COMPLETE, vm_id)], event_types(self.eb.get_pending_events(2)))

        with self.assertRaises(InvalidCommandError):
            self.be.add_task(vm_id, 1, Priority.LOW)

        with self.assertRaises(InvalidCommandError):
            self.be.migrate_vm(vm_id, 1)

        self.assertTrue(self.be.complete_migration(vm_id))

        self.assertEqual(0, self.be.machine_info(0).memory_used)
        self.assertEqual(0, self.be.machine_info(0).active_vms)
        self.assertEqual(0, self.be.machine_info(0).active_tasks)
        self.assertEqual(3072, self.be.machine_info(1).memory_used)
        self.assertEqual(1, self.be.machine_info(1).active_tasks)
        self.assertEqual(1, self.be.vm_info(vm_id).machine_id)

        self.assertFalse(self.be.complete_migration(vm_id))

    def test_finish_task_during_migration(self):
        vm_id = self._running_vm()
        self.be.register_tasks([make_task(0)])
        self.be.add_task(vm_id, 0, Priority.LOW)
        self.be.migrate_vm(vm_id, 1)

        self.be.finish_task(0)

        self.assertEqual(1024, self.be.machine_info(0).memory_used)
        self.assertEqual(1024, self.be.machine_info(1).memory_used)

        self.be.complete_migration(vm_id)
        self.assertEqual(0, self.be.machine_info(0).memory_used)
        self.assertEqual(1024, self.be.machine_info(1).memory_used)

    def test_energy(self):
        self.be.post_step(0)

        idle_energy = 100 / 60 / 1000
        self.assertAlmostEqual(idle_energy, self.be.machine_info(0).energy_consumption)
        self.assertAlmostEqual(10 / 60 / 1000, self.be.machine_info(2).energy_consumption)
        self.assertAlmostEqual(3 * idle_energy + 10 / 60 / 1000, self.be.cluster_energy())

        vm_id = self._running_vm()
        self.be.register_tasks([make_task(0, memory=1024), make_task(1, memory=1024)])
        self.be.add_task(vm_id, 0, Priority.LOW)
        self.be.post_step(1)

        half_load_power = 100 + 100 * (2 * 0.5 - 0.5 ** 1.4)
        self.assertAlmostEqual(idle_energy + half_load_power / 60 / 1000, self.be.machine_info(0).energy_consumption)

        self.be.add_task(vm_id, 1, Priority.LOW)
        self.be.post_step(2)

        self.assertAlmostEqual(
            idle_energy + (half_load_power + 200) / 60 / 1000, self.be.machine_info(0).energy_consumption
        )
        self.assertAlmostEqual(self.be.get_metrics()["total_energy_consumption"], self.be.cluster_energy())

    def test_sla(self):
        vm_id = self._running_vm()
        self.be.register_tasks([make_task(task_id, duration=10, sla=SlaType.SLA0) for task_id in range(3)])

        self.be.add_task(vm_id, 0, Priority.HIGH)
        self.be.add_task(vm_id, 1, Priority.HIGH)
        self.assertListEqual([], event_types(self.eb.get_pending_events(0)))

        # Three tasks on two cores: runtime 15, over the deadline of 12.
        self.be.add_task(vm_id, 2, Priority.HIGH)
        self.assertListEqual([(Events.SLA_WARNING, 2)], event_types(self.eb.get_pending_events(0)))
        self.assertListEqual([(Events.TASK_COMPLETION, 2)], event_types(self.eb.get_pending_events(15)))

        self.be.step(10)
        self.be.finish_task(0)
        self.be.step(15)
        self.be.finish_task(2)

        self.assertEqual(50.0, self.be.sla_report(SlaType.SLA0))
        self.assertEqual(0.0, self.be.sla_report(SlaType.SLA1))
        self.assertEqual(1, self.be.get_metrics()["sla_violations"])

    def test_memory_warning(self):
        vm_id = self._running_vm()
        self.be.register_tasks([make_task(0, memory=4096), make_task(1, memory=4096)])

        self.be.add_task(vm_id, 0, Priority.LOW)
        self.be.add_task(vm_id, 1, Priority.LOW)

        self.assertIn((Events.MEMORY_WARNING, 0), event_types(self.eb.get_pending_events(0)))
        self.assertEqual(1, self.be.get_metrics()["memory_warnings"])

    def test_shutdown_vm(self):
        vm_id = self._running_vm()
        self.be.register_tasks([make_task(0)])
        self.be.add_task(vm_id, 0, Priority.LOW)

        self.be.shutdown_vm(vm_id)

        self.assertEqual(0, self.be.machine_info(0).memory_used)
        self.assertEqual(0, self.be.machine_info(0).active_tasks)
        # The completion of a task whose VM was shut down is dropped.
        self.assertFalse(self.be.finish_task(0))

        with self.assertRaises(InvalidCommandError):
            self.be.shutdown_vm(vm_id)

    def test_arrivals(self):
        topology = copy.deepcopy(TOPOLOGY)
        topology["workload"] = [
            {"task_id": 7, "arrival": 2, "duration": 5, "cpu": "X86", "vm_type": "LINUX", "memory": 512, "sla": 1},
            {"task_id": 3, "arrival": 0, "duration": 5, "cpu": "ARM", "vm_type": "WIN", "memory": 512, "sla": 2},
        ]
        be = ClusterBusinessEngine(self.eb, topology)
        be.register_tasks([make_task(5, arrival=2)])

        be.step(0)
        self.assertListEqual([(Events.TASK_ARRIVAL, 3)], event_types(self.eb.get_pending_events(0)))
        self.assertTrue(be.has_pending_arrivals)

        be.step(1)
        be.step(2)
        self.assertListEqual(
            [(Events.TASK_ARRIVAL, 5), (Events.TASK_ARRIVAL, 7)], event_types(self.eb.get_pending_events(2))
        )
        self.assertFalse(be.has_pending_arrivals)
        self.assertEqual(3, be.get_metrics()["arrived_tasks"])


if __name__ == "__main__":
    unittest.main()
