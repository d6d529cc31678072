# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import unittest

from ecosched.scheduler import CpuType, Priority, Rebalancer, split_roster
from tests.utils import FakeCollaborator, build_components, deploy_vm


class TestSplitRoster(unittest.TestCase):
    def test_split_sizes(self):
        for machine_num in range(7):
            roster = list(range(machine_num))
            low, high = split_roster(roster)

            self.assertEqual(machine_num // 2, len(low))
            self.assertEqual(machine_num - machine_num // 2, len(high))
            self.assertListEqual(roster, low + high)


class TestRebalancer(unittest.TestCase):
    def setUp(self):
        self.collaborator = FakeCollaborator()

    def _build(self):
        self.cluster_state, self.machine_queue, self.engine = build_components(self.collaborator)
        self.rebalancer = Rebalancer(self.collaborator, self.cluster_state, self.machine_queue, 1024)

    def _add_tasks(self, vm_id: int, *memories: int):
        for memory in memories:
            self.collaborator.add_task(vm_id, self.collaborator.add_task_spec(memory=memory), Priority.MID)

    def test_migrate_to_high_machine(self):
        self.collaborator.add_machine(energy_consumption=1.0)
        self.collaborator.add_machine(energy_consumption=5.0, memory_size=3024)
        self._build()
        vm_id = deploy_vm(self.collaborator, self.cluster_state, 0)
        self._add_tasks(vm_id, 2000)

        migrations = self.rebalancer.rebalance()

        self.assertEqual(1, len(migrations))
        self.assertEqual((vm_id, 0, 1, 2000), (
            migrations[0].vm_id, migrations[0].source, migrations[0].destination, migrations[0].workload
        ))
        self.assertTrue(self.cluster_state.is_migrating(vm_id))
        self.assertListEqual([vm_id], self.cluster_state.vms_on(1))
        self.assertListEqual([], self.cluster_state.vms_on(0))
        self.assertIn(("migrate_vm", vm_id, 1), self.collaborator.commands)
        # The roster is pushed back after the pass.
        self.assertEqual(2, len(self.machine_queue))

    def test_no_double_booking_during_migration(self):
        self.collaborator.add_machine(energy_consumption=1.0)
        self.collaborator.add_machine(energy_consumption=5.0)
        self._build()
        vm_id = deploy_vm(self.collaborator, self.cluster_state, 0)
        self._add_tasks(vm_id, 2000)

        self.rebalancer.rebalance()

        # A task of the same type arrives while the VM is in flight.
        placement = self.engine.place(self.collaborator.add_task_spec(memory=1000))
        self.assertNotEqual(vm_id, placement.vm_id)
        self.assertTrue(placement.created_vm)

        self.collaborator.complete_migration(vm_id)
        self.assertEqual(1, self.cluster_state.clear_migrating(vm_id))
        self.assertFalse(self.cluster_state.is_migrating(vm_id))

        # Stable again, the VM can receive tasks on its new host.
        self.collaborator.machines[0].memory_size = 0
        placement = self.engine.place(self.collaborator.add_task_spec(memory=1000))
        self.assertEqual(vm_id, placement.vm_id)
        self.assertEqual(1, placement.machine_id)

    def test_destination_without_memory(self):
        self.collaborator.add_machine(energy_consumption=1.0)
        self.collaborator.add_machine(energy_consumption=5.0, memory_size=3023)
        self._build()
        vm_id = deploy_vm(self.collaborator, self.cluster_state, 0)
        self._add_tasks(vm_id, 2000)

        self.assertListEqual([], self.rebalancer.rebalance())
        self.assertFalse(self.cluster_state.is_migrating(vm_id))

    def test_destination_with_other_cpu(self):
        self.collaborator.add_machine(energy_consumption=1.0)
        self.collaborator.add_machine(energy_consumption=5.0, cpu=CpuType.ARM)
        self._build()
        vm_id = deploy_vm(self.collaborator, self.cluster_state, 0)
        self._add_tasks(vm_id, 2000)

        self.assertListEqual([], self.rebalancer.rebalance())

    def test_idle_vm_is_not_migrated(self):
        self.collaborator.add_machine(energy_consumption=1.0)
        self.collaborator.add_machine(energy_consumption=5.0)
        self._build()
        deploy_vm(self.collaborator, self.cluster_state, 0)

        self.assertListEqual([], self.rebalancer.rebalance())

    def test_smallest_vm_only(self):
        self.collaborator.add_machine(energy_consumption=1.0)
        self.collaborator.add_machine(energy_consumption=5.0)
        self._build()
        large_vm = deploy_vm(self.collaborator, self.cluster_state, 0)
        small_vm = deploy_vm(self.collaborator, self.cluster_state, 0)
        self._add_tasks(large_vm, 2000, 1000)
        self._add_tasks(small_vm, 1000)

        migrations = self.rebalancer.rebalance()

        self.assertListEqual([small_vm], [migration.vm_id for migration in migrations])
        self.assertEqual(1000, migrations[0].workload)
        self.assertEqual(3000, self.rebalancer.workload_of(large_vm))

        # The second pass finds the large VM, the small one is in flight on the high machine.
        migrations = self.rebalancer.rebalance()
        self.assertListEqual([large_vm], [migration.vm_id for migration in migrations])

    def test_one_candidate_per_low_machine(self):
        for energy in [1.0, 2.0, 3.0, 4.0]:
            self.collaborator.add_machine(energy_consumption=energy)
        self._build()
        vm_ids = [deploy_vm(self.collaborator, self.cluster_state, machine_id) for machine_id in range(4)]
        for vm_id in vm_ids:
            self._add_tasks(vm_id, 1000)

        migrations = self.rebalancer.rebalance()

        self.assertListEqual([0, 1], [migration.source for migration in migrations])
        for migration in migrations:
            self.assertIn(migration.destination, [2, 3])
        self.assertEqual(4, len(self.machine_queue))


if __name__ == "__main__":
    unittest.main()
