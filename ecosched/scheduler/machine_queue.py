# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import heapq
from typing import Callable, List, Tuple


class MachineEnergyQueue:
    """Min-heap of machine ids ordered by ascending energy consumption.

    Keys are read from ``energy_of`` when a machine is pushed, so a machine popped and pushed back
    is re-ordered with its current consumption. Ties are broken by the lower machine id.

    Args:
        energy_of (Callable[[int], float]): Returns the current energy consumption of a machine.
    """

    def __init__(self, energy_of: Callable[[int], float]):
        self._energy_of = energy_of
        self._heap: List[Tuple[float, int]] = []

    def __len__(self) -> int:
        return len(self._heap)

    def __contains__(self, machine_id: int) -> bool:
        return any(entry[1] == machine_id for entry in self._heap)

    def push(self, machine_id: int):
        heapq.heappush(self._heap, (self._energy_of(machine_id), machine_id))

    def extend(self, machine_ids: List[int]):
        for machine_id in machine_ids:
            self.push(machine_id)

    def pop(self) -> int:
        return heapq.heappop(self._heap)[1]

    def refresh(self):
        """Re-key all queued machines with their current energy consumption."""
        machine_ids = [entry[1] for entry in self._heap]
        self._heap = [(self._energy_of(machine_id), machine_id) for machine_id in machine_ids]
        heapq.heapify(self._heap)

    def drain(self) -> List[int]:
        """Pop all machines, cheapest first. The queue is empty afterwards."""
        drained = []
        while self._heap:
            drained.append(self.pop())

        return drained
