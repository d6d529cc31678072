# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .cluster_state import ClusterState
from .collaborator import AbsClusterCollaborator
from .common import (
    MachineInfo, Migration, Placement, TaskInfo, VmInfo, default_vm_for_cpu, determine_priority
)
from .enums import CpuType, PlacementStrategy, PowerState, Priority, SlaType, VmType
from .helpers import DocableDict
from .machine_queue import MachineEnergyQueue
from .placement import (
    AbsPlacementStrategy, BestFitExisting, EnergyPriorityQueue, PlacementEngine, RoundRobinMachine, build_strategy
)
from .power_manager import PowerManager
from .rebalancer import Rebalancer, split_roster
from .scheduler import Scheduler

__all__ = [
    "ClusterState", "AbsClusterCollaborator",
    "MachineInfo", "Migration", "Placement", "TaskInfo", "VmInfo", "default_vm_for_cpu", "determine_priority",
    "CpuType", "PlacementStrategy", "PowerState", "Priority", "SlaType", "VmType",
    "DocableDict", "MachineEnergyQueue",
    "AbsPlacementStrategy", "BestFitExisting", "EnergyPriorityQueue", "PlacementEngine", "RoundRobinMachine",
    "build_strategy",
    "PowerManager", "Rebalancer", "split_roster", "Scheduler"
]
