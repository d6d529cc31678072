# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from enum import Enum, IntEnum


class CpuType(IntEnum):
    """CPU architecture of machines, VMs and tasks."""
    X86 = 0
    ARM = 1
    POWER = 2
    RISCV = 3


class VmType(IntEnum):
    """VM image type. ``INVALID`` is the fallback for unknown CPU architectures."""
    INVALID = -1
    LINUX = 0
    LINUX_RT = 1
    WIN = 2
    AIX = 3


class SlaType(IntEnum):
    """SLA class of a task, SLA3 is best-effort."""
    SLA0 = 0
    SLA1 = 1
    SLA2 = 2
    SLA3 = 3


class Priority(IntEnum):
    """Scheduling priority of a task inside its VM."""
    HIGH = 0
    MID = 1
    LOW = 2


class PowerState(IntEnum):
    """Machine power state, Active is S0 and Standby is S5."""
    ACTIVE = 0
    STANDBY = 5


class PlacementStrategy(Enum):
    """Placement strategies of the placement engine."""
    BEST_FIT = "best_fit"
    ROUND_ROBIN = "round_robin"
    ENERGY_PRIORITY = "energy_priority"
