# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .business_engine import ClusterBusinessEngine
from .env import Env
from .events import Events
from .physical_machine import PhysicalMachine
from .task import Task
from .virtual_machine import VirtualMachine
from .workload import load_workload, tasks_from_records

__all__ = [
    "ClusterBusinessEngine", "Env", "Events", "PhysicalMachine", "Task", "VirtualMachine", "load_workload",
    "tasks_from_records"
]
