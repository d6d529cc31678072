# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from enum import Enum


class Events(Enum):
    """Cluster related events."""
    # Task events.
    TASK_ARRIVAL = "task_arrival"
    TASK_COMPLETION = "task_completion"
    # VM events.
    MIGRATION_COMPLETE = "migration_complete"
    # Machine events.
    STATE_CHANGE_COMPLETE = "state_change_complete"
    MEMORY_WARNING = "memory_warning"
    # Advisory events.
    SLA_WARNING = "sla_warning"
    PERIODIC_CHECK = "periodic_check"
