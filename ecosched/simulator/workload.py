# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import os
from typing import Iterable, List

import pandas as pd

from ecosched.scheduler.enums import CpuType, SlaType, VmType
from ecosched.utils.exception.cli_exception import ConfigError

from .task import Task

WORKLOAD_COLUMNS = ["task_id", "arrival", "duration", "cpu", "vm_type", "memory", "sla"]


def parse_enum(enum_cls, value):
    """Get an enum member from its name (case-insensitive) or its value."""
    if isinstance(value, enum_cls):
        return value

    if isinstance(value, str):
        name = value.strip().upper()
        if name in enum_cls.__members__:
            return enum_cls[name]
        if name.lstrip("-").isdigit():
            value = int(name)

    try:
        return enum_cls(value)
    except ValueError:
        raise ConfigError(f"'{value}' is not a valid {enum_cls.__name__}.")


def tasks_from_frame(df: pd.DataFrame) -> List[Task]:
    """Build the tasks of a workload table, sorted by arrival then task id.

    Args:
        df (pd.DataFrame): Workload table with the columns in ``WORKLOAD_COLUMNS``.

    Returns:
        List[Task]: Tasks of the workload.
    """
    missing_columns = [column for column in WORKLOAD_COLUMNS if column not in df.columns]
    if len(missing_columns) > 0:
        raise ConfigError(f"Workload is missing the columns: {missing_columns}.")

    if df["task_id"].duplicated().any():
        raise ConfigError("Workload contains duplicated task ids.")

    df = df.sort_values(by=["arrival", "task_id"], kind="stable")

    return [
        Task(
            id=int(row.task_id),
            arrival=int(row.arrival),
            duration=int(row.duration),
            cpu=parse_enum(CpuType, row.cpu),
            vm_type=parse_enum(VmType, row.vm_type),
            memory=int(row.memory),
            sla=parse_enum(SlaType, row.sla)
        )
        for row in df.itertuples(index=False)
    ]


def tasks_from_records(records: Iterable[dict]) -> List[Task]:
    """Build the tasks of a workload given as a list of mappings, e.g. inlined in a topology file."""
    records = list(records)
    if len(records) == 0:
        return []

    return tasks_from_frame(pd.DataFrame(records))


def load_workload(path: str) -> List[Task]:
    """Load a task trace from a CSV file.

    Args:
        path (str): Path of the CSV file, ``~`` is expanded.

    Returns:
        List[Task]: Tasks of the trace, sorted by arrival then task id.
    """
    path = os.path.expanduser(path)
    if not os.path.exists(path):
        raise ConfigError(f"Workload file '{path}' does not exist.")

    return tasks_from_frame(pd.read_csv(path, skipinitialspace=True))
