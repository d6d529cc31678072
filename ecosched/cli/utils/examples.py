# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


ECOSCHED_RUN = """
Examples:
    Run the built-in topology with its inlined workload
        ecosched run --topology small_cluster

    Run a topology file with a workload trace and the round-robin strategy
        ecosched run --topology ./cluster.yml --workload ./tasks.csv --strategy round_robin

    Stop the simulation at tick 500, with a periodic check every 5 ticks
        ecosched run --topology small_cluster --durations 500 --check-interval 5
"""
