# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


ERROR_CODE = {
    # Error code table for ecosched.
    1000: "Ecosched Internal Error",

    # 2200-2299: scheduler (placement & rebalancing engine)
    2200: "Scheduler Error",
    2201: "Unknown placement strategy",
    2202: "Cluster state is inconsistent with the requested operation",
    2203: "Scheduler already shut down, no further events are accepted",

    # 2300-2399: reference simulator
    2300: "Simulator Error",
    2301: "Invalid command sent to the simulated cluster",
    2302: "Entity does not exist in the simulated cluster",

    # 3000-3099: Error code for CLI
    3000: "CLI Internal Error",
    3001: "Command Error",
    3002: "Config Error",
}
