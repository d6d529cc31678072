# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from typing import List, Optional, Union

from ecosched.event_buffer import AtomEvent, EventBuffer
from ecosched.scheduler import Scheduler
from ecosched.scheduler.helpers import DocableDict
from ecosched.utils.logger import CliLogger

from .business_engine import ClusterBusinessEngine
from .events import Events
from .task import Task
from .workload import load_workload

logger = CliLogger(name=__name__)


class Env:
    """Event-driven harness that runs a scheduler against the simulated cluster.

    Each tick, the business engine generates the task arrivals, then the event buffer dispatches the
    events of the tick in order, then the business engine meters the energy of the tick. Events
    inserted for the current tick while dispatching are processed in the same tick.

    Args:
        topology (Union[str, dict]): Name of a built-in topology, path of a topology file, or the
            topology itself.
        workload (Union[str, List[Task]]): Path of a workload CSV file or the tasks, added to the
            tasks inlined in the topology.
        start_tick (int): Start tick of the simulation.
        durations (int): Duration ticks of this environment from start_tick. None runs until every task
            has arrived and no event other than the periodic check is pending.
        check_interval (int): Ticks between two periodic checks, 0 disables them.
        scheduler_config (dict): Overrides of the scheduler configuration.
        disable_finished_events (bool): Disable finished events list.
    """

    def __init__(
        self,
        topology: Union[str, dict],
        workload: Union[str, List[Task], None] = None,
        start_tick: int = 0,
        durations: Optional[int] = None,
        check_interval: int = 10,
        scheduler_config: Optional[dict] = None,
        disable_finished_events: bool = False
    ):
        self._start_tick = start_tick
        self._durations = durations
        self._check_interval = check_interval
        self._tick: int = start_tick

        self._event_buffer = EventBuffer(disable_finished_events)
        self._business_engine = ClusterBusinessEngine(
            event_buffer=self._event_buffer,
            topology=topology,
            start_tick=start_tick,
            max_tick=None if durations is None else start_tick + durations
        )

        if isinstance(workload, str):
            workload = load_workload(workload)
        if workload is not None:
            self._business_engine.register_tasks(workload)

        self._scheduler = Scheduler(self._business_engine, scheduler_config)

        self._register_events()

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def scheduler(self) -> Scheduler:
        return self._scheduler

    @property
    def business_engine(self) -> ClusterBusinessEngine:
        return self._business_engine

    @property
    def event_buffer(self) -> EventBuffer:
        return self._event_buffer

    @property
    def metrics(self) -> DocableDict:
        """DocableDict: Metrics of the simulated cluster."""
        return self._business_engine.get_metrics()

    def get_finished_events(self) -> List[AtomEvent]:
        return self._event_buffer.get_finished_events()

    def get_pending_events(self, tick: int) -> List[AtomEvent]:
        return self._event_buffer.get_pending_events(tick)

    def run(self) -> DocableDict:
        """Run the simulation to its end and shut the scheduler down.

        Returns:
            DocableDict: The final report of the scheduler.
        """
        self._scheduler.init()

        if self._check_interval > 0:
            self._insert_periodic_check(self._start_tick + self._check_interval)

        while True:
            self._business_engine.step(self._tick)
            self._event_buffer.execute(self._tick)
            is_end_tick = self._business_engine.post_step(self._tick)

            if is_end_tick or (self._durations is None and self._is_drained()):
                break

            self._tick += 1

        return self._scheduler.shutdown(self._tick)

    def _is_drained(self) -> bool:
        if self._business_engine.has_pending_arrivals:
            return False

        for tick in self._event_buffer.pending_ticks:
            for event in self._event_buffer.get_pending_events(tick):
                if event.event_type != Events.PERIODIC_CHECK:
                    return False

        return True

    def _register_events(self):
        register_handler = self._event_buffer.register_event_handler

        register_handler(event_type=Events.TASK_ARRIVAL, handler=self._on_task_arrival)
        register_handler(event_type=Events.TASK_COMPLETION, handler=self._on_task_completion)
        register_handler(event_type=Events.MIGRATION_COMPLETE, handler=self._on_migration_complete)
        register_handler(event_type=Events.PERIODIC_CHECK, handler=self._on_periodic_check)
        register_handler(event_type=Events.MEMORY_WARNING, handler=self._on_memory_warning)
        register_handler(event_type=Events.SLA_WARNING, handler=self._on_sla_warning)
        register_handler(event_type=Events.STATE_CHANGE_COMPLETE, handler=self._on_state_change_complete)

    def _insert_periodic_check(self, tick: int):
        check_event = self._event_buffer.gen_atom_event(tick=tick, event_type=Events.PERIODIC_CHECK)
        self._event_buffer.insert_event(event=check_event)

    def _on_task_arrival(self, event: AtomEvent):
        self._scheduler.new_task(event.tick, event.payload)

    def _on_task_completion(self, event: AtomEvent):
        if self._business_engine.finish_task(event.payload):
            self._scheduler.task_complete(event.tick, event.payload)

    def _on_migration_complete(self, event: AtomEvent):
        if self._business_engine.complete_migration(event.payload):
            self._scheduler.migration_complete(event.tick, event.payload)

    def _on_periodic_check(self, event: AtomEvent):
        self._scheduler.periodic_check(event.tick)
        self._insert_periodic_check(event.tick + self._check_interval)

    def _on_memory_warning(self, event: AtomEvent):
        self._scheduler.memory_warning(event.tick, event.payload)

    def _on_sla_warning(self, event: AtomEvent):
        if not self._business_engine.tasks[event.payload].is_finished:
            self._scheduler.sla_warning(event.tick, event.payload)

    def _on_state_change_complete(self, event: AtomEvent):
        self._scheduler.state_change_complete(event.tick, event.payload)
