# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


from collections import defaultdict, deque
from itertools import count
from typing import Callable, Deque, Dict, Iterator, List

from .atom_event import AtomEvent
from .event_state import EventState

EventList = List[AtomEvent]


class EventBuffer:
    """
    EventBuffer used to hold events, and dispatch them at specified tick.

    NOTE:
        Insert order will affect the processing order, events of the same tick are
        dispatched first-in first-out. Events inserted by a handler for the tick that is
        being executed are processed in the same call, after the ones already queued.

    Args:
        disable_finished_events (bool): Is disable the method to get finished event list,
            EventBuffer will drop the finished events instead of pushing them into the
            finished events list, so "get_finished_events" returns an empty list.
    """

    def __init__(self, disable_finished_events: bool = False):
        self._pending_events: Dict[int, Deque[AtomEvent]] = defaultdict(deque)
        self._handlers: Dict[object, List[Callable]] = defaultdict(list)

        # used to hold all the events that been processed
        self._finished_events: EventList = []
        self._disable_finished_events = disable_finished_events

        self._event_count: Iterator[int] = count()

    def get_finished_events(self) -> EventList:
        """Get all the processed events, call this function before reset method.

        Returns:
            EventList: List of event object.
        """
        return self._finished_events

    def get_pending_events(self, tick: int) -> EventList:
        """Get pending event at specified tick.

        Args:
            tick (int): tick of events to get.

        Returns:
            EventList: List of event object.
        """
        return list(self._pending_events.get(tick, []))

    @property
    def pending_ticks(self) -> List[int]:
        """List[int]: Sorted ticks that still hold pending events."""
        return sorted(tick for tick, events in self._pending_events.items() if len(events) > 0)

    def reset(self):
        """Reset internal states, this method will clear all events.

        NOTE:
            After reset the get_finished_event method will return empty list.
        """
        self._finished_events.clear()
        self._pending_events.clear()

    def gen_atom_event(self, tick: int, event_type: object, payload: object = None) -> AtomEvent:
        """Generate an atom event.

        Args:
            tick (int): Tick that the event will be processed.
            event_type (object): Type of this event.
            payload (object): Payload of event, used to pass data to handlers.

        Returns:
            AtomEvent: Atom event object
        """
        return AtomEvent(next(self._event_count), tick, event_type, payload)

    def register_event_handler(self, event_type: object, handler: Callable):
        """Register an event with handler, when there is an event need to be processed,
        EventBuffer will invoke the handler if there are any event's type match specified at each tick.

        NOTE:
            Callback function should only hold one parameter that is the event object.

        Args:
            event_type (object): Type of event that the handler want to process.
            handler (Callable): Handler that will process the event.
        """
        self._handlers[event_type].append(handler)

    def insert_event(self, event: AtomEvent):
        """Insert an event to the pending queue.

        Args:
            event (AtomEvent): Event to insert, usually get event object from gen_atom_event.
        """
        self._pending_events[event.tick].append(event)

    def execute(self, tick: int) -> EventList:
        """Process and dispatch event by tick.

        Args:
            tick (int): Tick used to process events.

        Returns:
            EventList: Events that were executed at this tick, in dispatch order.
        """
        executed: EventList = []

        if tick in self._pending_events:
            cur_events: Deque[AtomEvent] = self._pending_events[tick]

            while len(cur_events) > 0:
                next_event = cur_events.popleft()
                next_event.state = EventState.EXECUTING

                # Invoke handlers.
                for handler in self._handlers.get(next_event.event_type, []):
                    handler(next_event)

                next_event.state = EventState.FINISHED
                executed.append(next_event)

                if not self._disable_finished_events:
                    self._finished_events.append(next_event)

            self._pending_events.pop(tick, None)

        return executed
