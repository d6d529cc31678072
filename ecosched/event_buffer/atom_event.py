# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.


from .event_state import EventState


class AtomEvent:
    """Basic event object that used to hold information that for callback.

    Note:
        The payload of event can be any object that related with specified logic.

    Args:
        id (int): Id of this event.
        tick (int): Tick that this event will be processed.
        event_type (object): Type of this event, EventBuffer will use this to match handlers.
        payload (object): Payload of this event.

    Attributes:
        id (int): Id of this event, ids are increasing in generation order.
        tick (int): Process tick of this event.
        payload (object): Payload of this event, can be any object.
        event_type (object): Type of this event, can be any type.
        state (EventState): Internal life-circle state of event.
    """

    def __init__(self, id: int, tick: int, event_type: object, payload: object):
        self.id = id
        self.tick = tick
        self.payload = payload
        self.event_type = event_type
        self.state = EventState.PENDING

    def __repr__(self):
        return "%s {id: %r, tick: %r, event_type: %r, payload: %r}" % \
            (self.__class__.__name__, self.id, self.tick, self.event_type, self.payload)
