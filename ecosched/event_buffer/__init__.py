# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

from .atom_event import AtomEvent
from .event_buffer import EventBuffer
from .event_state import EventState

__all__ = ["AtomEvent", "EventBuffer", "EventState"]
