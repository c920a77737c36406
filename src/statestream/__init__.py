"""Turn a state machine into a stream operator."""

import logging

from .errors import (
    ConfigurationError,
    EmitterClosedError,
    StateMachineError,
    StreamError,
    SubscriptionTerminatedError,
)
from .machine import Emitter, Record, StateMachine, Status, Subscription, state_machine
from .notification import (
    Notification,
    adematerialize,
    amaterialize,
    dematerialize,
    materialize,
)
from .stream import Stream

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ConfigurationError",
    "Emitter",
    "EmitterClosedError",
    "Notification",
    "Record",
    "StateMachine",
    "StateMachineError",
    "Status",
    "Stream",
    "StreamError",
    "Subscription",
    "SubscriptionTerminatedError",
    "adematerialize",
    "amaterialize",
    "dematerialize",
    "materialize",
    "state_machine",
]
