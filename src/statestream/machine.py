import logging
from collections import namedtuple

from .errors import ConfigurationError, EmitterClosedError, SubscriptionTerminatedError
from .notification import (
    COMPLETED,
    ERROR,
    NEXT,
    Notification,
    amaterialize,
    adematerialize,
    dematerialize,
    materialize,
)

logger = logging.getLogger(__name__)


class Status:
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    ERRORED = "errored"


# state is None once terminated is True; nothing may transition after that.
Record = namedtuple("Record", ["state", "notifications", "terminated"])


def _forwardable(exception):
    # generators turn a re-raised StopIteration into an unchained RuntimeError
    if isinstance(exception, (StopIteration, StopAsyncIteration)):
        wrapped = RuntimeError(f"state machine raised {type(exception).__name__}")
        wrapped.__cause__ = exception
        return wrapped
    return exception


class Emitter:
    """Append-only recorder handed to user code for a single step.

    Captures values in call order and at most one terminal signal. Once the
    step returns the emitter is sealed and any further use raises.
    """

    __slots__ = ("_notifications", "_terminated", "_sealed")

    def __init__(self):
        self._notifications = []
        self._terminated = False
        self._sealed = False

    @property
    def terminated(self):
        return self._terminated

    def emit(self, value):
        if self._accepting("emit"):
            self._notifications.append(Notification.on_next(value))

    def complete(self):
        if self._accepting("complete"):
            self._terminated = True
            self._notifications.append(Notification.on_completed())

    def error(self, exception):
        if not isinstance(exception, BaseException):
            raise TypeError(
                f"Emitter.error() expects an exception, got {type(exception).__name__}"
            )
        if self._accepting("error"):
            self._terminated = True
            self._notifications.append(Notification.on_error(_forwardable(exception)))

    def _accepting(self, method):
        if self._sealed:
            raise EmitterClosedError(f"Emitter.{method}() called after its step returned")
        if self._terminated:
            logger.warning("Ignoring Emitter.%s() after a terminal signal", method)
            return False
        return True

    def _drain(self):
        self._sealed = True
        notifications = self._notifications
        self._notifications = []
        return notifications


class Subscription:
    """One running instance of a state machine over one traversal of a stream."""

    def __init__(self, machine):
        self._machine = machine
        self._state = None
        self.status = Status.NOT_STARTED

    @property
    def state(self):
        return self._state

    @property
    def terminated(self):
        return self.status in (Status.COMPLETED, Status.ERRORED)

    def step(self, event):
        """Process one input notification and return the resulting Record."""
        if self.terminated:
            raise SubscriptionTerminatedError(
                f"State machine '{self._machine.name}' already {self.status}"
            )
        if event.kind == ERROR:
            # upstream errors never reach user code
            return self._terminate(Status.ERRORED, [event])

        machine = self._machine
        emitter = Emitter()
        try:
            if self.status == Status.NOT_STARTED:
                self._state = machine.initial_state()
                self.status = Status.RUNNING
                logger.debug("State machine '%s' started", machine.name)
            if event.kind == NEXT:
                self._state = machine.transition(self._state, event.value, emitter)
            elif machine.completion(self._state, emitter) and not emitter.terminated:
                emitter.complete()
        except Exception as e:
            emitter._drain()
            logger.debug("State machine '%s' raised %r", machine.name, e)
            return self._terminate(Status.ERRORED, [Notification.on_error(_forwardable(e))])

        notifications = emitter._drain()
        if emitter.terminated:
            last = notifications[-1]
            status = Status.ERRORED if last.kind == ERROR else Status.COMPLETED
            return self._terminate(status, notifications)
        if event.kind == COMPLETED:
            return self._terminate(Status.COMPLETED, notifications)
        return Record(self._state, notifications, False)

    def _terminate(self, status, notifications):
        self.status = status
        self._state = None
        logger.debug("State machine '%s' %s", self._machine.name, status)
        return Record(None, notifications, True)


def _require_callable(name, func):
    if func is None:
        raise ConfigurationError(f"{name} is required")
    if not callable(func):
        raise ConfigurationError(f"{name} must be callable, got {type(func).__name__}")


class StateMachine:
    """Stream operator driven by a user-supplied state machine.

    ``initial_state()`` creates the state for each traversal,
    ``transition(state, value, emitter)`` returns the next state and may emit
    any number of values, and ``completion(state, emitter)`` runs once at end
    of stream and returns whether to append an explicit completion marker.
    """

    def __init__(self, initial_state, transition, completion, name=None):
        _require_callable("initial_state", initial_state)
        _require_callable("transition", transition)
        _require_callable("completion", completion)
        self.initial_state = initial_state
        self.transition = transition
        self.completion = completion
        self.name = name or getattr(transition, "__name__", "state_machine")

    def __repr__(self):
        return f"StateMachine(name={self.name!r})"

    def subscribe(self):
        return Subscription(self)

    def records(self, source, keep_empty=False):
        subscription = self.subscribe()
        events = materialize(source)
        try:
            for event in events:
                record = subscription.step(event)
                if record.notifications or keep_empty:
                    yield record
                if record.terminated:
                    return
        finally:
            events.close()

    def notifications(self, source):
        records = self.records(source)
        try:
            for record in records:
                for n in record.notifications:
                    yield n
                    if n.kind != NEXT:
                        return
            # natural end of stream terminates whatever completion() returned
            yield Notification.on_completed()
        finally:
            records.close()

    def transform(self, source):
        return dematerialize(self.notifications(source))

    __call__ = transform

    async def arecords(self, source, keep_empty=False):
        subscription = self.subscribe()
        events = amaterialize(source)
        try:
            async for event in events:
                record = subscription.step(event)
                if record.notifications or keep_empty:
                    yield record
                if record.terminated:
                    return
        finally:
            await events.aclose()

    async def anotifications(self, source):
        records = self.arecords(source)
        try:
            async for record in records:
                for n in record.notifications:
                    yield n
                    if n.kind != NEXT:
                        return
            yield Notification.on_completed()
        finally:
            await records.aclose()

    def atransform(self, source):
        return adematerialize(self.anotifications(source))


def state_machine(initial_state, transition, completion, name=None):
    return StateMachine(initial_state, transition, completion, name=name)
