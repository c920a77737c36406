import logging

from .errors import StreamError
from .machine import StateMachine
from .notification import NEXT, Notification

logger = logging.getLogger(__name__)


def _build_func(func, args, kwargs):
    # args is a tuple or None, kwargs is a dict or None
    if not args and not kwargs:
        return func

    if kwargs:
        if args:
            def wrapper(x):
                return func(x, *args, **kwargs)
            return wrapper
        else:
            def wrapper(x):
                return func(x, **kwargs)
            return wrapper
    else:
        # only args
        def wrapper(x):
            return func(x, *args)
        return wrapper


class Stream:
    """Push-driven stream node.

    Values, errors and completion are pushed in with emit(), error() and
    complete() and flow synchronously to every downstream node. A node that
    has seen a terminal event ignores further input and detaches itself from
    its upstream.
    """

    def __init__(self, upstream=None, name=None):
        self.name = name or ("source" if upstream is None else type(self).__name__.lstrip("_").lower())
        self.upstream = upstream
        self.downstreams = []
        self.terminated = False
        if upstream is not None:
            upstream.downstreams.append(self)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name!r}>"

    def emit(self, x):
        self.update(Notification.on_next(x))

    def emit_batch(self, items):
        for x in items:
            if self.terminated:
                break
            self.update(Notification.on_next(x))

    def error(self, exception):
        self.update(Notification.on_error(exception))

    def complete(self):
        self.update(Notification.on_completed())

    def update(self, notification):
        if self.terminated:
            logger.debug("Node '%s' is terminated, dropping %r", self.name, notification)
            return
        self._process(notification)

    def _process(self, notification):
        self._propagate([notification])

    def _propagate(self, notifications):
        for n in notifications:
            if n.kind != NEXT:
                self._terminate()
            for d in list(self.downstreams):
                d.update(n)
            if n.kind != NEXT:
                break

    def _terminate(self):
        if self.terminated:
            return
        self.terminated = True
        if self.upstream is not None:
            self.upstream.disconnect(self)

    def disconnect(self, downstream):
        """Detach downstream; a non-source node left with no listeners cancels itself."""
        if downstream in self.downstreams:
            self.downstreams.remove(downstream)
        if not self.downstreams and self.upstream is not None and not self.terminated:
            logger.debug("Node '%s' has no downstreams left, cancelling", self.name)
            self._terminate()

    def map(self, func, *args, **kwargs):
        stream_name = kwargs.pop("stream_name", None)
        return _Map(self, _build_func(func, args, kwargs), name=stream_name)

    def filter(self, predicate, *args, **kwargs):
        stream_name = kwargs.pop("stream_name", None)
        return _Filter(self, _build_func(predicate, args, kwargs), name=stream_name)

    def sink(self, func, *args, on_error=None, on_completed=None, **kwargs):
        stream_name = kwargs.pop("stream_name", None)
        return _Sink(
            self,
            _build_func(func, args, kwargs),
            on_error=on_error,
            on_completed=on_completed,
            name=stream_name,
        )

    def transform(self, machine, stream_name=None):
        return _StateMachineNode(self, machine, name=stream_name or machine.name)

    def state_machine(self, initial_state, transition, completion, stream_name=None):
        machine = StateMachine(initial_state, transition, completion, name=stream_name)
        return self.transform(machine, stream_name=stream_name)


class _Map(Stream):
    def __init__(self, upstream, func, name=None):
        self.func = func
        super().__init__(upstream, name=name)

    def _process(self, notification):
        if notification.kind != NEXT:
            self._propagate([notification])
            return
        try:
            result = self.func(notification.value)
        except Exception as e:
            logger.debug("Node '%s' raised %r", self.name, e)
            self._propagate([Notification.on_error(e)])
            return
        self._propagate([Notification.on_next(result)])


class _Filter(Stream):
    def __init__(self, upstream, predicate, name=None):
        self.predicate = predicate
        super().__init__(upstream, name=name)

    def _process(self, notification):
        if notification.kind != NEXT:
            self._propagate([notification])
            return
        try:
            keep = self.predicate(notification.value)
        except Exception as e:
            logger.debug("Node '%s' raised %r", self.name, e)
            self._propagate([Notification.on_error(e)])
            return
        if keep:
            self._propagate([notification])


class _Sink(Stream):
    def __init__(self, upstream, func, on_error=None, on_completed=None, name=None):
        self.func = func
        self.on_error = on_error
        self.on_completed = on_completed
        super().__init__(upstream, name=name)

    def _process(self, notification):
        if notification.kind == NEXT:
            try:
                self.func(notification.value)
            except Exception as e:
                raise StreamError(self.name) from e
            return
        self._terminate()
        if notification.is_error:
            if self.on_error is None:
                raise StreamError(self.name) from notification.exception
            self.on_error(notification.exception)
        elif self.on_completed is not None:
            self.on_completed()


class _StateMachineNode(Stream):
    def __init__(self, upstream, machine, name=None):
        self.machine = machine
        self.subscription = machine.subscribe()
        super().__init__(upstream, name=name)

    def _process(self, notification):
        record = self.subscription.step(notification)
        notifications = record.notifications
        if record.terminated:
            # a downstream raising on an earlier value must not leave us attached
            self._terminate()
            if not (notifications and notifications[-1].is_terminal):
                notifications = notifications + [Notification.on_completed()]
        if notifications:
            self._propagate(notifications)
