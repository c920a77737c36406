import logging

logger = logging.getLogger(__name__)

NEXT = "next"
ERROR = "error"
COMPLETED = "completed"


class Notification:
    """A stream event reified as a value: a next value, an error or completion."""

    __slots__ = ("kind", "value", "exception")

    def __init__(self, kind, value=None, exception=None):
        if kind not in (NEXT, ERROR, COMPLETED):
            raise ValueError(f"unknown notification kind: {kind!r}")
        self.kind = kind
        self.value = value
        self.exception = exception

    @classmethod
    def on_next(cls, value):
        return cls(NEXT, value=value)

    @classmethod
    def on_error(cls, exception):
        return cls(ERROR, exception=exception)

    @classmethod
    def on_completed(cls):
        return _COMPLETED

    @property
    def is_next(self):
        return self.kind == NEXT

    @property
    def is_error(self):
        return self.kind == ERROR

    @property
    def is_completed(self):
        return self.kind == COMPLETED

    @property
    def is_terminal(self):
        return self.kind != NEXT

    def accept(self, on_next, on_error=None, on_completed=None):
        """Dispatch to the callback matching this notification's kind."""
        if self.kind == NEXT:
            return on_next(self.value)
        if self.kind == ERROR:
            if on_error is None:
                raise self.exception
            return on_error(self.exception)
        if on_completed is not None:
            return on_completed()
        return None

    def __eq__(self, other):
        if not isinstance(other, Notification):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.value == other.value
            and self.exception is other.exception
        )

    def __hash__(self):
        return hash((self.kind, id(self.exception)))

    def __repr__(self):
        if self.kind == NEXT:
            return f"Notification.on_next({self.value!r})"
        if self.kind == ERROR:
            return f"Notification.on_error({self.exception!r})"
        return "Notification.on_completed()"


_COMPLETED = Notification(COMPLETED)


def _close(iterator):
    close = getattr(iterator, "close", None)
    if close is not None:
        close()


async def _aclose(iterator):
    aclose = getattr(iterator, "aclose", None)
    if aclose is not None:
        await aclose()


def materialize(iterable):
    """Turn an iterable into notifications, ending in exactly one terminal.

    An exception raised while pulling from the iterable is reported as the
    error notification. Closing the generator closes the upstream iterator.
    """
    iterator = iter(iterable)
    try:
        while True:
            try:
                value = next(iterator)
            except StopIteration:
                yield _COMPLETED
                return
            except Exception as e:
                logger.debug("Upstream raised %r", e)
                yield Notification.on_error(e)
                return
            yield Notification.on_next(value)
    finally:
        _close(iterator)


def dematerialize(notifications):
    """Turn notifications back into values.

    Stops at the first completion and raises the carried exception at the
    first error. Anything after the terminal notification is never pulled.
    """
    iterator = iter(notifications)
    try:
        for n in iterator:
            if n.kind == NEXT:
                yield n.value
            elif n.kind == COMPLETED:
                return
            else:
                raise n.exception
    finally:
        _close(iterator)


async def amaterialize(aiterable):
    """Async counterpart of :func:`materialize`."""
    iterator = aiterable.__aiter__()
    try:
        while True:
            try:
                value = await iterator.__anext__()
            except StopAsyncIteration:
                yield _COMPLETED
                return
            except Exception as e:
                logger.debug("Upstream raised %r", e)
                yield Notification.on_error(e)
                return
            yield Notification.on_next(value)
    finally:
        await _aclose(iterator)


async def adematerialize(notifications):
    """Async counterpart of :func:`dematerialize`."""
    iterator = notifications.__aiter__()
    try:
        async for n in iterator:
            if n.kind == NEXT:
                yield n.value
            elif n.kind == COMPLETED:
                return
            else:
                raise n.exception
    finally:
        await _aclose(iterator)
