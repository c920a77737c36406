class StateMachineError(Exception):
    """Base class for errors raised by statestream itself."""


class ConfigurationError(StateMachineError, TypeError):
    """A required callable was missing or not callable at construction time."""


class EmitterClosedError(StateMachineError, RuntimeError):
    """An emitter was used after the step it belongs to had returned."""


class SubscriptionTerminatedError(StateMachineError, RuntimeError):
    """A terminated subscription was asked to process another event."""


class StreamError(StateMachineError, RuntimeError):
    """An error reached a sink that has no error handler."""

    def __init__(self, node_name):
        super().__init__(f"Stream operation failed at node '{node_name}'")
        self.node_name = node_name
