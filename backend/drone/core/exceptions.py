"""The exceptions raised by the drone agent."""


class DroneException(Exception):
    """Base exception class for the drone agent."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ConnectionFailedError(DroneException):
    """The connection to the coordinating server could not be established."""

    pass


class MalformedMessageError(DroneException):
    """An inbound frame is not a flat JSON object."""

    pass


class AgentStateError(DroneException):
    """An agent callback was invoked in a state that does not allow it."""

    pass
