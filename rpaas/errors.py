"""Exception hierarchy for the rpaas control plane."""


class RpaasError(Exception):
    """Base exception for rpaas errors."""

    def __init__(self, msg: str = ""):
        self.msg = msg
        super().__init__(msg)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other) and self.msg == other.msg

    def __hash__(self) -> int:
        return hash((type(self), self.msg))

    def __str__(self) -> str:
        return self.msg


class NotFoundError(RpaasError):
    """Referenced instance, block, route, file or plan does not exist."""


class ResourceNotFoundError(NotFoundError):
    """A cluster object is missing from the object store."""

    def __init__(self, kind: str, name: str):
        self.kind = kind
        self.name = name
        super().__init__(f'{kind} "{name}" not found')


class ValidationError(RpaasError):
    """Malformed or contradictory input."""


class ConflictError(RpaasError):
    """Write would duplicate a unique key, be a no-op, or is ambiguous."""


class ConfigError(RpaasError):
    """Configuration error."""


class DeadlineExceededError(RpaasError):
    """An operation ran past the time it was allowed."""


def is_not_found(err: BaseException) -> bool:
    return isinstance(err, NotFoundError)


def is_validation(err: BaseException) -> bool:
    return isinstance(err, ValidationError)


def is_conflict(err: BaseException) -> bool:
    return isinstance(err, ConflictError)


def is_deadline_exceeded(err: BaseException) -> bool:
    return isinstance(err, DeadlineExceededError)
