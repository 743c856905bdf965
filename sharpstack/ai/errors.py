"""Oracle failure types. Both are treated as transient by callers."""


class OracleError(Exception):
    """Base class for oracle failures."""


class OracleUnavailableError(OracleError):
    """The oracle could not be reached, timed out or rate limited us."""


class OracleResponseError(OracleError):
    """The oracle answered with something that is not the expected shape."""
