class JsonSentinelError(Exception):
    """Base class for all errors raised by json-sentinel."""


class ParseError(JsonSentinelError, ValueError):
    def __init__(self, message, line=None, column=None):
        super().__init__(message)
        self.line = line
        self.column = column


class SchemaDefinitionError(JsonSentinelError, ValueError):
    """The supplied JSON Schema document is itself invalid."""


class QueryError(JsonSentinelError, ValueError):
    """A JSONPath query could not be evaluated."""


class ConversionError(JsonSentinelError, ValueError):
    pass


class ConversionShapeError(ConversionError):
    """The value cannot be represented in the requested format."""

    def __init__(self, message, required_shape=None):
        super().__init__(message)
        self.required_shape = required_shape


class UnsupportedFormatError(ConversionError):
    pass


class CollaboratorUnavailable(JsonSentinelError):
    """An external service (remote repair, schema store, ...) failed."""


class RepairUnavailable(CollaboratorUnavailable):
    pass


class RateLimitExceeded(RepairUnavailable):
    def __init__(self, message, retry_after=None):
        super().__init__(message)
        self.retry_after = retry_after
