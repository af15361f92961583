"""Error taxonomy of the CALC/1.0 protocol."""
from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable error codes sent in the ``Error-Code`` header."""

    BAD_FORMAT = "BAD_FORMAT"
    TOO_MANY_ARGS = "TOO_MANY_ARGS"
    INVALID_NUMBER = "INVALID_NUMBER"
    UNKNOWN_OP = "UNKNOWN_OP"
    DIV_BY_ZERO = "DIV_BY_ZERO"
    SERVER_ERROR = "SERVER_ERROR"


class CalcError(ValueError):
    """
    Base class for every error that is answered with an ERROR response.

    Each subclass fixes the status code and reason phrase; instances carry the machine
    code and the short human message.

    :param ErrorCode code: Machine-readable error code
    :param str message: Short human readable message
    """

    status: int = 500
    reason: str = "ServerError"

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code.value}, {self.message!r})"


class ParseError(CalcError):
    """The request line could not be turned into an operation and two operands."""

    status = 400
    reason = "BadRequest"


class UnknownOperationError(CalcError):
    status = 404
    reason = "UnknownOperation"

    def __init__(self, message: str = "unsupported operation") -> None:
        super().__init__(ErrorCode.UNKNOWN_OP, message)


class InvalidOperationError(CalcError):
    """The request is well-formed but cannot be computed (division by zero)."""

    status = 422
    reason = "InvalidOperation"


class ServerError(CalcError):
    status = 500
    reason = "ServerError"

    def __init__(self, message: str = "server error") -> None:
        super().__init__(ErrorCode.SERVER_ERROR, message)


class ProtocolError(ValueError):
    """A response received by the client does not follow CALC/1.0 framing."""
