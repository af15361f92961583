"""CALC/1.0 response model, serialization and client-side parsing."""
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional, TextIO, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from calc_client_server.common.errors import CalcError, ProtocolError

PROTOCOL_VERSION = "CALC/1.0"


class ResponseType(str, Enum):
    ANSWER = "ANSWER"
    ERROR = "ERROR"


# Header name -> model field, in serialization order
HEADERS: Tuple[Tuple[str, str], ...] = (
    ("Id", "id"),
    ("Type", "type"),
    ("Value", "value"),
    ("Error-Code", "error_code"),
    ("Error-Message", "error_message"),
)


class Response(BaseModel):
    """
    One reply to one request line.

    Exactly one of ``value`` (ANSWER) or ``error_code`` + ``error_message`` (ERROR) is set,
    matching ``type``.
    """

    model_config = ConfigDict(frozen=True)

    status: int = Field(..., ge=100, le=599, description="Numeric status code")
    reason: str = Field(..., min_length=1, description="Short reason phrase")
    id: Optional[str] = Field(default=None, description="Per-request correlation id")
    type: ResponseType = Field(..., description="ANSWER or ERROR")
    value: Optional[str] = Field(default=None, description="Rendered result (ANSWER only)")
    error_code: Optional[str] = Field(default=None, description="Machine error code (ERROR only)")
    error_message: Optional[str] = Field(default=None, description="Human error message (ERROR only)")

    @model_validator(mode="after")
    def payload_matches_type(self) -> "Response":
        """Ensure the populated fields match the response type."""
        has_error = self.error_code is not None and self.error_message is not None
        no_error = self.error_code is None and self.error_message is None
        if self.type is ResponseType.ANSWER and (self.value is None or not no_error):
            raise ValueError("ANSWER response needs a value and no error fields")
        if self.type is ResponseType.ERROR and (self.value is not None or not has_error):
            raise ValueError("ERROR response needs an error code and message and no value")
        return self

    @classmethod
    def ok(cls, id: str, value: str) -> "Response":
        return cls(status=200, reason="OK", id=id, type=ResponseType.ANSWER, value=value)

    @classmethod
    def bad(cls, id: str, status: int, reason: str, code: str, message: str) -> "Response":
        return cls(
            status=status,
            reason=reason,
            id=id,
            type=ResponseType.ERROR,
            error_code=code,
            error_message=message,
        )

    @classmethod
    def from_error(cls, id: str, error: CalcError) -> "Response":
        """
        Build an ERROR response from a protocol error.

        :param str id: Correlation id of the request
        :param CalcError error: Error raised while parsing or evaluating

        :return: ERROR response carrying the error's status, reason, code and message
        :rtype: Response
        """
        return cls.bad(id, error.status, error.reason, error.code.value, error.message)

    @property
    def headers(self) -> Dict[str, str]:
        """Non-null headers in serialization order."""
        headers: Dict[str, str] = {}
        for name, field in HEADERS:
            value = getattr(self, field)
            if value is not None:
                headers[name] = value.value if isinstance(value, Enum) else value
        return headers

    def serialize(self) -> str:
        """
        Render the response as wire text.

        The status line is followed by one ``Name: value`` line per non-null header and a
        blank line that terminates the message.

        :return: Serialized response
        :rtype: str
        """
        lines = [f"{PROTOCOL_VERSION} {self.status} {self.reason}"]
        lines.extend(f"{name}: {value}" for name, value in self.headers.items())
        return "\n".join(lines) + "\n\n"

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "Response":
        """
        Decode a response the way a client reads it off the wire.

        Reads the status line, then header lines until a blank line or the end of input.
        Lines without a colon are ignored.

        :param Iterable[str] lines: Response lines, with or without line terminators

        :return: Decoded response
        :rtype: Response
        :raises ProtocolError: If the status line or headers are malformed
        """
        iterator: Iterator[str] = iter(lines)
        start = next(iterator, None)
        if start is None:
            raise ProtocolError("Empty response")

        parts = start.split(None, 2)
        if len(parts) < 2 or parts[0] != PROTOCOL_VERSION or not parts[1].isdigit():
            raise ProtocolError(f"Malformed status line: {start.rstrip()!r}")
        status = int(parts[1])
        reason = parts[2].strip() if len(parts) == 3 else ""

        headers: Dict[str, str] = {}
        for line in iterator:
            if not line.strip():
                break
            key, sep, value = line.partition(":")
            if sep and key.strip():
                headers[key.strip()] = value.strip()

        fields = {field: headers[name] for name, field in HEADERS if name in headers}
        try:
            return cls(status=status, reason=reason, **fields)
        except ValueError as exc:
            raise ProtocolError(f"Invalid response headers: {exc}") from exc


def read_response(stream: TextIO) -> Optional[Response]:
    """
    Read one response from a text stream.

    :param TextIO stream: Readable text stream, typically ``socket.makefile("r")``

    :return: Decoded response, or None if the stream ended before a status line
    :rtype: Optional[Response]
    :raises ProtocolError: If the response is malformed
    """
    start = stream.readline()
    if not start:
        return None

    # A malformed message is still consumed up to its blank terminator
    lines = [start]
    while True:
        line = stream.readline()
        # End of stream or blank terminator
        if not line.strip():
            break
        lines.append(line)
    return Response.parse(lines)
