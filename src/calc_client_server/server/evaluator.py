"""Evaluate parsed requests and render their results."""
import operator
import uuid
from typing import Callable, Dict

from calc_client_server.common.errors import (
    CalcError,
    ErrorCode,
    InvalidOperationError,
    ServerError,
    UnknownOperationError,
)
from calc_client_server.common.logger import logger
from calc_client_server.common.operations import Operation, ParsedRequest
from calc_client_server.common.parser import ExpressionParser
from calc_client_server.common.response import Response

# Type alias for operator functions (taking two floats, returning a float)
OperatorFn = Callable[[float, float], float]

OPERATORS: Dict[Operation, OperatorFn] = {
    Operation.ADD: operator.add,
    Operation.SUB: operator.sub,
    Operation.MUL: operator.mul,
    Operation.DIV: operator.truediv,
}


class Evaluator:
    """
    Compute the result of a parsed request.

    Division checks its divisor with exact equality, so both ``0.0`` and ``-0.0`` are rejected.
    """

    @staticmethod
    def evaluate(request: ParsedRequest) -> float:
        """
        Apply the request's operation to its operands.

        :param ParsedRequest request: Parsed operation and operands

        :return: Computed result
        :rtype: float
        :raises InvalidOperationError: On division by zero
        :raises UnknownOperationError: If no implementation exists for the operation
        """
        fn = OPERATORS.get(request.operation)
        if fn is None:
            raise UnknownOperationError()
        if request.operation is Operation.DIV and request.b == 0.0:
            raise InvalidOperationError(ErrorCode.DIV_BY_ZERO, "divided by zero")
        return fn(request.a, request.b)

    @staticmethod
    def render(value: float) -> str:
        """
        Render a result for the ``Value`` header.

        Whole numbers are rendered without a decimal point (``30``, not ``30.0``); everything
        else uses the shortest representation that round-trips (``3.5``, ``inf``).

        :param float value: Computed result

        :return: Rendered value
        :rtype: str
        """
        if value.is_integer():
            return str(int(value))
        return repr(value)


def handle_request(line: str) -> Response:
    """
    Turn one request line into its response.

    Never raises: parse errors, evaluation errors and unexpected failures all become ERROR
    responses.

    :param str line: Request line without its line terminator

    :return: Response carrying a fresh correlation id
    :rtype: Response
    """
    request_id = str(uuid.uuid4())
    try:
        request = ExpressionParser.parse(line)
        value = Evaluator.render(Evaluator.evaluate(request))
    except CalcError as exc:
        logger.debug(f"Request {request_id} {line!r} rejected: {exc.code.value}")
        return Response.from_error(request_id, exc)
    except Exception as exc:
        logger.exception(f"Request {request_id} {line!r} failed: {exc}")
        return Response.from_error(request_id, ServerError())

    logger.debug(f"Request {request_id} {line!r} = {value}")
    return Response.ok(request_id, value)
