"""Parse CALC/1.0 request lines."""
from typing import List, Optional

from calc_client_server.common.errors import ErrorCode, ParseError
from calc_client_server.common.operations import Operation, ParsedRequest


class ExpressionParser:
    """
    Parse a single request line into an operation and two operands.

    Two shapes are accepted, tried in this order:
        1. Prefix: ``OP A B`` (e.g. ``ADD 10 20``)
        2. Infix: ``A OP B`` (e.g. ``10 + 20``)

    A line whose first token is an operation is always treated as prefix, so
    ``ADD ADD 2`` fails on the operand ``ADD`` instead of being retried as infix.
    """

    @staticmethod
    def tokenize(line: str) -> List[str]:
        """
        Split a request line into whitespace-separated tokens.

        :param str line: Raw request line

        :return: List of tokens
        :rtype: List[str]
        """
        return line.split()

    @staticmethod
    def _to_number(token: str) -> Optional[float]:
        """
        Convert a token to a float.

        :param str token: Token string

        :return: Parsed value, or None if the token is not numeric
        :rtype: Optional[float]
        """
        # Only plain ASCII literals, no digit separators or non-Latin digits
        if not token.isascii() or "_" in token:
            return None
        try:
            return float(token)
        except ValueError:
            return None

    @staticmethod
    def parse(line: str) -> ParsedRequest:
        """
        Parse a request line.

        :param str line: Raw request line, without its line terminator

        :return: Operation with both operands
        :rtype: ParsedRequest
        :raises ParseError: If the token count is wrong, an operand is not numeric or the operator is unknown
        """
        tokens: List[str] = ExpressionParser.tokenize(line)
        if len(tokens) < 3:
            raise ParseError(ErrorCode.BAD_FORMAT, "bad format")
        if len(tokens) > 3:
            raise ParseError(ErrorCode.TOO_MANY_ARGS, "too many arguments")

        first, second, third = tokens

        # Prefix form: OP A B
        operation = Operation.from_token(first)
        if operation is not None:
            a = ExpressionParser._to_number(second)
            b = ExpressionParser._to_number(third)
            if a is None or b is None:
                raise ParseError(ErrorCode.INVALID_NUMBER, "invalid number")
            return ParsedRequest(operation=operation, a=a, b=b)

        # Infix form: A OP B, operands are checked before the operator
        a = ExpressionParser._to_number(first)
        b = ExpressionParser._to_number(third)
        if a is None or b is None:
            raise ParseError(ErrorCode.INVALID_NUMBER, "invalid number")
        operation = Operation.from_token(second)
        if operation is None:
            raise ParseError(ErrorCode.UNKNOWN_OP, "unsupported operation")
        return ParsedRequest(operation=operation, a=a, b=b)
