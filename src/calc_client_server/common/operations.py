"""Arithmetic operations and the parsed request model."""
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Operation(str, Enum):
    """The closed set of operations the server evaluates."""

    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"

    @classmethod
    def from_token(cls, token: str) -> Optional["Operation"]:
        """
        Resolve a request token to an operation, ignoring case.

        :param str token: Mnemonic (``ADD``) or symbol (``+``)

        :return: Matching operation, or None if the token is not an operation
        :rtype: Optional[Operation]
        """
        return OPERATION_TOKENS.get(token.upper())


# Mapping of accepted tokens (upper-cased) to operations
OPERATION_TOKENS: Dict[str, Operation] = {
    "ADD": Operation.ADD,
    "+": Operation.ADD,
    "SUB": Operation.SUB,
    "-": Operation.SUB,
    "MUL": Operation.MUL,
    "*": Operation.MUL,
    "DIV": Operation.DIV,
    "/": Operation.DIV,
}


class ParsedRequest(BaseModel):
    """One successfully parsed request line: an operation and its two operands."""

    model_config = ConfigDict(frozen=True)

    operation: Operation = Field(..., description="Operation to apply")
    a: float = Field(..., description="Left operand")
    b: float = Field(..., description="Right operand")
