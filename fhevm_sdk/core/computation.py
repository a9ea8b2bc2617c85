"""
Entry point for homomorphic computation requests.

Computation on ciphertexts runs inside FHEVM contracts. The client validates
the request so callers get precise errors, then reports the path as
unsupported.
"""

import logging
from typing import Any, Sequence

from ..errors import InvalidConfig, UnsupportedOperation
from ..session import ClientSession, require_ready
from ..types.fhe import EncryptedHandle, FheOperation, FheType
from ..validation import check_operands, parse_handles, raise_for


logger = logging.getLogger(__name__)


def parse_operation(operation: Any) -> FheOperation:
    try:
        return FheOperation(operation)
    except ValueError as e:
        supported = ", ".join(op.value for op in FheOperation)
        raise InvalidConfig(
            f"Invalid operation {operation!r}. Must be one of: {supported}"
        ) from e


async def compute(
    session: ClientSession,
    operation: Any,
    operands: Sequence[EncryptedHandle],
    result_type: Any = FheType.UINT32,
) -> int:
    """
    Validate a computation request.

    Raises:
        ClientNotInitialized: session not ready
        InvalidConfig: unknown operation or result type, wrong arity,
            malformed handles
        UnsupportedOperation: always, once the request is well formed
    """
    require_ready(session)
    op = parse_operation(operation)

    try:
        FheType(result_type)
    except ValueError as e:
        raise InvalidConfig(f"Unknown result type: {result_type!r}") from e

    raise_for(check_operands(operands, op.min_operands))
    parsed = parse_handles(operands)

    logger.info(f"Rejected client-side {op.value} over {len(parsed)} operands")
    raise UnsupportedOperation(
        f"FHE computation '{op.value}' must be performed by a contract",
        details={"operation": op.value, "operands": [str(h) for h in parsed]},
    )
