"""Chain access exceptions.

Verifiers catch these and report the signature as invalid; they only
reach callers that use a ChainQuery directly (e.g. the on-chain store
reader).
"""

from typing import Optional

from assoc_verifier.erc8092.api_models import ErrorCode
from assoc_verifier.erc8092.exceptions import AssociationError


class ChainQueryError(AssociationError):
    """A chain query failed (transport error, RPC error, or revert).

    Maps to CHAIN_QUERY_FAILED (recoverable).
    """

    def __init__(self, message: str = "Chain query failed", revert_data: Optional[bytes] = None):
        self.revert_data = revert_data
        super().__init__(ErrorCode.CHAIN_QUERY_FAILED, message)
