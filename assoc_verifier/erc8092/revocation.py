"""
Off-chain revocation authorization.

A party revokes by personal-signing (EIP-191) the literal message

    Revoke association <id> at timestamp <unix-seconds>

The persistence layer accepts the request only if the signature recovers to
the claimed signer, the signer is the initiator or approver, and the message
matches exactly.
"""

import logging
from typing import Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount

from .exceptions import RevocationUnauthorizedError
from .interop_address import same_address
from .records import check_uint40

log = logging.getLogger(__name__)

AssociationId = Union[int, str]


def revocation_message(association_id: AssociationId, revoked_at: int) -> str:
    return f"Revoke association {association_id} at timestamp {revoked_at}"


def sign_revocation(account: LocalAccount, association_id: AssociationId, revoked_at: int) -> bytes:
    """Personal-sign the revocation message with a local key."""
    message = encode_defunct(text=revocation_message(association_id, revoked_at))
    return bytes(account.sign_message(message).signature)


def authorize_revocation(
    association_id: AssociationId,
    revoked_at: int,
    message: str,
    signature: bytes,
    signer: str,
    initiator_address: str,
    approver_address: str,
) -> None:
    """Check a revocation request; return normally when it is authorized.

    Raises:
        RecordRangeError: revoked_at outside uint40.
        RevocationUnauthorizedError: Bad signature, signer not a party, or
            message does not match the expected text.
    """
    check_uint40("revokedAt", revoked_at)

    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        log.info(f"Revocation signature not recoverable: {e}")
        raise RevocationUnauthorizedError.bad_signature() from e
    if not same_address(recovered, signer):
        raise RevocationUnauthorizedError.bad_signature()

    if not (same_address(signer, initiator_address) or same_address(signer, approver_address)):
        raise RevocationUnauthorizedError.not_a_party(signer)

    expected = revocation_message(association_id, revoked_at)
    if message != expected:
        raise RevocationUnauthorizedError.message_mismatch(expected)
