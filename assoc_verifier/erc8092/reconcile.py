"""
Reconciliation of on-chain and off-chain association lists.

Each source is validated independently, then the two lists are merged by
account pair. The on-chain copy of a pair always wins; records are kept
whole, never merged field by field.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from eth_utils import encode_hex

from .api_models import ValidationVerdict
from .interop_address import extract_address
from .records import SignedAssociationRecord
from .signatures.chain import ChainQuery
from .typed_data import hash_record
from .verify import current_time, validate

log = logging.getLogger(__name__)


class Source(str, Enum):
    ONCHAIN = "onchain"
    OFFCHAIN = "offchain"


def pair_key(a: str, b: str) -> str:
    """Order-independent key for an account pair."""
    return "-".join(sorted((a.lower(), b.lower())))


@dataclass(frozen=True)
class ReconciledAssociation:
    """One validated association and where it came from."""
    sar: SignedAssociationRecord
    verdict: ValidationVerdict
    source: Source
    initiator_address: str
    approver_address: str

    @property
    def association_id(self) -> str:
        return encode_hex(hash_record(self.sar.record))

    @property
    def key(self) -> str:
        return pair_key(self.initiator_address, self.approver_address)


async def _validate_one(
    sar: SignedAssociationRecord,
    source: Source,
    chain: Optional[ChainQuery],
    now: int,
) -> ReconciledAssociation:
    initiator = extract_address(sar.record.initiator)
    approver = extract_address(sar.record.approver)
    verdict = await validate(sar.record, sar, initiator, approver, chain=chain, now=now)
    return ReconciledAssociation(
        sar=sar,
        verdict=verdict,
        source=source,
        initiator_address=initiator,
        approver_address=approver,
    )


async def validate_all(
    entries: Iterable[SignedAssociationRecord],
    source: Source,
    chain: Optional[ChainQuery] = None,
    now: Optional[int] = None,
) -> List[ReconciledAssociation]:
    """Validate a batch concurrently.

    All records share one "now". Results keep input order. Every record is
    validated even when another one fails.

    Raises:
        RecordRangeError: Some record is structurally invalid. The first such
            record in input order is reported.
    """
    if now is None:
        now = current_time()
    results = await asyncio.gather(
        *(_validate_one(sar, source, chain, now) for sar in entries),
        return_exceptions=True,
    )
    failures = [r for r in results if isinstance(r, BaseException)]
    if failures:
        log.warning(
            f"{len(failures)} of {len(results)} {source.value} records failed validation",
            extra={"source": source.value},
        )
        raise failures[0]
    return list(results)


def reconcile(
    onchain: Sequence[ReconciledAssociation],
    offchain: Sequence[ReconciledAssociation],
) -> List[ReconciledAssociation]:
    """Deduplicate by account pair, preferring on-chain entries.

    Within one source the first entry for a pair wins. Output lists the
    surviving on-chain entries first, then off-chain entries for pairs with
    no on-chain copy.
    """
    merged = {}
    for entry in onchain:
        merged.setdefault(entry.key, entry)
    onchain_keys = set(merged)

    for entry in offchain:
        if entry.key in onchain_keys:
            log.debug(
                f"Off-chain association shadowed by on-chain copy: {entry.key}",
                extra={"association_id": entry.association_id, "source": entry.source.value},
            )
            continue
        merged.setdefault(entry.key, entry)

    return list(merged.values())
