"""
Prediction legs codec.

Mint and order payloads carry their legs as ABI ``tuple(bytes32,bool)[]``.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from eth_abi import decode, encode
from web3 import Web3

LEGS_ABI_TYPE = "(bytes32,bool)[]"


@dataclass(frozen=True)
class Leg:
    """One (condition id, outcome) bet."""

    condition_id: str
    outcome_yes: bool

    def to_dict(self) -> dict:
        return {"condition_id": self.condition_id, "outcome_yes": self.outcome_yes}


def decode_legs(encoded: bytes) -> tuple[Leg, ...]:
    """
    Decode a variable-length leg list.

    Args:
        encoded: ABI-encoded ``tuple(bytes32,bool)[]``

    Returns:
        Legs in encoded order; empty payload gives no legs
    """
    if not encoded:
        return ()
    (outcomes,) = decode([LEGS_ABI_TYPE], encoded)
    return tuple(
        Leg(condition_id=Web3.to_hex(condition_id), outcome_yes=bool(prediction))
        for condition_id, prediction in outcomes
    )


def encode_legs(legs: Iterable[Leg]) -> bytes:
    """Inverse of ``decode_legs``."""
    return encode(
        [LEGS_ABI_TYPE],
        [[(bytes.fromhex(leg.condition_id[2:]), leg.outcome_yes) for leg in legs]],
    )


def unique_legs(legs: Iterable[Leg]) -> list[Leg]:
    """Legs with repeated condition ids collapsed to the first occurrence."""
    seen: set[str] = set()
    result = []
    for leg in legs:
        if leg.condition_id in seen:
            continue
        seen.add(leg.condition_id)
        result.append(leg)
    return result
