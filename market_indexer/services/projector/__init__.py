"""
Domain projection.

DomainProjector covers positions, limit orders and conditions;
AttestationProjector covers the attestation registry.
"""

from market_indexer.services.projector.attestation import (
    AttestationProjector,
    decode_prediction_data,
)
from market_indexer.services.projector.core import DomainProjector, ProjectorBase

__all__ = [
    "AttestationProjector",
    "DomainProjector",
    "ProjectorBase",
    "decode_prediction_data",
]
