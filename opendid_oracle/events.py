"""Events emitted by oracle instructions."""

from __future__ import annotations

from dataclasses import dataclass

from .runtime import Pubkey
from .state import ClaimFee, MessagingFee


def _freeze(instance: object, *names: str) -> None:
    for name in names:
        object.__setattr__(instance, name, tuple(getattr(instance, name)))


@dataclass(frozen=True)
class AdminTransferred:
    previous_admin: Pubkey
    new_admin: Pubkey


@dataclass(frozen=True)
class FeeSetterChanged:
    setter: Pubkey
    authorized: bool


@dataclass(frozen=True)
class OperatorChanged:
    operator: Pubkey
    authorized: bool


@dataclass(frozen=True)
class ExpirytimeChanged:
    before: int
    current: int


@dataclass(frozen=True)
class MessagingFeesChanged:
    sender: Pubkey
    fees: tuple[MessagingFee, ...]

    def __post_init__(self) -> None:
        _freeze(self, "fees")


@dataclass(frozen=True)
class ClaimFeeChanged:
    sender: Pubkey
    before: ClaimFee
    current: ClaimFee


@dataclass(frozen=True)
class JobOvnMappingChanged:
    sender: Pubkey
    job_id: bytes
    before: tuple[Pubkey, ...]
    current: tuple[Pubkey, ...]

    def __post_init__(self) -> None:
        _freeze(self, "before", "current")


@dataclass(frozen=True)
class OracleRequested:
    job_id: bytes
    request_id: bytes
    requester: Pubkey
    callback_address: Pubkey
    callback_pda: Pubkey
    ovns: tuple[Pubkey, ...]
    generate_claim: bool
    amount: int
    data: str
    pda_seed: bytes

    def __post_init__(self) -> None:
        _freeze(self, "ovns")


@dataclass(frozen=True)
class OracleRequestCanceled:
    job_id: bytes
    request_id: bytes
    callback_address: Pubkey
    callback_pda: Pubkey
    amount: int
    refund_address: Pubkey


@dataclass(frozen=True)
class FulfillOracleRequested:
    request_id: bytes
    ovn: Pubkey


@dataclass(frozen=True)
class ClaimCommitted:
    claim_id: bytes
    operator: Pubkey


@dataclass(frozen=True)
class Withdrawn:
    sender: Pubkey
    to: Pubkey
    amount: int