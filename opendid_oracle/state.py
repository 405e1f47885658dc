"""Account state held by the oracle program."""

from __future__ import annotations

from dataclasses import dataclass, field

from .errors import ErrorCode, OracleError
from .runtime import FEESETTER_MAX_LEN, JOB_MAX_LEN, OPERATOR_MAX_LEN, Pubkey

_KEY_SIZE = 32
_VEC_PREFIX = 4


def _bytes_of_length(value: bytes, length: int, name: str) -> bytes:
    raw = bytes(value)
    if len(raw) != length:
        raise ValueError(f"{name} must be {length} bytes, got {len(raw)}")
    return raw


@dataclass(frozen=True)
class ClaimFee:
    """Fee charged when a request also asks for a claim."""

    free: bool = False
    gas_amount: int = 0

    INIT_SPACE = 1 + 8


@dataclass(frozen=True)
class MessagingFee:
    """Per-job fee charged to each requested OVN."""

    job_id: bytes = bytes(32)
    free: bool = False
    gas_amount: int = 0

    INIT_SPACE = 32 + 1 + 8

    def __post_init__(self) -> None:
        object.__setattr__(self, "job_id", _bytes_of_length(self.job_id, 32, "job_id"))


@dataclass
class OracleSettings:
    """Global oracle configuration."""

    admin: Pubkey = field(default_factory=Pubkey.default)
    bump: int = 0
    fee_setters: list[Pubkey] = field(default_factory=list)
    operators: list[Pubkey] = field(default_factory=list)
    expiry_time: int = 0
    messaging_fees: list[MessagingFee] = field(default_factory=list)
    claim_fee: ClaimFee = field(default_factory=ClaimFee)

    INIT_SPACE = (
        _KEY_SIZE
        + 1
        + _VEC_PREFIX + FEESETTER_MAX_LEN * _KEY_SIZE
        + _VEC_PREFIX + OPERATOR_MAX_LEN * _KEY_SIZE
        + 8
        + _VEC_PREFIX + JOB_MAX_LEN * MessagingFee.INIT_SPACE
        + ClaimFee.INIT_SPACE
    )

    def is_admin(self, account: Pubkey) -> bool:
        return self.admin == account

    def is_authorized_fee_setter(self, account: Pubkey) -> bool:
        return account in self.fee_setters

    def is_authorized_operator(self, account: Pubkey) -> bool:
        return account in self.operators

    def get_messaging_fee(self, job_id: bytes) -> MessagingFee | None:
        wanted = bytes(job_id)
        return next((fee for fee in self.messaging_fees if fee.job_id == wanted), None)

    def quote(self, job_id: bytes, generate_claim: bool) -> int:
        """Fee for one OVN serving ``job_id``, plus the claim fee if asked."""
        messaging_fee = self.get_messaging_fee(job_id)
        if messaging_fee is None:
            raise OracleError(ErrorCode.NOT_FOUND)
        total = 0 if messaging_fee.free else messaging_fee.gas_amount
        if generate_claim and not self.claim_fee.free:
            total += self.claim_fee.gas_amount
        return total


@dataclass
class JobOvnMapping:
    """The OVNs configured to serve one job."""

    admin: Pubkey = field(default_factory=Pubkey.default)
    bump: int = 0
    job_id: bytes = bytes(32)
    ovns: list[Pubkey] = field(default_factory=list)

    def get_job_ovns(self, job_id: bytes) -> list[Pubkey]:
        if self.job_id != bytes(job_id):
            raise OracleError(ErrorCode.INVALID_JOB_ID)
        return list(self.ovns)


@dataclass
class Claim:
    """A claim committed by an operator."""

    operator: Pubkey = field(default_factory=Pubkey.default)
    bump: int = 0
    claim_id: bytes = bytes(32)
    claim_data: str = ""


@dataclass
class Commitment:
    """A pending oracle request awaiting fulfilment."""

    job_id: bytes = bytes(32)
    callback_addr: Pubkey = field(default_factory=Pubkey.default)
    callback_pda: Pubkey = field(default_factory=Pubkey.default)
    callback_function_id: bytes = bytes(8)
    amount: int = 0
    expiration: int = 0
    requester: Pubkey = field(default_factory=Pubkey.default)
    ovns: list[Pubkey] = field(default_factory=list)
    generate_claim: bool = False
    fulfill_count: int = 0
    pda_seed: bytes = bytes(32)
    bump: int = 0