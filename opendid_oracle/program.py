"""Administrative and configuration instructions of the oracle program."""

from __future__ import annotations

from typing import Iterable

from .errors import ErrorCode, OracleError
from .events import (
    AdminTransferred,
    ClaimFeeChanged,
    ExpirytimeChanged,
    FeeSetterChanged,
    JobOvnMappingChanged,
    MessagingFeesChanged,
    OperatorChanged,
    Withdrawn,
)
from .runtime import (
    ANCHOR_DISCRIMINATOR,
    FEESETTER_MAX_LEN,
    JOB_MAX_LEN,
    OPERATOR_MAX_LEN,
    ORACLE_SEED,
    PROGRAM_ID,
    Ledger,
    Pubkey,
    find_program_address,
)
from .state import ClaimFee, JobOvnMapping, MessagingFee, OracleSettings

_ZERO_ID = bytes(32)


def _job_id(value: bytes) -> bytes:
    raw = bytes(value)
    if len(raw) != 32:
        raise ValueError(f"job_id must be 32 bytes, got {len(raw)}")
    return raw


def _mapping_space(ovn_count: int) -> int:
    return ANCHOR_DISCRIMINATOR + 32 + 1 + 32 + 4 + ovn_count * 32


class OracleProgram:
    """The oracle's settings, job-to-OVN mappings and their instructions."""

    def __init__(self, ledger: Ledger, program_id: Pubkey = PROGRAM_ID) -> None:
        self.ledger = ledger
        self.program_id = program_id
        self.oracle_address, self._oracle_bump = find_program_address(
            [ORACLE_SEED], program_id
        )
        self._settings: OracleSettings | None = None
        self._mappings: dict[bytes, JobOvnMapping] = {}

    # ------------------------------------------------------------------ helpers

    @property
    def settings(self) -> OracleSettings:
        """The initialised oracle settings account."""
        if self._settings is None:
            raise OracleError(ErrorCode.NOT_FOUND)
        return self._settings

    def _oracle_rent(self) -> int:
        return self.ledger.minimum_balance(ANCHOR_DISCRIMINATOR + OracleSettings.INIT_SPACE)

    def _mapping_address(self, job_id: bytes) -> tuple[Pubkey, int]:
        return find_program_address([job_id], self.program_id)

    def _mapping(self, job_id: bytes) -> JobOvnMapping:
        try:
            return self._mappings[job_id]
        except KeyError:
            raise OracleError(ErrorCode.NOT_FOUND) from None

    def _check_ovns(self, settings: OracleSettings, ovns: list[Pubkey]) -> None:
        if not ovns:
            raise OracleError(ErrorCode.INVALID_OVNS)
        if not all(settings.is_authorized_operator(ovn) for ovn in ovns):
            raise OracleError(ErrorCode.INVALID_OVNS)

    # ------------------------------------------------------------ admin

    def init_oracle(self, signer: Pubkey) -> None:
        """Create the settings account, paid for by ``signer``, who becomes admin."""
        if self._settings is not None:
            raise OracleError(ErrorCode.ALREADY_EXISTS)
        self.ledger.transfer(signer, self.oracle_address, self._oracle_rent())
        self._settings = OracleSettings(admin=signer, bump=self._oracle_bump)

    def withdraw_fee(self, signer: Pubkey, to: Pubkey, amount: int) -> None:
        """Move collected fees above the rent reserve to ``to``."""
        settings = self.settings
        if signer not in settings.fee_setters:
            raise OracleError(ErrorCode.NON_AUTHORIZED_FEE_SETTER)
        if to == Pubkey.default():
            raise OracleError(ErrorCode.ZERO_ADDRESS)
        surplus = self.ledger.balance(self.oracle_address) - self._oracle_rent()
        if surplus < amount:
            raise OracleError(ErrorCode.INSUFFICIENT_BALANCE)
        self.ledger.sub_lamports(self.oracle_address, amount)
        self.ledger.add_lamports(to, amount)
        self.ledger.emit(Withdrawn(sender=signer, to=to, amount=amount))

    def transfer_admin(self, signer: Pubkey, new_admin: Pubkey) -> None:
        settings = self.settings
        if not settings.is_admin(signer):
            raise OracleError(ErrorCode.UNAUTHORIZED)
        settings.admin = new_admin
        self.ledger.emit(AdminTransferred(previous_admin=signer, new_admin=new_admin))

    @staticmethod
    def _toggle(members: list[Pubkey], key: Pubkey, authorized: bool, limit: int) -> None:
        if authorized:
            if key in members:
                raise OracleError(ErrorCode.ALREADY_EXISTS)
            if len(members) >= limit:
                raise OracleError(ErrorCode.MAX_CAPACITY)
            members.append(key)
        else:
            if key not in members:
                raise OracleError(ErrorCode.NOT_FOUND)
            members.remove(key)

    def set_fee_setter(self, signer: Pubkey, fee_setter: Pubkey, authorized: bool) -> None:
        settings = self.settings
        if not settings.is_admin(signer):
            raise OracleError(ErrorCode.UNAUTHORIZED)
        self._toggle(settings.fee_setters, fee_setter, authorized, FEESETTER_MAX_LEN)
        self.ledger.emit(FeeSetterChanged(setter=fee_setter, authorized=authorized))

    def set_operator(self, signer: Pubkey, operator: Pubkey, authorized: bool) -> None:
        settings = self.settings
        if not settings.is_admin(signer):
            raise OracleError(ErrorCode.UNAUTHORIZED)
        self._toggle(settings.operators, operator, authorized, OPERATOR_MAX_LEN)
        self.ledger.emit(OperatorChanged(operator=operator, authorized=authorized))

    # --------------------------------------------------------- business

    def set_expiry_time(self, signer: Pubkey, expiry_time: int) -> None:
        settings = self.settings
        if signer not in settings.fee_setters:
            raise OracleError(ErrorCode.NON_AUTHORIZED_FEE_SETTER)
        if expiry_time <= 0:
            raise OracleError(ErrorCode.NON_ZERO)
        before = settings.expiry_time
        settings.expiry_time = expiry_time
        self.ledger.emit(ExpirytimeChanged(before=before, current=expiry_time))

    def set_messaging_fees(self, signer: Pubkey, fees: Iterable[MessagingFee]) -> None:
        """Insert or replace per-job fees, keyed by job id."""
        settings = self.settings
        if not settings.is_authorized_fee_setter(signer):
            raise OracleError(ErrorCode.UNAUTHORIZED)
        fees = list(fees)
        updated = list(settings.messaging_fees)
        for fee in fees:
            position = next(
                (i for i, existing in enumerate(updated) if existing.job_id == fee.job_id),
                None,
            )
            if position is None:
                updated.append(fee)
            else:
                updated[position] = fee
        if len(updated) > JOB_MAX_LEN:
            raise OracleError(ErrorCode.MAX_CAPACITY)
        settings.messaging_fees = updated
        self.ledger.emit(MessagingFeesChanged(sender=signer, fees=fees))

    def get_messaging_fee(self, job_id: bytes) -> MessagingFee:
        fee = self.settings.get_messaging_fee(_job_id(job_id))
        if fee is None:
            raise OracleError(ErrorCode.NOT_FOUND)
        return fee

    def set_claim_fee(self, signer: Pubkey, fee: ClaimFee) -> None:
        settings = self.settings
        if not settings.is_authorized_fee_setter(signer):
            raise OracleError(ErrorCode.UNAUTHORIZED)
        before = settings.claim_fee
        settings.claim_fee = fee
        self.ledger.emit(ClaimFeeChanged(sender=signer, before=before, current=fee))

    def get_claim_fee(self) -> ClaimFee:
        return self.settings.claim_fee

    def quote(self, job_id: bytes, generate_claim: bool) -> int:
        """Fee per OVN for ``job_id``, including the claim fee if requested."""
        return self.settings.quote(_job_id(job_id), generate_claim)

    def set_job_ovns(self, signer: Pubkey, job_id: bytes, ovns: Iterable[Pubkey]) -> None:
        """Create the mapping of ``job_id`` to the OVNs that serve it."""
        job_id = _job_id(job_id)
        ovns = list(ovns)
        settings = self.settings
        if job_id in self._mappings:
            raise OracleError(ErrorCode.ALREADY_EXISTS)
        if not settings.is_authorized_fee_setter(signer):
            raise OracleError(ErrorCode.NON_AUTHORIZED_FEE_SETTER)
        if job_id == _ZERO_ID:
            raise OracleError(ErrorCode.INVALID_JOB_ID)
        self._check_ovns(settings, ovns)
        address, bump = self._mapping_address(job_id)
        rent = self.ledger.minimum_balance(_mapping_space(len(ovns)))
        self.ledger.transfer(signer, address, rent)
        self._mappings[job_id] = JobOvnMapping(
            admin=signer, bump=bump, job_id=job_id, ovns=list(ovns)
        )
        self.ledger.emit(
            JobOvnMappingChanged(sender=signer, job_id=job_id, before=(), current=ovns)
        )

    def update_job_ovns(self, signer: Pubkey, job_id: bytes, ovns: Iterable[Pubkey]) -> None:
        """Replace the OVNs of an existing mapping, resizing its rent reserve."""
        job_id = _job_id(job_id)
        ovns = list(ovns)
        settings = self.settings
        mapping = self._mapping(job_id)
        if not settings.is_authorized_fee_setter(signer):
            raise OracleError(ErrorCode.NON_AUTHORIZED_FEE_SETTER)
        if job_id != mapping.job_id:
            raise OracleError(ErrorCode.INVALID_JOB_ID)
        self._check_ovns(settings, ovns)

        address, _ = self._mapping_address(job_id)
        new_rent = self.ledger.minimum_balance(_mapping_space(len(ovns)))
        current = self.ledger.balance(address)
        if new_rent > current:
            self.ledger.transfer(signer, address, new_rent - current)
        elif current > new_rent:
            self.ledger.transfer(address, signer, current - new_rent)

        before = list(mapping.ovns)
        mapping.admin = signer
        mapping.ovns = list(ovns)
        self.ledger.emit(
            JobOvnMappingChanged(sender=signer, job_id=job_id, before=before, current=ovns)
        )

    def get_job_ovns(self, job_id: bytes) -> list[Pubkey]:
        job_id = _job_id(job_id)
        return self._mapping(job_id).get_job_ovns(job_id)