"""Oracle requests, their fulfilment and cancellation, and claim commitments."""

from __future__ import annotations

import copy
from typing import Iterable, Sequence

from .errors import ErrorCode, OracleError
from .events import (
    ClaimCommitted,
    FulfillOracleRequested,
    OracleRequestCanceled,
    OracleRequested,
)
from .program import OracleProgram
from .runtime import ANCHOR_DISCRIMINATOR, COMMITMENT_SEED, Pubkey, find_program_address
from .state import Claim, Commitment

# Selector of "oracle_response(request_id: [u8; 32], data: String)".
CALLBACK_FUNCTION_ID = bytes([238, 231, 190, 148, 216, 135, 40, 26])

_ZERO_ID = bytes(32)


def _fixed(value: bytes, length: int, name: str) -> bytes:
    raw = bytes(value)
    if len(raw) != length:
        raise ValueError(f"{name} must be {length} bytes, got {len(raw)}")
    return raw


def _commitment_space(ovn_count: int) -> int:
    return (
        ANCHOR_DISCRIMINATOR
        + 32  # job_id
        + 32  # callback_addr
        + 32  # callback_pda
        + 8  # callback_function_id
        + 8  # amount
        + 8  # expiration
        + 32  # requester
        + 4 + 32 * ovn_count  # ovns
        + 1  # generate_claim
        + 8  # fulfill_count
        + 32  # pda_seed
        + 1  # bump
    )


def _claim_space(claim: str) -> int:
    return ANCHOR_DISCRIMINATOR + 32 + 1 + 32 + 4 + len(claim.encode("utf-8"))


def build_cpi_data(callback_function_id: bytes, request_id: bytes, data: str) -> bytes:
    """Serialise a callback: selector, request id, then the length-prefixed data."""
    selector = _fixed(callback_function_id, 8, "callback_function_id")
    request = _fixed(request_id, 32, "request_id")
    payload = data.encode("utf-8")
    return selector + request + len(payload).to_bytes(4, "little") + payload


class Oracle(OracleProgram):
    """The full oracle program: configuration plus request handling."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._commitments: dict[bytes, Commitment] = {}
        self._claims: dict[bytes, Claim] = {}

    # ------------------------------------------------------------ queries

    def commitment(self, request_id: bytes) -> Commitment:
        """The pending commitment stored under ``request_id``."""
        try:
            return self._commitments[bytes(request_id)]
        except KeyError:
            raise OracleError(ErrorCode.NOT_FOUND) from None

    def claim(self, claim_id: bytes) -> Claim:
        """The claim committed under ``claim_id``."""
        try:
            return self._claims[bytes(claim_id)]
        except KeyError:
            raise OracleError(ErrorCode.NOT_FOUND) from None

    def _require_commitment(self, request_id: bytes) -> Commitment:
        try:
            return self._commitments[request_id]
        except KeyError:
            raise OracleError(ErrorCode.INVALID_REQUEST_ID) from None

    def _close_commitment(self, request_id: bytes, destination: Pubkey) -> int:
        address = Pubkey(request_id)
        refund = self.ledger.balance(address)
        self.ledger.transfer(address, destination, refund)
        del self._commitments[request_id]
        return refund

    # ------------------------------------------------------------ requests

    def oracle_request(
        self,
        requester: Pubkey,
        pda_seed: bytes,
        job_id: bytes,
        ovns: Iterable[Pubkey],
        callback_address: Pubkey,
        callback_pda: Pubkey,
        generate_claim: bool,
        data: str,
        amount: int,
    ) -> bytes:
        """Open a request for ``job_id`` served by ``ovns``; return its request id."""
        pda_seed = _fixed(pda_seed, 32, "pda_seed")
        job_id = _fixed(job_id, 32, "job_id")
        ovns = list(ovns)
        settings = self.settings
        mapping = self._mapping(job_id)

        address, bump = find_program_address(
            [COMMITMENT_SEED, bytes(requester), pda_seed], self.program_id
        )
        request_id = bytes(address)
        if request_id in self._commitments:
            raise OracleError(ErrorCode.DUPLICATED_REQUEST_ID)

        if pda_seed == _ZERO_ID:
            raise OracleError(ErrorCode.INVALID_SEED)
        configured = mapping.get_job_ovns(job_id)
        if any(ovn not in configured for ovn in ovns):
            raise OracleError(ErrorCode.INVALID_OVNS)

        total_fee = settings.quote(job_id, generate_claim) * len(ovns)
        if total_fee > 0 and amount < total_fee:
            raise OracleError(ErrorCode.INSUFFICIENT_PAYMENT)

        rent = self.ledger.minimum_balance(_commitment_space(len(ovns)))
        payment = amount if total_fee > 0 else 0
        if self.ledger.balance(requester) < rent + payment:
            raise ValueError(f"insufficient funds in {requester}")
        self.ledger.transfer(requester, address, rent)
        if payment:
            # The whole offered amount is collected, not just the quoted fee.
            self.ledger.transfer(requester, self.oracle_address, payment)

        commitment = Commitment(
            job_id=job_id,
            callback_addr=callback_address,
            callback_pda=callback_pda,
            callback_function_id=CALLBACK_FUNCTION_ID,
            amount=amount,
            expiration=self.ledger.unix_timestamp + settings.expiry_time,
            requester=requester,
            ovns=list(ovns),
            generate_claim=generate_claim,
            fulfill_count=0,
            pda_seed=pda_seed,
            bump=bump,
        )
        self._commitments[request_id] = commitment
        self.ledger.emit(
            OracleRequested(
                job_id=job_id,
                request_id=request_id,
                requester=requester,
                callback_address=callback_address,
                callback_pda=callback_pda,
                ovns=commitment.ovns,
                generate_claim=generate_claim,
                amount=amount,
                data=data,
                pda_seed=pda_seed,
            )
        )
        return request_id

    def cancel_oracle_request(
        self, requester: Pubkey, refunder: Pubkey, request_id: bytes
    ) -> None:
        """Cancel an expired, unfulfilled request and refund it to ``refunder``."""
        request_id = _fixed(request_id, 32, "request_id")
        self.settings
        commitment = self._require_commitment(request_id)
        if commitment.job_id == _ZERO_ID:
            raise OracleError(ErrorCode.INVALID_OPERATION)
        if not commitment.expiration < self.ledger.unix_timestamp:
            raise OracleError(ErrorCode.NOT_YET_DUE)
        if commitment.requester != requester:
            raise OracleError(ErrorCode.MISMATCHED_REQUESTER)
        if commitment.fulfill_count != 0:
            raise OracleError(ErrorCode.FULFILLMENT_RECORDS_EXIST)

        amount = commitment.amount
        if amount > 0:
            surplus = self.ledger.balance(self.oracle_address) - self._oracle_rent()
            if surplus < amount:
                raise OracleError(ErrorCode.INSUFFICIENT_BALANCE)
            self.ledger.sub_lamports(self.oracle_address, amount)
            self.ledger.add_lamports(refunder, amount)

        self.ledger.emit(
            OracleRequestCanceled(
                job_id=commitment.job_id,
                request_id=request_id,
                callback_address=commitment.callback_addr,
                callback_pda=commitment.callback_pda,
                amount=amount,
                refund_address=refunder,
            )
        )
        self._close_commitment(request_id, refunder)

    def fulfill_oracle_request(
        self,
        ovn: Pubkey,
        oracle_requester: Pubkey,
        request_id: bytes,
        data: str,
        remaining_accounts: Sequence[Pubkey],
    ) -> None:
        """Record ``ovn``'s answer and forward it to the callback program."""
        remaining = list(remaining_accounts)
        if len(remaining) < 2:
            raise OracleError(ErrorCode.INSUFFICIENT_ACCOUNTS)
        target_program, store_pda = remaining[0], remaining[1]

        request_id = _fixed(request_id, 32, "request_id")
        commitment = self._require_commitment(request_id)
        try:
            index = commitment.ovns.index(ovn)
        except ValueError:
            raise OracleError(ErrorCode.NON_SPECIFIED_OVN) from None
        if commitment.callback_addr != target_program:
            raise OracleError(ErrorCode.MISMATCHED_TARGET_PROGRAM)
        if commitment.callback_pda != store_pda:
            raise OracleError(ErrorCode.MISMATCHED_STORE_PDA)
        last_ovn = len(commitment.ovns) == 1
        if last_ovn and commitment.requester != oracle_requester:
            raise OracleError(ErrorCode.MISMATCHED_REQUESTER)

        saved = copy.deepcopy(commitment)
        event_count = len(self.ledger.events)
        refund = None

        commitment.fulfill_count += 1
        if last_ovn:
            commitment.job_id = _ZERO_ID
            commitment.ovns.pop()
            refund = self._close_commitment(request_id, oracle_requester)
        else:
            ovns = commitment.ovns
            ovns[index], ovns[-1] = ovns[-1], ovns[index]
            ovns.pop()

        self.ledger.emit(FulfillOracleRequested(request_id=request_id, ovn=ovn))

        if self.ledger.is_executable(target_program):
            payload = build_cpi_data(saved.callback_function_id, request_id, data)
            try:
                self.ledger.invoke(target_program, remaining[1:], payload)
            except Exception as exc:
                if refund is not None:
                    self.ledger.transfer(oracle_requester, Pubkey(request_id), refund)
                self._commitments[request_id] = saved
                del self.ledger.events[event_count:]
                raise OracleError(ErrorCode.CPI_FAILED) from exc

    # ------------------------------------------------------------ claims

    def commit_claim(self, signer: Pubkey, claim_id: bytes, claim: str) -> None:
        """Store ``claim`` under ``claim_id``, paid for by the operator ``signer``."""
        claim_id = _fixed(claim_id, 32, "claim_id")
        settings = self.settings
        if claim_id in self._claims or claim_id in self._mappings:
            raise OracleError(ErrorCode.CLAIM_ALREADY_EXISTS)
        if not settings.is_authorized_operator(signer):
            raise OracleError(ErrorCode.UNAUTHORIZED_OPERATOR)
        if claim_id == _ZERO_ID:
            raise OracleError(ErrorCode.INVALID_CLAIM_ID)
        if not claim:
            raise OracleError(ErrorCode.EMPTY_CLAIM)

        address, bump = find_program_address([claim_id], self.program_id)
        self.ledger.transfer(signer, address, self.ledger.minimum_balance(_claim_space(claim)))
        self._claims[claim_id] = Claim(
            operator=signer, bump=bump, claim_id=claim_id, claim_data=claim
        )
        self.ledger.emit(ClaimCommitted(claim_id=claim_id, operator=signer))