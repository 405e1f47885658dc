"""Error codes raised by the oracle program."""

from __future__ import annotations

from enum import IntEnum

ERROR_CODE_OFFSET = 6000


class ErrorCode(IntEnum):
    """Numbered program errors, starting at the custom error offset."""

    MAX_CAPACITY = ERROR_CODE_OFFSET
    UNAUTHORIZED = ERROR_CODE_OFFSET + 1
    ALREADY_EXISTS = ERROR_CODE_OFFSET + 2
    NOT_FOUND = ERROR_CODE_OFFSET + 3
    NON_AUTHORIZED_FEE_SETTER = ERROR_CODE_OFFSET + 4
    UNAUTHORIZED_OPERATOR = ERROR_CODE_OFFSET + 5
    NON_ZERO = ERROR_CODE_OFFSET + 6
    INSUFFICIENT_PAYMENT = ERROR_CODE_OFFSET + 7
    DUPLICATED_REQUEST_ID = ERROR_CODE_OFFSET + 8
    INVALID_OVNS = ERROR_CODE_OFFSET + 9
    INVALID_REQUEST_ID = ERROR_CODE_OFFSET + 10
    NON_SPECIFIED_OVN = ERROR_CODE_OFFSET + 11
    CALLBACK_ERROR = ERROR_CODE_OFFSET + 12
    INVALID_JOB_ID = ERROR_CODE_OFFSET + 13
    INVALID_CLAIM_ID = ERROR_CODE_OFFSET + 14
    INVALID_OPERATION = ERROR_CODE_OFFSET + 15
    EMPTY_CLAIM = ERROR_CODE_OFFSET + 16
    CLAIM_ALREADY_EXISTS = ERROR_CODE_OFFSET + 17
    NOT_YET_DUE = ERROR_CODE_OFFSET + 18
    MISMATCHED_REQUESTER = ERROR_CODE_OFFSET + 19
    FULFILLMENT_RECORDS_EXIST = ERROR_CODE_OFFSET + 20
    INSUFFICIENT_BALANCE = ERROR_CODE_OFFSET + 21
    INSUFFICIENT_ACCOUNTS = ERROR_CODE_OFFSET + 22
    MISMATCHED_TARGET_PROGRAM = ERROR_CODE_OFFSET + 23
    MISMATCHED_STORE_PDA = ERROR_CODE_OFFSET + 24
    CPI_FAILED = ERROR_CODE_OFFSET + 25
    ZERO_ADDRESS = ERROR_CODE_OFFSET + 26
    TRANSFER_FAILED = ERROR_CODE_OFFSET + 27
    INVALID_SEED = ERROR_CODE_OFFSET + 28

    def message(self) -> str:
        """Human-readable description of the error."""
        return _MESSAGES[self]


_MESSAGES = {
    ErrorCode.MAX_CAPACITY: "Max capacity reached",
    ErrorCode.UNAUTHORIZED: "Unauthorized",
    ErrorCode.ALREADY_EXISTS: "Already exists",
    ErrorCode.NOT_FOUND: "Not found",
    ErrorCode.NON_AUTHORIZED_FEE_SETTER: "Non authorized fee setter",
    ErrorCode.UNAUTHORIZED_OPERATOR: "Non authorized operator",
    ErrorCode.NON_ZERO: "Non zero",
    ErrorCode.INSUFFICIENT_PAYMENT: "Insufficient payment",
    ErrorCode.DUPLICATED_REQUEST_ID: "Duplicated requestId",
    ErrorCode.INVALID_OVNS: "Invalid ovns",
    ErrorCode.INVALID_REQUEST_ID: "Invalid requestId",
    ErrorCode.NON_SPECIFIED_OVN: "Non-specified ovn",
    ErrorCode.CALLBACK_ERROR: "Callback error occurred",
    ErrorCode.INVALID_JOB_ID: "Invalid jobId",
    ErrorCode.INVALID_CLAIM_ID: "Invalid claim ID",
    ErrorCode.INVALID_OPERATION: "Invalid operation",
    ErrorCode.EMPTY_CLAIM: "Claim cannot be empty",
    ErrorCode.CLAIM_ALREADY_EXISTS: "Claim already exists",
    ErrorCode.NOT_YET_DUE: "Not yet due",
    ErrorCode.MISMATCHED_REQUESTER: "Mismatched requester",
    ErrorCode.FULFILLMENT_RECORDS_EXIST: "Fulfillment records exist",
    ErrorCode.INSUFFICIENT_BALANCE: "Insufficient balance",
    ErrorCode.INSUFFICIENT_ACCOUNTS: (
        "Insufficient accounts,The target program account and store PDA "
        "account are required"
    ),
    ErrorCode.MISMATCHED_TARGET_PROGRAM: "Mismatched target program account",
    ErrorCode.MISMATCHED_STORE_PDA: "Mismatched target store pda account",
    ErrorCode.CPI_FAILED: "CPI call failed",
    ErrorCode.ZERO_ADDRESS: "Zero addres",
    ErrorCode.TRANSFER_FAILED: "Transfer failed",
    ErrorCode.INVALID_SEED: "Invalid seed",
}


class OracleError(Exception):
    """Raised when an oracle instruction is rejected."""

    def __init__(self, code: ErrorCode | int) -> None:
        self.code = ErrorCode(code)
        super().__init__(self.code.message())