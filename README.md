# opendid-oracle

An in-memory model of the opendid oracle program. It keeps the oracle's
settings, fee schedule, job-to-OVN mappings, request commitments and
committed claims, moves lamports between accounts on a simple ledger, and
enforces the same authorisation rules and errors as the on-chain program.

## Install

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `opendid_oracle.runtime`
  - `Pubkey`: a 32-byte address. `Pubkey.default()` is the all-zero address,
    `Pubkey.unique()` makes a fresh one, `str()` gives its base58 form.
  - `find_program_address(seeds, program_id)` and
    `create_program_address(seeds, program_id)` derive off-curve addresses
    from seeds (SHA-256 of the seeds, program id and marker).
  - `Ledger`: lamport balances (`balance`, `add_lamports`, `sub_lamports`,
    `transfer`), a clock (`unix_timestamp`, `advance_clock`), rent
    (`minimum_balance`), emitted events (`events`, `emit`) and callable
    programs (`register_program`, `is_executable`, `invoke`).
  - Constants such as `PROGRAM_ID`, `ORACLE_SEED`, `COMMITMENT_SEED`,
    `FEESETTER_MAX_LEN` (5), `OPERATOR_MAX_LEN` (20) and `JOB_MAX_LEN` (50).
- `opendid_oracle.state`: the account dataclasses `OracleSettings`,
  `MessagingFee`, `ClaimFee`, `JobOvnMapping`, `Commitment` and `Claim`.
  `OracleSettings.quote(job_id, generate_claim)` gives the fee for one OVN.
- `opendid_oracle.events`: frozen dataclasses appended to `ledger.events`,
  e.g. `FeeSetterChanged`, `MessagingFeesChanged`, `OracleRequested`,
  `FulfillOracleRequested`, `OracleRequestCanceled`, `ClaimCommitted`,
  `Withdrawn`.
- `opendid_oracle.errors`: `OracleError`, raised by every failed check; its
  `code` is an `ErrorCode` member (numbered from 6000) and its message is
  `code.message()`.
- `opendid_oracle.program`: `OracleProgram`, the administrative and
  configuration instructions: `init_oracle`, `withdraw_fee`,
  `transfer_admin`, `set_fee_setter`, `set_operator`, `set_expiry_time`,
  `set_messaging_fees`, `get_messaging_fee`, `set_claim_fee`,
  `get_claim_fee`, `quote`, `set_job_ovns`, `update_job_ovns`,
  `get_job_ovns`.
- `opendid_oracle.requests`: `Oracle`, which extends `OracleProgram` with
  `oracle_request`, `cancel_oracle_request`, `fulfill_oracle_request`,
  `commit_claim` and the lookups `commitment(request_id)` and
  `claim(claim_id)`; and `build_cpi_data`, which serialises a callback as
  selector, request id and length-prefixed UTF-8 data.

## Behaviour worth knowing

- Creating accounts costs rent: `init_oracle`, `set_job_ovns`,
  `oracle_request` and `commit_claim` transfer `ledger.minimum_balance(...)`
  from the paying key, so that key must hold enough lamports.
- `oracle_request` collects the whole offered `amount` into the oracle
  account whenever the quoted total (fee per OVN times the number of OVNs)
  is above zero; the request id is the commitment's derived address.
- `fulfill_oracle_request` needs at least two remaining accounts: the
  callback program and its store account. Each fulfilment removes the
  answering OVN; the last one closes the commitment and returns its rent to
  `oracle_requester`. If the callback program is registered on the ledger it
  is invoked with the remaining accounts after the first and the data from
  `build_cpi_data`; if it raises, the fulfilment is undone and
  `ErrorCode.CPI_FAILED` is raised.
- `cancel_oracle_request` succeeds only after the commitment's expiration
  has passed, for its own requester, and before any fulfilment; it refunds
  the paid amount and the commitment's rent to the refunder.
- `withdraw_fee` and cancellation refunds may only draw on the oracle
  account's balance above its rent reserve.

## Example

```python
from opendid_oracle.runtime import Ledger, Pubkey
from opendid_oracle.requests import Oracle
from opendid_oracle.state import MessagingFee

ledger = Ledger()
oracle = Oracle(ledger)

admin = Pubkey.unique()
setter = Pubkey.unique()
operator = Pubkey.unique()
requester = Pubkey.unique()
for key in (admin, setter, requester):
    ledger.add_lamports(key, 1_000_000_000)

oracle.init_oracle(admin)
oracle.set_fee_setter(admin, setter, True)
oracle.set_operator(admin, operator, True)
oracle.set_expiry_time(setter, 3600)

job_id = bytes([1]) * 32
oracle.set_messaging_fees(setter, [MessagingFee(job_id=job_id, free=False, gas_amount=1000)])
oracle.set_job_ovns(setter, job_id, [operator])

print(oracle.quote(job_id, False))  # 1000

request_id = oracle.oracle_request(
    requester,
    pda_seed=bytes([7]) * 32,
    job_id=job_id,
    ovns=[operator],
    callback_address=Pubkey.unique(),
    callback_pda=Pubkey.unique(),
    generate_claim=False,
    data="query",
    amount=1000,
)
print(oracle.commitment(request_id).ovns)
```

## What this package does not do

Everything lives in memory for the life of the `Ledger` and program objects:
there is no persistence, no network or cluster connection, no binary
serialisation of accounts, and no command-line tool. Callback programs are
plain Python callables registered with `Ledger.register_program`.