import pytest

from opendid_oracle.errors import ErrorCode, OracleError
from opendid_oracle.events import (
    AdminTransferred,
    ClaimFeeChanged,
    ExpirytimeChanged,
    FeeSetterChanged,
    JobOvnMappingChanged,
    MessagingFeesChanged,
    OperatorChanged,
    Withdrawn,
)
from opendid_oracle.program import OracleProgram
from opendid_oracle.runtime import (
    ANCHOR_DISCRIMINATOR,
    ORACLE_SEED,
    PROGRAM_ID,
    Ledger,
    Pubkey,
    find_program_address,
)
from opendid_oracle.state import ClaimFee, MessagingFee, OracleSettings

FUNDS = 10**12
JOB = bytes([7]) * 32
OTHER_JOB = bytes([9]) * 32


def _mapping_space(count):
    return ANCHOR_DISCRIMINATOR + 32 + 1 + 32 + 4 + count * 32


@pytest.fixture
def ledger():
    return Ledger()


@pytest.fixture
def admin(ledger):
    key = Pubkey.unique()
    ledger.add_lamports(key, FUNDS)
    return key


@pytest.fixture
def program(ledger, admin):
    prog = OracleProgram(ledger, PROGRAM_ID)
    prog.init_oracle(admin)
    return prog


@pytest.fixture
def setter(ledger, program, admin):
    key = Pubkey.unique()
    ledger.add_lamports(key, FUNDS)
    program.set_fee_setter(admin, key, True)
    return key


@pytest.fixture
def operators(program, admin):
    keys = [Pubkey.unique() for _ in range(3)]
    for key in keys:
        program.set_operator(admin, key, True)
    return keys


def _expect(code, func, *args):
    with pytest.raises(OracleError) as info:
        func(*args)
    assert info.value.code is code


def test_init_oracle_sets_admin_and_pays_rent(ledger, program, admin):
    address, bump = find_program_address([ORACLE_SEED], PROGRAM_ID)
    assert program.oracle_address == address
    assert program.settings.admin == admin
    assert program.settings.bump == bump
    rent = ledger.minimum_balance(ANCHOR_DISCRIMINATOR + OracleSettings.INIT_SPACE)
    assert ledger.balance(address) == rent
    assert ledger.balance(admin) == FUNDS - rent


def test_init_oracle_twice_fails(program, admin):
    _expect(ErrorCode.ALREADY_EXISTS, program.init_oracle, admin)


def test_uninitialised_oracle_is_not_found(ledger):
    prog = OracleProgram(ledger)
    _expect(ErrorCode.NOT_FOUND, prog.get_claim_fee)
    _expect(ErrorCode.NOT_FOUND, prog.set_expiry_time, Pubkey.unique(), 10)


def test_init_oracle_without_funds_changes_nothing(ledger):
    prog = OracleProgram(ledger)
    with pytest.raises(ValueError):
        prog.init_oracle(Pubkey.unique())
    _expect(ErrorCode.NOT_FOUND, prog.get_claim_fee)


def test_fee_setter_add_and_remove(ledger, program, admin):
    key = Pubkey.unique()
    program.set_fee_setter(admin, key, True)
    assert program.settings.is_authorized_fee_setter(key)
    _expect(ErrorCode.ALREADY_EXISTS, program.set_fee_setter, admin, key, True)
    program.set_fee_setter(admin, key, False)
    assert not program.settings.is_authorized_fee_setter(key)
    _expect(ErrorCode.NOT_FOUND, program.set_fee_setter, admin, key, False)
    assert ledger.events[-2:] == [
        FeeSetterChanged(setter=key, authorized=True),
        FeeSetterChanged(setter=key, authorized=False),
    ]


def test_fee_setter_requires_admin(program):
    _expect(ErrorCode.UNAUTHORIZED, program.set_fee_setter, Pubkey.unique(), Pubkey.unique(), True)


def test_fee_setter_capacity(program, admin):
    for _ in range(5):
        program.set_fee_setter(admin, Pubkey.unique(), True)
    _expect(ErrorCode.MAX_CAPACITY, program.set_fee_setter, admin, Pubkey.unique(), True)
    assert len(program.settings.fee_setters) == 5


def test_operator_add_remove_and_capacity(ledger, program, admin):
    key = Pubkey.unique()
    program.set_operator(admin, key, True)
    assert ledger.events[-1] == OperatorChanged(operator=key, authorized=True)
    _expect(ErrorCode.ALREADY_EXISTS, program.set_operator, admin, key, True)
    program.set_operator(admin, key, False)
    assert not program.settings.is_authorized_operator(key)
    _expect(ErrorCode.NOT_FOUND, program.set_operator, admin, key, False)
    _expect(ErrorCode.UNAUTHORIZED, program.set_operator, key, key, True)
    for _ in range(20):
        program.set_operator(admin, Pubkey.unique(), True)
    _expect(ErrorCode.MAX_CAPACITY, program.set_operator, admin, Pubkey.unique(), True)


def test_transfer_admin(ledger, program, admin):
    new_admin = Pubkey.unique()
    program.transfer_admin(admin, new_admin)
    assert program.settings.is_admin(new_admin)
    assert ledger.events[-1] == AdminTransferred(previous_admin=admin, new_admin=new_admin)
    _expect(ErrorCode.UNAUTHORIZED, program.transfer_admin, admin, admin)


def test_set_expiry_time(ledger, program, setter):
    program.set_expiry_time(setter, 3600)
    program.set_expiry_time(setter, 60)
    assert program.settings.expiry_time == 60
    assert ledger.events[-1] == ExpirytimeChanged(before=3600, current=60)
    _expect(ErrorCode.NON_ZERO, program.set_expiry_time, setter, 0)
    _expect(ErrorCode.NON_AUTHORIZED_FEE_SETTER, program.set_expiry_time, Pubkey.unique(), 5)


def test_messaging_fees_upsert_preserves_order(ledger, program, setter):
    first = MessagingFee(job_id=JOB, free=False, gas_amount=100)
    second = MessagingFee(job_id=OTHER_JOB, free=True, gas_amount=5)
    program.set_messaging_fees(setter, [first, second])
    replacement = MessagingFee(job_id=JOB, free=False, gas_amount=300)
    program.set_messaging_fees(setter, [replacement])
    assert program.settings.messaging_fees == [replacement, second]
    assert program.get_messaging_fee(JOB) == replacement
    assert ledger.events[-1] == MessagingFeesChanged(sender=setter, fees=(replacement,))


def test_messaging_fees_errors(program, setter):
    _expect(ErrorCode.NOT_FOUND, program.get_messaging_fee, JOB)
    _expect(
        ErrorCode.UNAUTHORIZED,
        program.set_messaging_fees,
        Pubkey.unique(),
        [MessagingFee(job_id=JOB)],
    )


def test_messaging_fees_capacity(program, setter):
    fees = [MessagingFee(job_id=i.to_bytes(32, "big")) for i in range(1, 52)]
    _expect(ErrorCode.MAX_CAPACITY, program.set_messaging_fees, setter, fees)
    assert program.settings.messaging_fees == []


def test_claim_fee(ledger, program, setter):
    assert program.get_claim_fee() == ClaimFee()
    fee = ClaimFee(free=False, gas_amount=50)
    program.set_claim_fee(setter, fee)
    assert program.get_claim_fee() == fee
    assert ledger.events[-1] == ClaimFeeChanged(sender=setter, before=ClaimFee(), current=fee)
    _expect(ErrorCode.UNAUTHORIZED, program.set_claim_fee, Pubkey.unique(), fee)


def test_quote(program, setter):
    program.set_messaging_fees(setter, [MessagingFee(job_id=JOB, gas_amount=100)])
    program.set_claim_fee(setter, ClaimFee(gas_amount=50))
    assert program.quote(JOB, False) == 100
    assert program.quote(JOB, True) == 150
    program.set_messaging_fees(setter, [MessagingFee(job_id=JOB, free=True, gas_amount=100)])
    assert program.quote(JOB, True) == 50
    _expect(ErrorCode.NOT_FOUND, program.quote, OTHER_JOB, False)


def test_set_job_ovns(ledger, program, setter, operators):
    program.set_job_ovns(setter, JOB, operators[:2])
    assert program.get_job_ovns(JOB) == operators[:2]
    address, _ = find_program_address([JOB], PROGRAM_ID)
    assert ledger.balance(address) == ledger.minimum_balance(_mapping_space(2))
    assert ledger.events[-1] == JobOvnMappingChanged(
        sender=setter, job_id=JOB, before=(), current=tuple(operators[:2])
    )
    _expect(ErrorCode.ALREADY_EXISTS, program.set_job_ovns, setter, JOB, operators)


@pytest.mark.parametrize(
    "job_id, pick, code",
    [
        (bytes(32), "ops", ErrorCode.INVALID_JOB_ID),
        (JOB, "none", ErrorCode.INVALID_OVNS),
        (JOB, "stranger", ErrorCode.INVALID_OVNS),
    ],
)
def test_set_job_ovns_rejects(program, setter, operators, job_id, pick, code):
    ovns = {"ops": operators, "none": [], "stranger": [Pubkey.unique()]}[pick]
    _expect(code, program.set_job_ovns, setter, job_id, ovns)
    _expect(ErrorCode.NOT_FOUND, program.get_job_ovns, job_id)


def test_set_job_ovns_requires_fee_setter(program, operators):
    _expect(
        ErrorCode.NON_AUTHORIZED_FEE_SETTER,
        program.set_job_ovns,
        Pubkey.unique(),
        JOB,
        operators,
    )


def test_update_job_ovns_resizes_rent(ledger, program, setter, operators):
    address, _ = find_program_address([JOB], PROGRAM_ID)
    program.set_job_ovns(setter, JOB, operators[:1])
    start = ledger.balance(setter) + ledger.balance(address)

    program.update_job_ovns(setter, JOB, operators)
    assert program.get_job_ovns(JOB) == operators
    assert ledger.balance(address) == ledger.minimum_balance(_mapping_space(3))
    assert ledger.events[-1] == JobOvnMappingChanged(
        sender=setter, job_id=JOB, before=tuple(operators[:1]), current=tuple(operators)
    )

    program.update_job_ovns(setter, JOB, operators[2:])
    assert ledger.balance(address) == ledger.minimum_balance(_mapping_space(1))
    assert ledger.balance(setter) + ledger.balance(address) == start


def test_update_job_ovns_errors(program, setter, operators):
    _expect(ErrorCode.NOT_FOUND, program.update_job_ovns, setter, JOB, operators)
    program.set_job_ovns(setter, JOB, operators)
    _expect(ErrorCode.INVALID_OVNS, program.update_job_ovns, setter, JOB, [])
    _expect(
        ErrorCode.NON_AUTHORIZED_FEE_SETTER,
        program.update_job_ovns,
        Pubkey.unique(),
        JOB,
        operators,
    )
    assert program.get_job_ovns(JOB) == operators


def test_withdraw_fee(ledger, program, setter):
    ledger.add_lamports(program.oracle_address, 1000)
    reserve = ledger.balance(program.oracle_address) - 1000
    to = Pubkey.unique()
    _expect(ErrorCode.INSUFFICIENT_BALANCE, program.withdraw_fee, setter, to, 1001)
    program.withdraw_fee(setter, to, 1000)
    assert ledger.balance(to) == 1000
    assert ledger.balance(program.oracle_address) == reserve
    assert ledger.events[-1] == Withdrawn(sender=setter, to=to, amount=1000)


def test_withdraw_fee_errors(program, setter, admin):
    _expect(ErrorCode.ZERO_ADDRESS, program.withdraw_fee, setter, Pubkey.default(), 1)
    _expect(ErrorCode.NON_AUTHORIZED_FEE_SETTER, program.withdraw_fee, admin, Pubkey.unique(), 1)