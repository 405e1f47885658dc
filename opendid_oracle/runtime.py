"""Addresses, program-derived addresses and a minimal in-memory ledger."""

from __future__ import annotations

import hashlib
import itertools
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Sequence

ORACLE_SEED = b"OracleDev"
ORACLE_JOB_OVN_SEED = b"OracleJobOvnSettings"
COMMITMENT_SEED = b"commitment"

FEESETTER_MAX_LEN = 5
OPERATOR_MAX_LEN = 20
JOB_MAX_LEN = 50
ANCHOR_DISCRIMINATOR = 8

MAX_SEEDS = 16
MAX_SEED_LEN = 32
U64_MAX = 2**64 - 1

ACCOUNT_STORAGE_OVERHEAD = 128
DEFAULT_LAMPORTS_PER_BYTE_YEAR = 3480
DEFAULT_EXEMPTION_THRESHOLD = 2.0

_PDA_MARKER = b"ProgramDerivedAddress"
_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

# Curve25519 parameters for the on-curve check of derived addresses.
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P

_unique_counter = itertools.count(1)


def _b58encode(data: bytes) -> str:
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, remainder = divmod(number, 58)
        digits.append(_ALPHABET[remainder])
    padding = len(data) - len(data.lstrip(b"\0"))
    return "1" * padding + "".join(reversed(digits))


def _b58decode(text: str) -> bytes:
    number = 0
    for char in text:
        position = _ALPHABET.find(char)
        if position < 0:
            raise ValueError(f"invalid base58 character: {char!r}")
        number = number * 58 + position
    padding = len(text) - len(text.lstrip("1"))
    return b"\0" * padding + number.to_bytes((number.bit_length() + 7) // 8, "big")


@dataclass(frozen=True)
class Pubkey:
    """A 32-byte account address."""

    data: bytes = field(default=bytes(32))

    def __post_init__(self) -> None:
        raw = bytes(self.data)
        if len(raw) != 32:
            raise ValueError(f"a public key is 32 bytes, got {len(raw)}")
        object.__setattr__(self, "data", raw)

    @classmethod
    def default(cls) -> Pubkey:
        """The all-zero address."""
        return cls(bytes(32))

    @classmethod
    def unique(cls) -> Pubkey:
        """A fresh address distinct from every other one made this way."""
        return cls(next(_unique_counter).to_bytes(8, "big") + bytes(24))

    def __bytes__(self) -> bytes:
        return self.data

    def __str__(self) -> str:
        return _b58encode(self.data)

    def __repr__(self) -> str:
        return f"Pubkey({self})"


PROGRAM_ID = Pubkey(_b58decode("DKwV8oEV9J4uP8eHePtxWnF48pntHukgjSkWQxqvutHR"))


def _seed_bytes(seeds: Iterable[Any]) -> list[bytes]:
    result = []
    for seed in seeds:
        if isinstance(seed, int):
            raise TypeError("seeds must be byte strings or public keys")
        raw = bytes(seed)
        if len(raw) > MAX_SEED_LEN:
            raise ValueError(f"seed longer than {MAX_SEED_LEN} bytes")
        result.append(raw)
    if len(result) > MAX_SEEDS:
        raise ValueError(f"more than {MAX_SEEDS} seeds")
    return result


def _is_on_curve(data: bytes) -> bool:
    y = int.from_bytes(data, "little") & ((1 << 255) - 1)
    y2 = y * y % _P
    u = (y2 - 1) % _P
    v = (_D * y2 + 1) % _P
    x2 = u * pow(v, _P - 2, _P) % _P
    return x2 == 0 or pow(x2, (_P - 1) // 2, _P) == 1


def _derive(seeds: list[bytes], program_id: Pubkey) -> Pubkey | None:
    digest = hashlib.sha256(b"".join(seeds) + bytes(program_id) + _PDA_MARKER).digest()
    if _is_on_curve(digest):
        return None
    return Pubkey(digest)


def create_program_address(seeds: Iterable[Any], program_id: Pubkey) -> Pubkey:
    """Derive an off-curve address from seeds; raise ValueError if none exists."""
    address = _derive(_seed_bytes(seeds), program_id)
    if address is None:
        raise ValueError("seeds produce an address on the curve")
    return address


def find_program_address(seeds: Iterable[Any], program_id: Pubkey) -> tuple[Pubkey, int]:
    """Find the derived address with the highest valid bump seed."""
    raw = _seed_bytes(seeds)
    if len(raw) >= MAX_SEEDS:
        raise ValueError(f"at most {MAX_SEEDS - 1} seeds leave room for a bump")
    for bump in range(255, -1, -1):
        address = _derive(raw + [bytes([bump])], program_id)
        if address is not None:
            return address, bump
    raise ValueError("no viable bump seed found")


Handler = Callable[[Sequence[Pubkey], bytes], Any]


class Ledger:
    """Balances, clock, rent, emitted events and callable programs."""

    def __init__(
        self,
        unix_timestamp: int = 0,
        lamports_per_byte_year: int = DEFAULT_LAMPORTS_PER_BYTE_YEAR,
        exemption_threshold: float = DEFAULT_EXEMPTION_THRESHOLD,
    ) -> None:
        self.unix_timestamp = unix_timestamp
        self.lamports_per_byte_year = lamports_per_byte_year
        self.exemption_threshold = exemption_threshold
        self.events: list[Any] = []
        self._balances: dict[Pubkey, int] = {}
        self._programs: dict[Pubkey, Handler] = {}

    def balance(self, key: Pubkey) -> int:
        return self._balances.get(key, 0)

    @staticmethod
    def _check_amount(amount: int) -> None:
        if amount < 0:
            raise ValueError("amount must not be negative")

    def add_lamports(self, key: Pubkey, amount: int) -> None:
        self._check_amount(amount)
        total = self.balance(key) + amount
        if total > U64_MAX:
            raise OverflowError("balance overflow")
        self._balances[key] = total

    def sub_lamports(self, key: Pubkey, amount: int) -> None:
        self._check_amount(amount)
        current = self.balance(key)
        if amount > current:
            raise ValueError(f"insufficient funds in {key}")
        self._balances[key] = current - amount

    def transfer(self, source: Pubkey, destination: Pubkey, amount: int) -> None:
        self._check_amount(amount)
        if amount > self.balance(source):
            raise ValueError(f"insufficient funds in {source}")
        if self.balance(destination) + amount > U64_MAX and source != destination:
            raise OverflowError("balance overflow")
        self.sub_lamports(source, amount)
        self.add_lamports(destination, amount)

    def minimum_balance(self, size: int) -> int:
        """Lamports an account of ``size`` data bytes needs to be rent exempt."""
        per_year = (ACCOUNT_STORAGE_OVERHEAD + size) * self.lamports_per_byte_year
        return int(per_year * self.exemption_threshold)

    def advance_clock(self, seconds: int) -> None:
        self.unix_timestamp += seconds

    def emit(self, event: Any) -> None:
        self.events.append(event)

    def register_program(self, key: Pubkey, handler: Handler) -> None:
        self._programs[key] = handler

    def is_executable(self, key: Pubkey) -> bool:
        return key in self._programs

    def invoke(self, program_id: Pubkey, accounts: Sequence[Pubkey], data: bytes) -> Any:
        """Call a registered program with the given accounts and data."""
        try:
            handler = self._programs[program_id]
        except KeyError:
            raise ValueError(f"{program_id} is not an executable program") from None
        return handler(list(accounts), bytes(data))