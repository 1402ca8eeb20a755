import re
import datetime as dt
from dataclasses import dataclass, field, asdict
from typing import Dict, Optional

from errors import InvalidDate, InvalidMinAge, MissingInput

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_INTEGER = re.compile(r"^[+-]?[0-9]+$")
MAX_MIN_AGE_DIGITS = 10


@dataclass(frozen=True)
class PrivateInputs:
    birth_year: int
    birth_month: int
    birth_day: int

    def __repr__(self):
        return "PrivateInputs(***)"


@dataclass(frozen=True)
class PublicInputs:
    current_year: int
    current_month: int
    current_day: int
    min_age: int

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class CircuitInputs:
    public: PublicInputs
    private: PrivateInputs = field(repr=False)

    def as_abi_map(self) -> Dict[str, int]:
        """Named inputs in the shape the circuit ABI declares"""
        out = asdict(self.private)
        out.update(asdict(self.public))
        return out

    def redacted(self) -> Dict[str, object]:
        """Loggable view: private fields masked"""
        out = {k: "***" for k in asdict(self.private)}
        out.update(asdict(self.public))
        return out


def _parse_birth_date(raw: str) -> dt.date:
    m = _ISO_DATE.match(raw)
    if not m:
        raise InvalidDate("Birth date must be formatted YYYY-MM-DD")
    try:
        return dt.date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError as e:
        raise InvalidDate(f"Not a calendar date: {e}") from None


def _parse_min_age(raw) -> int:
    text = "" if raw is None else str(raw).strip()
    if not _INTEGER.match(text):
        raise InvalidMinAge("Minimum age must be an integer")
    if len(text.lstrip("+-").lstrip("0")) > MAX_MIN_AGE_DIGITS:
        raise InvalidMinAge("Minimum age is too large")
    try:
        value = int(text)
    except ValueError:
        raise InvalidMinAge("Minimum age must be an integer") from None
    if value < 0:
        raise InvalidMinAge("Minimum age must not be negative")
    return value


def _check_min_age_range(circuit, min_age: int):
    for p in circuit.parameters:
        if p.name == "min_age":
            lo, hi = p.bounds()
            if not lo <= min_age <= hi:
                raise InvalidMinAge(f"Minimum age must be at most {hi}")


def normalize(raw_birth_date: Optional[str], raw_min_age, today: Optional[dt.date] = None,
              circuit=None) -> CircuitInputs:
    """Turn raw form fields into circuit inputs.

    The current date is read at call time, so a proof asserts age as of its
    generation. A birth date in the future is passed through; the circuit
    rejects it.

    A min_age outside the range of the circuit's min_age parameter is an
    input error (InvalidMinAge); any other ABI mismatch is a deployment
    fault and raises InputSchemaError.
    """
    birth_str = (raw_birth_date or "").strip()
    if not birth_str:
        raise MissingInput("Birth date is required")

    birth = _parse_birth_date(birth_str)
    min_age = _parse_min_age(raw_min_age)
    now = today or dt.date.today()

    inputs = CircuitInputs(
        public=PublicInputs(
            current_year=now.year,
            current_month=now.month,
            current_day=now.day,
            min_age=min_age,
        ),
        private=PrivateInputs(
            birth_year=birth.year,
            birth_month=birth.month,
            birth_day=birth.day,
        ),
    )
    if circuit is not None:
        _check_min_age_range(circuit, min_age)
        circuit.encode_inputs(inputs.as_abi_map())
    return inputs
