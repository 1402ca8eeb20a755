# zk_proofs.py
import hmac
import logging
import os
import threading
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
import requests

from errors import (
    BackendError,
    BackendInitError,
    ConstraintUnsatisfied,
    MalformedProofError,
    SetupFetchError,
)
from proof_utils import (
    canonical_public_bytes,
    commit_witness,
    compute_binding_tag,
    derive_setup_key,
    make_public_view,
)

logger = logging.getLogger(__name__)

DIGEST_LEN = 32


@dataclass(frozen=True, eq=False)
class Witness:
    """Solved circuit values. Contains private inputs; never log it"""
    values: np.ndarray
    public_inputs: Tuple[int, ...]
    circuit_digest: str

    def __repr__(self):
        return f"Witness(n={self.values.size}, circuit={self.circuit_digest[:12]})"


@dataclass(frozen=True)
class Proof:
    proof: bytes
    public_inputs: Tuple[int, ...]


def age_verification_program(inputs: Dict[str, int]) -> List[int]:
    """Circuit program: age(birth, current) >= min_age by year/month/day comparison.

    Returns the intermediate values (age, birthday_passed). Raises
    ConstraintUnsatisfied on any failed assertion.
    """
    by, bm, bd = inputs["birth_year"], inputs["birth_month"], inputs["birth_day"]
    cy, cm, cd = inputs["current_year"], inputs["current_month"], inputs["current_day"]

    if not (1 <= bm <= 12 and 1 <= bd <= 31 and 1 <= cm <= 12 and 1 <= cd <= 31):
        raise ConstraintUnsatisfied("Failed assertion: date component out of range")
    if cy < by:
        raise ConstraintUnsatisfied("Failed assertion: current_year >= birth_year")

    birthday_passed = cm > bm or (cm == bm and cd >= bd)
    age = cy - by - (0 if birthday_passed else 1)
    if age < 0:
        raise ConstraintUnsatisfied("Failed assertion: birth date not in the future")
    if age < inputs["min_age"]:
        raise ConstraintUnsatisfied("Failed assertion: age >= min_age")

    return [age, int(birthday_passed)]


PROGRAMS = {
    "age_verification": age_verification_program,
}


class ReferenceBackend:
    """Functional proving backend (NOT cryptographically secure).

    Proof layout: nonce || witness commitment || HMAC binding tag. The tag
    binds the commitment and the public inputs under a key derived from
    setup data, which is fetched lazily on the first proof-related call and
    cached for the lifetime of the handle.
    """

    def __init__(self, circuit, setup_url: Optional[str] = None, setup_timeout: float = 30.0,
                 nonce_bytes: int = 16):
        if circuit.program not in PROGRAMS:
            raise BackendInitError(f"No program registered for circuit '{circuit.program}'")
        self.circuit = circuit
        self.setup_url = setup_url
        self.setup_timeout = float(setup_timeout)
        self.nonce_bytes = int(nonce_bytes)
        self._program = PROGRAMS[circuit.program]
        self._setup_key = None
        self._setup_lock = threading.Lock()

    @classmethod
    def initialize(cls, circuit, config=None) -> "ReferenceBackend":
        if config is None:
            return cls(circuit)
        return cls(
            circuit,
            setup_url=config.setup_url,
            setup_timeout=config.setup_timeout,
            nonce_bytes=config.nonce_bytes,
        )

    @property
    def proof_length(self) -> int:
        return self.nonce_bytes + 2 * DIGEST_LEN

    @property
    def setup_loaded(self) -> bool:
        return self._setup_key is not None

    # ---- witness ----

    def execute_witness(self, inputs: Mapping[str, int]) -> Witness:
        values = self.circuit.encode_inputs(inputs)
        names = [p.name for p in self.circuit.parameters]
        named = dict(zip(names, values))

        solved = self._program(named)

        return Witness(
            values=np.asarray(values + solved, dtype=np.int64),
            public_inputs=tuple(named[n] for n in self.circuit.public_names),
            circuit_digest=self.circuit.digest,
        )

    # ---- proofs ----

    def generate_proof(self, witness: Witness) -> Proof:
        if witness.circuit_digest != self.circuit.digest:
            raise BackendError("Witness was produced for a different circuit")

        key = self._ensure_setup()
        nonce = os.urandom(self.nonce_bytes)
        commitment = commit_witness(nonce, witness.values)
        tag = compute_binding_tag(key, nonce, commitment, self._public_bytes(witness.public_inputs))

        return Proof(proof=nonce + commitment + tag, public_inputs=tuple(witness.public_inputs))

    def verify_proof(self, proof: Proof) -> bool:
        data = proof.proof
        if not isinstance(data, (bytes, bytearray)) or len(data) != self.proof_length:
            size = len(data) if isinstance(data, (bytes, bytearray)) else type(data).__name__
            raise MalformedProofError(f"Malformed proof: expected {self.proof_length} bytes, got {size}")
        if len(proof.public_inputs) != len(self.circuit.public_names):
            raise MalformedProofError(
                f"Malformed proof: expected {len(self.circuit.public_names)} public inputs, "
                f"got {len(proof.public_inputs)}"
            )

        try:
            public_bytes = self._public_bytes(proof.public_inputs)
        except (TypeError, ValueError) as e:
            raise MalformedProofError(f"Malformed public inputs: {e}") from e

        key = self._ensure_setup()
        data = bytes(data)
        nonce = data[:self.nonce_bytes]
        commitment = data[self.nonce_bytes:self.nonce_bytes + DIGEST_LEN]
        tag = data[self.nonce_bytes + DIGEST_LEN:]

        expected = compute_binding_tag(key, nonce, commitment, public_bytes)
        return hmac.compare_digest(tag, expected)

    def _public_bytes(self, public_values) -> bytes:
        return canonical_public_bytes(make_public_view(self.circuit.public_names, public_values))

    # ---- setup data ----

    def _ensure_setup(self) -> bytes:
        with self._setup_lock:
            if self._setup_key is None:
                self._setup_key = derive_setup_key(self.circuit.digest, self._load_setup_data())
            return self._setup_key

    def _load_setup_data(self) -> bytes:
        if not self.setup_url:
            logger.debug("Deriving setup data locally for %s", self.circuit.name)
            return b""

        logger.info("Downloading setup data from %s", self.setup_url)
        try:
            response = requests.get(self.setup_url, timeout=self.setup_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise SetupFetchError(f"Failed to fetch setup data from {self.setup_url}: {e}") from e

        if not response.content:
            raise SetupFetchError(f"Failed to fetch setup data from {self.setup_url}: empty response")
        logger.info("Setup data ready (%d bytes)", len(response.content))
        return response.content

    def reset_setup(self):
        """Drop cached setup data; the next proof-related call fetches again"""
        with self._setup_lock:
            self._setup_key = None
