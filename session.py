"""Proof session state machine.

A ``ProofSession`` is a plain value owned by the caller; ``SessionController``
drives it through the lifecycle::

    IDLE -> NORMALIZING -> GENERATING -> GENERATED -> VERIFYING -> VERIFIED | INVALID

ERROR is reachable from NORMALIZING, GENERATING and VERIFYING.

At most one operation is in flight per session. Any error leaves the session
ready for a new submission; a verification error keeps the proof.

ERROR is kept as the recorded state so the failure stays observable, but it
behaves as IDLE after an input or generation error (submit is accepted, no
proof is held) and as GENERATED after a verification error (the proof is
kept and can be verified again or replaced).
"""
import datetime as dt
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from circuit import load_circuit
from errors import (
    AgeProofError,
    ErrorKind,
    NoProofError,
    ProofGenerationFailed,
    SessionBusyError,
    VerificationError,
)
from normalizer import PublicInputs, normalize
from proving import ProvingService
from verification import VerificationService
from zk_proofs import Proof, ReferenceBackend

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    NORMALIZING = "normalizing"
    GENERATING = "generating"
    GENERATED = "generated"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    INVALID = "invalid"
    ERROR = "error"


IN_FLIGHT = frozenset({SessionState.NORMALIZING, SessionState.GENERATING, SessionState.VERIFYING})


@dataclass
class ProofSession:
    state: SessionState = SessionState.IDLE
    proof: Optional[Proof] = None
    public_inputs: Optional[PublicInputs] = None
    last_error: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    verdict: Optional[bool] = None
    min_age: Optional[int] = None

    @property
    def busy(self) -> bool:
        return self.state in IN_FLIGHT

    @property
    def can_generate(self) -> bool:
        return not self.busy

    @property
    def can_verify(self) -> bool:
        return not self.busy and self.proof is not None and self.public_inputs is not None

    def discard_proof(self):
        self.proof = None
        self.public_inputs = None
        self.verdict = None

    def clear_error(self):
        self.last_error = None
        self.error_message = None


class SessionController:
    """Ties normalizer, proving and verification services to a session"""

    def __init__(self, prover: ProvingService, verifier: VerificationService,
                 clock: Callable[[], dt.date] = dt.date.today):
        self.prover = prover
        self.verifier = verifier
        self.clock = clock

    def _guard(self, session: ProofSession, action: str):
        if session.busy:
            raise SessionBusyError(f"Cannot {action}: session is {session.state.value}")

    def _fail(self, session: ProofSession, err: AgeProofError) -> ProofSession:
        session.discard_proof()
        session.state = SessionState.ERROR
        session.last_error = err.kind
        session.error_message = None
        logger.info("Proof generation ended with %s", err.kind.value)
        return session

    async def submit(self, session: ProofSession, raw_birth_date, raw_min_age) -> ProofSession:
        self._guard(session, "generate")

        session.state = SessionState.NORMALIZING
        session.discard_proof()
        session.clear_error()
        session.min_age = None

        try:
            inputs = normalize(raw_birth_date, raw_min_age, today=self.clock(),
                               circuit=self.prover.circuit)
        except AgeProofError as e:
            return self._fail(session, e)
        except Exception as e:
            logger.exception("Unexpected normalization failure")
            return self._fail(session, ProofGenerationFailed(str(e)))

        session.min_age = inputs.public.min_age
        session.state = SessionState.GENERATING
        logger.info("Generating proof with inputs: %s", inputs.redacted())

        try:
            witness = await self.prover.execute(inputs)
            proof = await self.prover.prove(witness)
        except AgeProofError as e:
            return self._fail(session, e)
        except Exception as e:
            logger.exception("Unexpected proving failure")
            return self._fail(session, ProofGenerationFailed(str(e)))

        expected = tuple(inputs.public.as_dict()[n] for n in self.prover.circuit.public_names)
        if tuple(proof.public_inputs) != expected:
            return self._fail(session, ProofGenerationFailed("Proof public inputs do not match request"))

        session.proof = proof
        session.public_inputs = inputs.public
        session.verdict = None
        session.state = SessionState.GENERATED
        return session

    async def verify(self, session: ProofSession) -> ProofSession:
        self._guard(session, "verify")
        if session.proof is None:
            raise NoProofError("No proof to verify. Generate a proof first.")

        session.state = SessionState.VERIFYING
        session.verdict = None
        session.clear_error()

        try:
            valid = await self.verifier.verify(session.proof)
        except VerificationError as e:
            session.state = SessionState.ERROR
            session.last_error = e.kind
            session.error_message = str(e)
            return session

        session.verdict = valid
        session.state = SessionState.VERIFIED if valid else SessionState.INVALID
        return session

    def reinitialize(self, session: ProofSession):
        """Explicit "refresh and retry" recovery: drop cached setup data"""
        self._guard(session, "re-initialize")
        self.prover.reinitialize()


def create_controller(config, clock: Callable[[], dt.date] = dt.date.today) -> SessionController:
    """Load the circuit and build the process-wide backend handle.

    Raises BackendInitError (or CircuitArtifactError) when the circuit
    cannot be loaded.
    """
    circuit = load_circuit(config.circuit_path, expected_digest=config.circuit_digest)
    backend = ReferenceBackend.initialize(circuit, config)
    logger.info("Circuit %s@%s initialized", circuit.name, circuit.version)
    return SessionController(ProvingService(backend), VerificationService(backend), clock=clock)
