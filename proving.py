import asyncio
import logging

from errors import (
    AgeProofError,
    ConstraintUnsatisfied,
    ProofGenerationFailed,
    SetupDownloadFailed,
    SetupFetchError,
    WitnessGenerationFailed,
)

logger = logging.getLogger(__name__)

# Best-effort markers for backends that only report free text
CONSTRAINT_MARKERS = ("assert",)
NETWORK_MARKERS = ("failed to fetch", "network")


def _has_marker(exc: BaseException, markers) -> bool:
    text = str(exc).lower()
    return any(m in text for m in markers)


def classify_execute_error(exc: Exception) -> AgeProofError:
    if isinstance(exc, AgeProofError):
        return exc
    if isinstance(exc, ConstraintUnsatisfied) or _has_marker(exc, CONSTRAINT_MARKERS):
        return WitnessGenerationFailed("Circuit constraints not satisfied")
    if isinstance(exc, SetupFetchError) or _has_marker(exc, NETWORK_MARKERS):
        return SetupDownloadFailed(str(exc))
    return ProofGenerationFailed(f"Witness execution failed: {exc}")


def classify_prove_error(exc: Exception) -> AgeProofError:
    if isinstance(exc, AgeProofError):
        return exc
    if isinstance(exc, SetupFetchError) or _has_marker(exc, NETWORK_MARKERS):
        return SetupDownloadFailed(str(exc))
    return ProofGenerationFailed(f"Proof generation failed: {exc}")


class ProvingService:
    """Owns the circuit and backend handle; turns inputs into proofs.

    Holds no concurrency guard of its own: the session controller allows at
    most one in-flight execute/prove pair per session.
    """

    def __init__(self, backend):
        self.backend = backend

    @property
    def circuit(self):
        return self.backend.circuit

    async def execute(self, inputs):
        try:
            abi_inputs = inputs.as_abi_map()
            self.circuit.encode_inputs(abi_inputs)
            return await asyncio.to_thread(self.backend.execute_witness, abi_inputs)
        except Exception as e:
            err = classify_execute_error(e)
            logger.info("Witness generation failed: %s", err.kind.value)
            if err is e:
                raise
            raise err from e

    async def prove(self, witness):
        first_call = not getattr(self.backend, "setup_loaded", True)
        if first_call:
            logger.info("First proof in this process; setup data may need to be downloaded")
        try:
            proof = await asyncio.to_thread(self.backend.generate_proof, witness)
        except Exception as e:
            err = classify_prove_error(e)
            logger.warning("Proof generation failed (%s): %s", err.kind.value, e)
            if err is e:
                raise
            raise err from e
        logger.info("Proof generated (%d bytes)", len(proof.proof))
        return proof

    def reinitialize(self):
        """Recovery action: forget cached setup data"""
        logger.info("Re-initializing proving backend setup")
        self.backend.reset_setup()
