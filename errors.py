"""Closed error taxonomy for the proof lifecycle.

Every user-facing failure is an ``AgeProofError`` carrying one ``ErrorKind``.
Backend-level failures are ``BackendError`` subclasses; the proving and
verification services translate them into the taxonomy.
"""
from enum import Enum


class ErrorKind(str, Enum):
    MISSING_INPUT = "MissingInput"
    INVALID_DATE = "InvalidDate"
    INVALID_MIN_AGE = "InvalidMinAge"
    AGE_REQUIREMENT_NOT_MET = "AgeRequirementNotMet"
    PROOF_GENERATION_FAILED = "ProofGenerationFailed"
    SETUP_DOWNLOAD_FAILED = "SetupDownloadFailed"
    VERIFICATION_ERROR = "VerificationError"


class AgeProofError(Exception):
    kind: ErrorKind = ErrorKind.PROOF_GENERATION_FAILED

    def __init__(self, message: str = "", kind: ErrorKind = None):
        super().__init__(message or self.__class__.__name__)
        if kind is not None:
            self.kind = kind


class ValidationError(AgeProofError):
    """Raised by the input normalizer"""


class MissingInput(ValidationError):
    kind = ErrorKind.MISSING_INPUT


class InvalidDate(ValidationError):
    kind = ErrorKind.INVALID_DATE


class InvalidMinAge(ValidationError):
    kind = ErrorKind.INVALID_MIN_AGE


class WitnessGenerationFailed(AgeProofError):
    """Circuit unsatisfiable for the given inputs.

    Carries no structured reason: which constraint failed is unknown.
    """
    kind = ErrorKind.AGE_REQUIREMENT_NOT_MET


class ProofGenerationFailed(AgeProofError):
    kind = ErrorKind.PROOF_GENERATION_FAILED


class InputSchemaError(ProofGenerationFailed):
    """Inputs do not match the circuit's declared ABI"""


class SetupDownloadFailed(ProofGenerationFailed):
    kind = ErrorKind.SETUP_DOWNLOAD_FAILED


class VerificationError(AgeProofError):
    """Backend could not check the proof (distinct from an invalid proof)"""
    kind = ErrorKind.VERIFICATION_ERROR


# Programming errors, outside the taxonomy

class NoProofError(RuntimeError):
    """verify() called on a session that holds no proof"""


class SessionBusyError(RuntimeError):
    """An operation is already in flight for this session"""


# Backend-level errors

class BackendError(Exception):
    pass


class BackendInitError(BackendError):
    pass


class CircuitArtifactError(BackendInitError):
    pass


class ConstraintUnsatisfied(BackendError):
    pass


class SetupFetchError(BackendError):
    pass


class MalformedProofError(BackendError):
    pass
