import json
from dataclasses import dataclass
from typing import Optional

from errors import ErrorKind
from proof_utils import proof_hex
from session import ProofSession, SessionState

GENERATING_TEXT = "Generating zero-knowledge proof... This may take a moment."
VERIFYING_TEXT = "Verifying proof..."
INIT_FAILED_MESSAGE = "Failed to initialize the zero-knowledge circuit. Please refresh the page."

ERROR_MESSAGES = {
    ErrorKind.MISSING_INPUT: "Please enter your birth date.",
    ErrorKind.INVALID_DATE: "Please enter a valid birth date.",
    ErrorKind.INVALID_MIN_AGE: "Please enter a valid minimum age.",
    ErrorKind.AGE_REQUIREMENT_NOT_MET: "Age verification failed. You must be at least {min_age} years old.",
    ErrorKind.SETUP_DOWNLOAD_FAILED: (
        "Network error: Unable to download cryptographic setup data. "
        "Please check your internet connection and try again."
    ),
    ErrorKind.PROOF_GENERATION_FAILED: "Failed to generate proof. Please check your inputs and try again.",
}


@dataclass(frozen=True)
class Panel:
    success: bool
    title: str
    message: str


@dataclass(frozen=True)
class ProofDetails:
    public_inputs_json: str
    proof_hex: str


@dataclass(frozen=True)
class ViewModel:
    loading: bool
    loading_text: Optional[str]
    generate_enabled: bool
    verify_enabled: bool
    result: Optional[Panel]
    proof_details: Optional[ProofDetails]
    verdict: Optional[Panel]


def _result_panel(session: ProofSession) -> Optional[Panel]:
    if session.proof is not None and session.public_inputs is not None:
        return Panel(
            True,
            "Verification Successful",
            f"Proof generated successfully! You have proven that you are at least "
            f"{session.public_inputs.min_age} years old.",
        )
    if session.last_error in ERROR_MESSAGES:
        message = ERROR_MESSAGES[session.last_error].format(min_age=session.min_age)
        return Panel(False, "Verification Failed", message)
    return None


def _verdict_panel(session: ProofSession) -> Optional[Panel]:
    if session.state == SessionState.VERIFIED:
        return Panel(True, "Proof verified successfully!",
                     "The proof is valid and confirms the age requirement.")
    if session.state == SessionState.INVALID:
        return Panel(False, "Proof verification failed!", "The proof is invalid.")
    if session.last_error == ErrorKind.VERIFICATION_ERROR:
        return Panel(False, "Verification error:", session.error_message or "")
    return None


def render(session: ProofSession) -> ViewModel:
    """Project a session into what the front end shows and enables"""
    details = None
    if session.proof is not None and session.public_inputs is not None:
        details = ProofDetails(
            public_inputs_json=json.dumps(session.public_inputs.as_dict(), indent=2),
            proof_hex=proof_hex(session.proof.proof),
        )

    loading_text = None
    if session.state in (SessionState.NORMALIZING, SessionState.GENERATING):
        loading_text = GENERATING_TEXT
    elif session.state == SessionState.VERIFYING:
        loading_text = VERIFYING_TEXT

    return ViewModel(
        loading=session.busy,
        loading_text=loading_text,
        generate_enabled=session.can_generate,
        verify_enabled=session.can_verify,
        result=None if session.busy and details is None else _result_panel(session),
        proof_details=details,
        verdict=_verdict_panel(session),
    )
