"""
Shared fixtures for the age proof test suite.

- circuit: the shipped age_verification artifact
- backend: reference backend with locally derived setup data (no network)
- prover / verifier: services sharing one backend handle
- controller: session controller pinned to a fixed "today"
"""

import datetime as dt
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from circuit import load_circuit  # noqa: E402
from config import DEFAULT_CIRCUIT_PATH, SETUP_URL_ENV  # noqa: E402
from proving import ProvingService  # noqa: E402
from session import ProofSession, SessionController  # noqa: E402
from verification import VerificationService  # noqa: E402
from zk_proofs import ReferenceBackend  # noqa: E402

FIXED_TODAY = dt.date(2024, 6, 1)


@pytest.fixture(autouse=True)
def no_remote_setup(monkeypatch):
    """Never hit the network unless a test opts in."""
    monkeypatch.delenv(SETUP_URL_ENV, raising=False)


@pytest.fixture
def today():
    return FIXED_TODAY


@pytest.fixture
def circuit():
    return load_circuit(DEFAULT_CIRCUIT_PATH)


@pytest.fixture
def backend(circuit):
    return ReferenceBackend(circuit)


@pytest.fixture
def prover(backend):
    return ProvingService(backend)


@pytest.fixture
def verifier(backend):
    return VerificationService(backend)


@pytest.fixture
def controller(prover, verifier, today):
    return SessionController(prover, verifier, clock=lambda: today)


@pytest.fixture
def session():
    return ProofSession()
