"""Reference backend: witness execution, proof binding and setup data."""

import dataclasses
import json
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import requests

from circuit import load_circuit
from errors import (
    BackendError,
    BackendInitError,
    ConstraintUnsatisfied,
    MalformedProofError,
    SetupFetchError,
)
from zk_proofs import ReferenceBackend, age_verification_program


def abi_inputs(birth=(2000, 1, 1), current=(2024, 6, 1), min_age=18):
    return {
        "birth_year": birth[0], "birth_month": birth[1], "birth_day": birth[2],
        "current_year": current[0], "current_month": current[1], "current_day": current[2],
        "min_age": min_age,
    }


class TestAgeProgram:

    def test_old_enough(self):
        age, birthday_passed = age_verification_program(abi_inputs())
        assert age == 24
        assert birthday_passed == 1

    def test_too_young(self):
        with pytest.raises(ConstraintUnsatisfied):
            age_verification_program(abi_inputs(birth=(2010, 1, 1), min_age=21))

    def test_birthday_today_counts(self):
        age, _ = age_verification_program(abi_inputs(birth=(2006, 6, 1), min_age=18))
        assert age == 18

    def test_day_before_birthday(self):
        with pytest.raises(ConstraintUnsatisfied):
            age_verification_program(abi_inputs(birth=(2006, 6, 2), min_age=18))

    def test_future_birth_date(self):
        with pytest.raises(ConstraintUnsatisfied):
            age_verification_program(abi_inputs(birth=(2030, 1, 1), min_age=0))

    def test_later_this_year_with_zero_min_age(self):
        with pytest.raises(ConstraintUnsatisfied):
            age_verification_program(abi_inputs(birth=(2024, 12, 1), min_age=0))


class TestReferenceBackend:

    def test_unknown_program(self, tmp_path):
        doc = {"name": "other", "program": "other", "abi": {"parameters": []}}
        path = tmp_path / "other.json"
        path.write_text(json.dumps(doc))
        with pytest.raises(BackendInitError):
            ReferenceBackend(load_circuit(path))

    def test_witness_shape(self, backend):
        witness = backend.execute_witness(abi_inputs())
        assert witness.values.dtype == np.int64
        assert witness.values.tolist() == [2000, 1, 1, 2024, 6, 1, 18, 24, 1]
        assert witness.public_inputs == (2024, 6, 1, 18)
        assert "2000" not in repr(witness)

    def test_prove_and_verify(self, backend):
        proof = backend.generate_proof(backend.execute_witness(abi_inputs()))
        assert len(proof.proof) == backend.proof_length
        assert proof.public_inputs == (2024, 6, 1, 18)
        assert backend.verify_proof(proof) is True

    def test_proofs_are_randomized(self, backend):
        witness = backend.execute_witness(abi_inputs())
        a = backend.generate_proof(witness)
        b = backend.generate_proof(witness)
        assert a.proof != b.proof
        assert backend.verify_proof(a) and backend.verify_proof(b)

    def test_tampered_bytes_are_invalid(self, backend):
        proof = backend.generate_proof(backend.execute_witness(abi_inputs()))
        for index in (0, backend.nonce_bytes, len(proof.proof) - 1):
            data = bytearray(proof.proof)
            data[index] ^= 0xFF
            assert backend.verify_proof(dataclasses.replace(proof, proof=bytes(data))) is False

    def test_tampered_public_inputs_are_invalid(self, backend):
        proof = backend.generate_proof(backend.execute_witness(abi_inputs()))
        forged = dataclasses.replace(proof, public_inputs=(2024, 6, 1, 21))
        assert backend.verify_proof(forged) is False

    def test_truncated_proof_is_malformed(self, backend):
        proof = backend.generate_proof(backend.execute_witness(abi_inputs()))
        with pytest.raises(MalformedProofError):
            backend.verify_proof(dataclasses.replace(proof, proof=proof.proof[:-1]))

    def test_wrong_public_input_arity_is_malformed(self, backend):
        proof = backend.generate_proof(backend.execute_witness(abi_inputs()))
        with pytest.raises(MalformedProofError):
            backend.verify_proof(dataclasses.replace(proof, public_inputs=(2024, 6, 1)))

    def test_witness_from_other_circuit(self, backend):
        witness = dataclasses.replace(backend.execute_witness(abi_inputs()), circuit_digest="f" * 64)
        with pytest.raises(BackendError):
            backend.generate_proof(witness)

    def test_proof_from_other_setup_is_invalid(self, circuit):
        prover = ReferenceBackend(circuit)
        proof = prover.generate_proof(prover.execute_witness(abi_inputs()))

        other = ReferenceBackend(circuit, setup_url="https://setup.example/params")
        response = MagicMock(content=b"different parameters")
        with patch("zk_proofs.requests.get", return_value=response):
            assert other.verify_proof(proof) is False


class TestSetupData:

    def test_local_setup_needs_no_network(self, backend):
        with patch("zk_proofs.requests.get") as get:
            backend.generate_proof(backend.execute_witness(abi_inputs()))
        get.assert_not_called()
        assert backend.setup_loaded

    def test_fetched_once(self, circuit):
        backend = ReferenceBackend(circuit, setup_url="https://setup.example/params", setup_timeout=5)
        response = MagicMock(content=b"setup parameters")
        with patch("zk_proofs.requests.get", return_value=response) as get:
            witness = backend.execute_witness(abi_inputs())
            proof = backend.generate_proof(witness)
            backend.generate_proof(witness)
            assert backend.verify_proof(proof)

        get.assert_called_once_with("https://setup.example/params", timeout=5.0)
        response.raise_for_status.assert_called_once()

    def test_fetch_failure(self, circuit):
        backend = ReferenceBackend(circuit, setup_url="https://setup.example/params")
        witness = backend.execute_witness(abi_inputs())
        with patch("zk_proofs.requests.get", side_effect=requests.ConnectionError("connection refused")):
            with pytest.raises(SetupFetchError, match="Failed to fetch"):
                backend.generate_proof(witness)
        assert not backend.setup_loaded

    def test_empty_setup_response(self, circuit):
        backend = ReferenceBackend(circuit, setup_url="https://setup.example/params")
        with patch("zk_proofs.requests.get", return_value=MagicMock(content=b"")):
            with pytest.raises(SetupFetchError):
                backend.generate_proof(backend.execute_witness(abi_inputs()))

    def test_reset_setup_refetches(self, circuit):
        backend = ReferenceBackend(circuit, setup_url="https://setup.example/params")
        response = MagicMock(content=b"setup parameters")
        with patch("zk_proofs.requests.get", return_value=response) as get:
            witness = backend.execute_witness(abi_inputs())
            backend.generate_proof(witness)
            backend.reset_setup()
            assert not backend.setup_loaded
            backend.generate_proof(witness)
        assert get.call_count == 2
