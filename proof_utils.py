# proof_utils.py
import hashlib
import hmac
import json
import struct

import numpy as np

PROOF_TAG = b"AGEPROOF|proof-v1|"
COMMIT_TAG = b"AGEPROOF|witness-v1|"
SETUP_TAG = b"AGEPROOF|setup-v1|"


def make_public_view(public_names, public_values) -> dict:
    """Extract exact fields bound into a proof - MUST be identical on both sides"""
    if len(public_names) != len(public_values):
        raise ValueError("public input arity mismatch")
    view = {"version": "ageproof-v1"}
    for name, value in zip(public_names, public_values):
        view[str(name)] = int(value)
    return view


def canonical_public_bytes(public_view: dict) -> bytes:
    """Stable JSON serialization"""
    return json.dumps(public_view, sort_keys=True, separators=(",", ":")).encode("utf-8")


def pack_ints(values) -> bytes:
    """Fixed-width big-endian encoding of a value vector"""
    arr = np.asarray(values, dtype=np.int64)
    return struct.pack(f">{arr.size}q", *arr.tolist())


def commit_witness(nonce: bytes, values) -> bytes:
    """Hiding commitment to the solved witness"""
    return hashlib.sha256(COMMIT_TAG + nonce + pack_ints(values)).digest()


def derive_setup_key(circuit_digest: str, setup_data: bytes) -> bytes:
    return hashlib.sha256(SETUP_TAG + circuit_digest.encode("utf-8") + setup_data).digest()


def compute_binding_tag(setup_key: bytes, nonce: bytes, commitment: bytes, public_bytes: bytes) -> bytes:
    return hmac.new(setup_key, PROOF_TAG + nonce + commitment + public_bytes, hashlib.sha256).digest()


def proof_hex(proof_bytes) -> str:
    return bytes(proof_bytes).hex()
