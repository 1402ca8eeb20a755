import json
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from errors import CircuitArtifactError, InputSchemaError

logger = logging.getLogger(__name__)

PRIVATE = "private"
PUBLIC = "public"


@dataclass(frozen=True)
class Parameter:
    name: str
    visibility: str
    width: int = 32
    signed: bool = False

    def bounds(self) -> Tuple[int, int]:
        if self.signed:
            half = 1 << (self.width - 1)
            return -half, half - 1
        return 0, (1 << self.width) - 1


@dataclass(frozen=True)
class Circuit:
    """Compiled circuit artifact, read-only once loaded"""
    name: str
    version: str
    program: str
    parameters: Tuple[Parameter, ...]
    digest: str

    @property
    def private_names(self) -> List[str]:
        return [p.name for p in self.parameters if p.visibility == PRIVATE]

    @property
    def public_names(self) -> List[str]:
        return [p.name for p in self.parameters if p.visibility == PUBLIC]

    def encode_inputs(self, inputs: Mapping[str, int]) -> List[int]:
        """Match named inputs field-for-field against the ABI.

        Returns the values in declaration order.
        """
        declared = [p.name for p in self.parameters]
        missing = [n for n in declared if n not in inputs]
        extra = sorted(set(inputs) - set(declared))
        if missing:
            raise InputSchemaError(f"Missing circuit inputs: {', '.join(missing)}")
        if extra:
            raise InputSchemaError(f"Unknown circuit inputs: {', '.join(extra)}")

        values = []
        for p in self.parameters:
            v = inputs[p.name]
            if isinstance(v, bool) or not isinstance(v, int):
                raise InputSchemaError(f"Input {p.name} must be an integer")
            lo, hi = p.bounds()
            if not lo <= v <= hi:
                raise InputSchemaError(f"Input {p.name} out of range for {p.width}-bit integer")
            values.append(v)
        return values


def _parse_parameter(raw: Dict) -> Parameter:
    try:
        name = raw["name"]
        typ = raw["type"]
        visibility = raw["visibility"]
    except (KeyError, TypeError) as e:
        raise CircuitArtifactError(f"Malformed ABI parameter: {raw!r}") from e

    if typ.get("kind") != "integer":
        raise CircuitArtifactError(f"Unsupported type for {name}: {typ.get('kind')}")
    if visibility not in (PRIVATE, PUBLIC):
        raise CircuitArtifactError(f"Unknown visibility for {name}: {visibility}")

    return Parameter(
        name=str(name),
        visibility=visibility,
        width=int(typ.get("width", 32)),
        signed=typ.get("sign") == "signed",
    )


def load_circuit(path, expected_digest: Optional[str] = None) -> Circuit:
    """Load a circuit artifact; the digest is the sha256 of the file bytes"""
    path = Path(path)
    try:
        blob = path.read_bytes()
    except OSError as e:
        raise CircuitArtifactError(f"Cannot read circuit artifact {path}: {e}") from e

    digest = hashlib.sha256(blob).hexdigest()
    if expected_digest and digest != expected_digest:
        raise CircuitArtifactError(
            f"Circuit digest mismatch for {path.name}: expected {expected_digest}, got {digest}"
        )

    try:
        doc = json.loads(blob.decode("utf-8"))
        params = doc["abi"]["parameters"]
    except (ValueError, KeyError, TypeError) as e:
        raise CircuitArtifactError(f"Malformed circuit artifact {path.name}: {e}") from e

    parameters = tuple(_parse_parameter(p) for p in params)
    names = [p.name for p in parameters]
    if len(set(names)) != len(names):
        raise CircuitArtifactError(f"Duplicate ABI parameters in {path.name}")

    circuit = Circuit(
        name=str(doc.get("name", path.stem)),
        version=str(doc.get("version", "0")),
        program=str(doc.get("program", doc.get("name", path.stem))),
        parameters=parameters,
        digest=digest,
    )
    logger.debug("Loaded circuit %s@%s (%s)", circuit.name, circuit.version, digest[:12])
    return circuit
