import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_CIRCUIT_PATH = PROJECT_ROOT / "circuits" / "age_verification.json"

# Only environment variable read by the project: where setup data lives
SETUP_URL_ENV = "AGEPROOF_SETUP_URL"


@dataclass
class Config:
    """Age proof configuration"""

    # Circuit artifact
    circuit_path: Path = DEFAULT_CIRCUIT_PATH
    circuit_digest: Optional[str] = None  # pin sha256 of the artifact per deployment

    # Setup data (None = derive locally, no network)
    setup_url: Optional[str] = field(default_factory=lambda: os.getenv(SETUP_URL_ENV) or None)
    setup_timeout: float = 30.0

    # Reference backend
    nonce_bytes: int = 16

    # Logging
    log_level: str = "INFO"

    def __post_init__(self):
        self.circuit_path = Path(self.circuit_path)
        if self.circuit_digest:
            self.circuit_digest = self.circuit_digest.strip().lower()
        if self.setup_url is not None:
            self.setup_url = self.setup_url.strip() or None
        self.log_level = str(self.log_level).upper()

        assert self.setup_timeout > 0, f"Invalid setup_timeout={self.setup_timeout}"
        assert self.nonce_bytes >= 8, f"Invalid nonce_bytes={self.nonce_bytes}"

    def describe(self) -> str:
        return (
            f"circuit={self.circuit_path.name} "
            f"digest={'pinned' if self.circuit_digest else 'unpinned'} "
            f"setup={'remote' if self.setup_url else 'local'}"
        )
