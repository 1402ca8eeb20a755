import asyncio
import logging

from errors import VerificationError

logger = logging.getLogger(__name__)


class VerificationService:
    """Checks proofs against the shared backend handle.

    ``verify`` returns False for a well-formed proof that does not check out
    and raises VerificationError only when the backend itself fails.
    """

    def __init__(self, backend):
        self.backend = backend

    async def verify(self, proof) -> bool:
        try:
            valid = await asyncio.to_thread(self.backend.verify_proof, proof)
        except Exception as e:
            logger.warning("Verification backend error: %s", e)
            raise VerificationError(str(e)) from e
        logger.info("Proof verification result: %s", "valid" if valid else "invalid")
        return bool(valid)
