import argparse
import asyncio
import dataclasses
import logging
import sys

from config import Config
from errors import BackendInitError
from presentation import INIT_FAILED_MESSAGE, render
from session import ProofSession, create_controller

logger = logging.getLogger(__name__)


def print_panel(heading, panel):
    if panel is None:
        return
    mark = "OK" if panel.success else "FAILED"
    print(f"\n[{heading}] {mark}: {panel.title}")
    print(f"  {panel.message}")


def print_view(view):
    print_panel("Result", view.result)
    if view.proof_details is not None:
        print("\nPublic inputs:")
        print(view.proof_details.public_inputs_json)
        print(f"\nProof ({len(view.proof_details.proof_hex) // 2} bytes):")
        print(view.proof_details.proof_hex)
    print_panel("Verification", view.verdict)


def tamper(proof):
    """Flip one bit of the proof bytes (demonstrates a rejected proof)"""
    data = bytearray(proof.proof)
    data[-1] ^= 0x01
    return dataclasses.replace(proof, proof=bytes(data))


async def run(args, config):
    try:
        controller = create_controller(config)
    except BackendInitError as e:
        logger.error("Failed to initialize circuit: %s", e)
        print(INIT_FAILED_MESSAGE)
        return 2

    session = ProofSession()
    await controller.submit(session, args.birth_date, args.min_age)
    view = render(session)

    if args.verify and view.verify_enabled:
        if args.tamper:
            session.proof = tamper(session.proof)
        await controller.verify(session)
        view = render(session)

    print_view(view)

    if session.last_error is not None:
        return 1
    if session.verdict is False:
        return 1
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Prove a minimum age without revealing your birth date")

    parser.add_argument("--birth-date", type=str, default="",
                        help="Birth date, YYYY-MM-DD (kept private)")
    parser.add_argument("--min-age", type=str, default="18",
                        help="Minimum age to prove")
    parser.add_argument("--verify", action="store_true",
                        help="Verify the proof after generating it")
    parser.add_argument("--tamper", action="store_true",
                        help="Corrupt the proof before verifying (demo)")
    parser.add_argument("--circuit", type=str, default=None,
                        help="Path to the compiled circuit artifact")
    parser.add_argument("--circuit-digest", type=str, default=None,
                        help="Expected sha256 of the circuit artifact")
    parser.add_argument("--log-level", type=str, default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level")

    args = parser.parse_args(argv)

    overrides = {"log_level": args.log_level, "circuit_digest": args.circuit_digest}
    if args.circuit:
        overrides["circuit_path"] = args.circuit
    config = Config(**overrides)

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Configuration: %s", config.describe())

    return asyncio.run(run(args, config))


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
