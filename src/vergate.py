"""vergate - download verification and version resolution for container builds.

    Returns:
        int: Exit code (0 verified, 1 failed, 2 network unavailable,
        3 unverified but allowed)
"""
import logging
import os
import sys

from args import parse_args
from checksums.database import ChecksumDatabase
from cli_config import load_config
from common.errors import NetworkUnavailable, VergateError
from common.hashing import SHA256, compute_digest
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Category, ExitCodes
from verification.engine import TieredVerificationEngine
from verification.models import Artifact
from versioning.service import VersionResolutionService

logger = logging.getLogger(__name__)


def _setup_logging(args):
    """Configure logging from --loglevel and --logfile."""
    configure_logging(getattr(args, "LOG_LEVEL", None))
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def run_resolve(args, config):
    """Print the exact release matching the requested specifier."""
    service = VersionResolutionService(settings=config.http_settings)
    resolved = service.resolve(args.ecosystem, args.spec)
    print(resolved.version)
    return ExitCodes.SUCCESS.value


def run_verify(args, config):
    """Run the tiered verification engine and print its trail."""
    if not os.path.isfile(args.FILE):
        logger.error("Artifact not found: %s", args.FILE)
        return ExitCodes.FILE_ERROR.value
    artifact = Artifact(
        category=Category(args.CATEGORY),
        name=args.NAME,
        version=args.VERSION,
        path=args.FILE,
        url=args.URL,
        arch=config.arch,
    )
    engine = TieredVerificationEngine.from_config(config)
    outcome = engine.verify(artifact)
    for line in outcome.trail:
        print(line)
    print(f"{outcome.state.value}: tier {int(outcome.tier)} sha256={outcome.digest or '-'}")
    if outcome.error is not None:
        logger.error("%s", outcome.error)
    return outcome.exit_code.value


def run_pin(args, config):
    """Add (or replace) a pinned checksum and save the database."""
    digest = args.DIGEST
    if not digest:
        if not args.FILE or not os.path.isfile(args.FILE):
            logger.error("pin needs --digest or an existing --file")
            return ExitCodes.FILE_ERROR.value
        digest = compute_digest(args.FILE, SHA256)
    database = ChecksumDatabase(config.database_path)
    record = database.pin(Category(args.CATEGORY), args.NAME, args.VERSION, digest, url=args.URL)
    database.save()
    print(f"{record.category.section}.{record.name}.versions.{record.version}: {record.algorithm} {record.digest}")
    return ExitCodes.SUCCESS.value


COMMANDS = {
    "resolve": run_resolve,
    "verify": run_verify,
    "pin": run_pin,
}


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.command)
        )

    try:
        config = load_config(args)
        code = COMMANDS[args.command](args, config)
    except NetworkUnavailable as exc:
        logger.error("%s", exc)
        code = ExitCodes.CONNECTION_ERROR.value
    except VergateError as exc:
        logger.error("%s", exc)
        code = ExitCodes.VERIFICATION_FAILED.value
    except OSError as exc:
        logger.error("File error: %s", exc)
        code = ExitCodes.FILE_ERROR.value
    sys.exit(code)


if __name__ == "__main__":
    main()
