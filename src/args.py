"""Argument parsing functionality for vergate."""

import argparse

from constants import Category
from versioning.models import Ecosystem


def _add_global_options(parser):
    parser.add_argument("--config",
                        dest="CONFIG",
                        help="YAML configuration file",
                        action="store",
                        type=str)
    parser.add_argument("--keyring-dir",
                        dest="KEYRING_DIR",
                        help="Directory holding per-ecosystem GPG keyrings",
                        action="store",
                        type=str)
    parser.add_argument("--checksums-db",
                        dest="CHECKSUMS_DB",
                        help="Pinned checksum database (JSON or YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--require-verified",
                        dest="REQUIRE_VERIFIED",
                        help="Fail instead of warning when only trust-on-first-use is possible",
                        action="store_true")
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def _add_artifact_options(parser, file_required=True):
    parser.add_argument("-n", "--name",
                        dest="NAME",
                        help="Ecosystem or tool name, i.e: python, nodejs, kubectl",
                        action="store", type=str,
                        required=True)
    parser.add_argument("-v", "--version",
                        dest="VERSION",
                        help="Exact version of the artifact",
                        action="store", type=str,
                        required=True)
    parser.add_argument("-f", "--file",
                        dest="FILE",
                        help="Path to the downloaded artifact",
                        action="store", type=str,
                        required=file_required)
    parser.add_argument("-c", "--category",
                        dest="CATEGORY",
                        help="Artifact category (default: language)",
                        action="store", type=str.lower,
                        choices=[c.value for c in Category],
                        default=Category.LANGUAGE.value)
    parser.add_argument("-u", "--url",
                        dest="URL",
                        help="URL the artifact was downloaded from",
                        action="store", type=str)


def build_parser():
    """Build the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="vergate",
        description="vergate - download verification and version resolution for container builds",
        add_help=True,
    )
    _add_global_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve a partial version to an exact release")
    resolve.add_argument("ecosystem",
                         help="Ecosystem, i.e: " + ", ".join(e.value for e in Ecosystem),
                         type=str)
    resolve.add_argument("spec", help="Version specifier: N, N.N or N.N.N", type=str)

    verify = subparsers.add_parser("verify", help="Verify a downloaded artifact")
    _add_artifact_options(verify)
    verify.add_argument("-a", "--arch",
                        dest="ARCH",
                        help="Target architecture (default: amd64)",
                        action="store", type=str)

    pin = subparsers.add_parser("pin", help="Add a checksum to the pinned database")
    _add_artifact_options(pin, file_required=False)
    pin.add_argument("-d", "--digest",
                     dest="DIGEST",
                     help="SHA-256 or SHA-512 hex digest (computed from --file when omitted)",
                     action="store", type=str)
    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
