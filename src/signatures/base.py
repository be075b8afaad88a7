"""Signature backend interface shared by the GPG and Sigstore implementations.

Backends are injected into ``SignatureVerifier`` so orchestration can be
tested against fakes. Each backend shells out through an injectable
``runner`` and locates its binary through an injectable ``which``.

Outcomes of ``verify``:
  * returns a ``SignatureResult`` when the signature checked out;
  * raises ``SignatureInvalid`` (or ``ChecksumMismatch`` for signed
    manifests) when the tool ran and rejected the material;
  * raises ``NetworkUnavailable`` when material, tool or trust anchor is
    missing, or the tool could not be run to completion (timeout, exec
    failure), so the caller can move on.
"""
from __future__ import annotations

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence
from urllib.parse import urlsplit

from common.errors import NetworkUnavailable
from common.http_client import HttpSettings, download_file
from constants import Constants

Runner = Callable[[Sequence[str], Dict[str, str]], subprocess.CompletedProcess]
Which = Callable[[str], Optional[str]]


def run_command(argv: Sequence[str], env: Dict[str, str]) -> subprocess.CompletedProcess:
    """Default runner: capture text output, never raise on non-zero exit."""
    return subprocess.run(
        list(argv),
        env=env,
        capture_output=True,
        text=True,
        timeout=Constants.SUBPROCESS_TIMEOUT,
        check=False,
    )


@dataclass(frozen=True)
class SignatureRequest:
    """One step of an ecosystem's Tier 1 plan.

    Detached signatures set ``signature_url``; Sigstore additionally sets
    ``certificate_url`` (or ``bundle_url``) plus identity and issuer; signed
    manifests set ``manifest_url`` and candidate ``manifest_signature_urls``.
    """
    backend: str
    artifact_path: str
    filename: str
    signature_url: Optional[str] = None
    certificate_url: Optional[str] = None
    bundle_url: Optional[str] = None
    manifest_url: Optional[str] = None
    manifest_signature_urls: tuple = ()
    keyring: Optional[str] = None
    identity: Optional[str] = None
    issuer: Optional[str] = None


@dataclass(frozen=True)
class SignatureResult:
    backend: str
    detail: str
    digest: Optional[str] = None


def url_basename(url: str) -> str:
    return os.path.basename(urlsplit(url).path) or "download"


def fetch_material(url: str, workdir: str, settings: Optional[HttpSettings] = None) -> str:
    """Download signing material into ``workdir``; NetworkUnavailable on failure."""
    destination = os.path.join(workdir, url_basename(url))
    return download_file(url, destination, settings=settings)


class SignatureBackend(ABC):
    """One external signing tool."""

    binary: str = ""

    def __init__(
        self,
        runner: Optional[Runner] = None,
        which: Optional[Which] = None,
        settings: Optional[HttpSettings] = None,
    ):
        self.runner = runner or run_command
        self.which = which or shutil.which
        self.settings = settings

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name used in plans and logs."""

    def is_available(self) -> bool:
        return self.which(self.binary) is not None

    @abstractmethod
    def verify(self, request: SignatureRequest) -> SignatureResult:
        """Verify ``request``; see module docstring for outcomes."""

    def _argv(self, *args: str) -> List[str]:
        return [self.binary, *args]

    def _run(self, argv: Sequence[str], env: Dict[str, str]) -> subprocess.CompletedProcess:
        """Invoke the runner; a hung or unrunnable tool is NetworkUnavailable."""
        try:
            return self.runner(argv, env)
        except subprocess.TimeoutExpired as exc:
            raise NetworkUnavailable(
                f"{self.binary} did not finish within {exc.timeout:g}s",
                context={"command": " ".join(str(a) for a in argv[:3])},
            ) from exc
        except OSError as exc:
            raise NetworkUnavailable(f"Unable to run {self.binary}: {exc}") from exc
