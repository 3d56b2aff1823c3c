from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path

from contracts.errors import CheckoutError

logger = logging.getLogger(__name__)


class GitCheckout:
    """Fetches a service's test assets (``<service>/jmeter/*.jmx``) from its GitHub repository."""

    def __init__(
        self,
        workdir: str,
        base_url: str = "https://github.com",
        branch: str = "master",
        mode: str = "real",
        binary: str = "git",
    ) -> None:
        self.workdir = Path(workdir)
        self.base_url = base_url.rstrip("/")
        self.branch = branch
        self.mode = mode
        self.binary = binary
        self.checked_out: list[tuple[str, str, str]] = []

    def repo_url(self, org: str, repo: str) -> str:
        return f"{self.base_url}/{org}/{repo}.git"

    def checkout(self, org: str, repo: str, branch: str | None = None) -> Path:
        branch = branch or self.branch
        destination = self.workdir / repo
        if self.mode == "real":
            self._clone(self.repo_url(org, repo), branch, destination)
        else:
            destination.mkdir(parents=True, exist_ok=True)
        self.checked_out.append((org, repo, branch))
        return destination

    def _clone(self, url: str, branch: str, destination: Path) -> None:
        if destination.exists():
            shutil.rmtree(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        logger.debug("Cloning %s@%s into %s", url, branch, destination)
        try:
            result = subprocess.run(
                [self.binary, "clone", "--depth", "1", "--branch", branch, url, str(destination)],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise CheckoutError(f"Failed to run {self.binary}: {exc}") from exc
        if result.returncode != 0:
            raise CheckoutError(f"Error when checking out {url}@{branch}: {result.stderr.strip()}")
