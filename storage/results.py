from __future__ import annotations

import shutil
from pathlib import Path
from threading import Lock


class ResultsWorkspace:
    """Scratch area for JMeter results, one directory per check phase and service."""

    def __init__(self, root: str) -> None:
        self.root = Path(root)
        self._lock = Lock()
        self.root.mkdir(parents=True, exist_ok=True)

    def results_dir(self, phase: str, service: str) -> Path:
        return self.root / f"{phase}_{service}"

    @staticmethod
    def result_log(results_dir: Path) -> Path:
        return results_dir.with_name(f"{results_dir.name}_result.tlf")

    def reset(self, results_dir: str | Path) -> Path:
        path = Path(results_dir)
        with self._lock:
            if path.exists():
                shutil.rmtree(path)
            log_path = self.result_log(path)
            if log_path.exists():
                log_path.unlink()
            path.mkdir(parents=True, exist_ok=True)
        return path
