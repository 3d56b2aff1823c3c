from __future__ import annotations

import shutil
from dataclasses import dataclass

from services.orchestrator.config import Settings


@dataclass(frozen=True)
class ToolStatus:
    jmeter_available: bool
    kubectl_available: bool
    git_available: bool


def detect_tool_status(settings: Settings) -> ToolStatus:
    jmeter_available = shutil.which(settings.jmeter_binary) is not None
    kubectl_available = shutil.which(settings.kubectl_binary) is not None
    git_available = shutil.which(settings.git_binary) is not None

    return ToolStatus(
        jmeter_available=jmeter_available,
        kubectl_available=kubectl_available,
        git_available=git_available,
    )
