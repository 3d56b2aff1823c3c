from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from services.tools.event_broker import DEFAULT_BROKER_URL


ROOT_DIR = Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class Settings:
    port: int = 8080
    receive_path: str = "/"
    mode: str = "real"
    jmeter_binary: str = "jmeter"
    kubectl_binary: str = "kubectl"
    git_binary: str = "git"
    workdir: str = str(ROOT_DIR / "work")
    event_broker_url: str = DEFAULT_BROKER_URL
    rollout_timeout_seconds: int = 300
    max_workers: int = 4
    domain_configmap_namespace: str = "keptn"
    domain_configmap_name: str = "keptn-domain"
    domain_configmap_key: str = "app_domain"
    checkout_branch: str = "master"
    github_base_url: str = "https://github.com"
    log_level: str = "INFO"

    @property
    def results_root(self) -> str:
        return str(Path(self.workdir) / "results")

    @classmethod
    def from_env(cls) -> "Settings":
        env_values = os.environ
        return cls(
            port=int(env_values.get("RCV_PORT", "8080")),
            receive_path=env_values.get("RCV_PATH", "/"),
            mode=env_values.get("JMETER_SERVICE_MODE", "real"),
            jmeter_binary=env_values.get("JMETER_BINARY", "jmeter"),
            kubectl_binary=env_values.get("KUBECTL_BINARY", "kubectl"),
            git_binary=env_values.get("GIT_BINARY", "git"),
            workdir=env_values.get("JMETER_WORKDIR", str(ROOT_DIR / "work")),
            event_broker_url=env_values.get("EVENT_BROKER_URL", DEFAULT_BROKER_URL),
            rollout_timeout_seconds=int(env_values.get("ROLLOUT_TIMEOUT_SECONDS", "300")),
            max_workers=int(env_values.get("JMETER_MAX_WORKERS", "4")),
            domain_configmap_namespace=env_values.get("DOMAIN_CONFIGMAP_NAMESPACE", "keptn"),
            domain_configmap_name=env_values.get("DOMAIN_CONFIGMAP_NAME", "keptn-domain"),
            domain_configmap_key=env_values.get("DOMAIN_CONFIGMAP_KEY", "app_domain"),
            checkout_branch=env_values.get("CHECKOUT_BRANCH", "master"),
            github_base_url=env_values.get("GITHUB_BASE_URL", "https://github.com"),
            log_level=env_values.get("LOG_LEVEL", "INFO"),
        )
