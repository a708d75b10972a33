"""Build read-only cluster clients from kubeconfig contexts."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from kubernetes import client, config

from kube_observer.errors import ConfigurationError, ConnectivityError
from kube_observer.observation.collector import ClusterClient

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 5.0


class ClusterClientProvider:
    """Factory for clients bound to one context; reads the kubeconfig on every call."""

    def __init__(
        self,
        kubeconfig: str | Path | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        self.kubeconfig = str(kubeconfig) if kubeconfig else None
        self.timeout = timeout

    def list_contexts(self) -> list[str]:
        """Sorted, distinct context names; empty when the kubeconfig is unusable."""
        try:
            contexts, _active = config.list_kube_config_contexts(config_file=self.kubeconfig)
        except (config.ConfigException, yaml.YAMLError, OSError) as e:
            logger.warning("Cannot read contexts from kubeconfig: %s", e)
            return []
        return sorted({c["name"] for c in contexts or [] if c.get("name")})

    def resolve(self, context_name: str) -> ClusterClient:
        """Return a client bound to ``context_name``; never retries."""
        cfg = client.Configuration()
        try:
            config.load_kube_config(
                config_file=self.kubeconfig,
                context=context_name,
                client_configuration=cfg,
                persist_config=False,
            )
        except (config.ConfigException, yaml.YAMLError, OSError) as e:
            raise ConfigurationError(f"context {context_name}: {e}") from e
        # no urllib3 retries
        cfg.retries = 0
        try:
            api_client = client.ApiClient(cfg)
        except Exception as e:
            raise ConnectivityError(f"context {context_name}: cannot create API client: {e}") from e
        return ClusterClient(context_name, api_client, timeout=self.timeout)
