"""Multi-cluster Kubernetes observer with a realtime push channel."""

__version__ = "0.1.0"
