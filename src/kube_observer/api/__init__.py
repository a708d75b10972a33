"""HTTP and WebSocket surface."""

from kube_observer.api.app import create_app

__all__ = ["create_app"]
