"""Exception hierarchy shared by the observer components."""

from __future__ import annotations


class KubeObserverError(Exception):
    """Base class for all observer errors."""


class ConfigurationError(KubeObserverError):
    """A context is missing from the kubeconfig or the kubeconfig is invalid."""


class ConnectivityError(KubeObserverError):
    """A cluster could not be reached or did not answer in time."""


class NoContextsError(KubeObserverError):
    """There is no context to aggregate over."""


class ClusterNotFoundError(KubeObserverError):
    """A cluster id does not map to any known context."""


class QueueFullError(KubeObserverError):
    """A bounded queue rejected an item."""


class MailboxClosedError(KubeObserverError):
    """The mailbox was closed and has nothing left to deliver."""


class TransportError(KubeObserverError):
    """A connection transport failed to read or write."""


class UnknownEventError(KubeObserverError, ValueError):
    """An event payload does not match any known event kind."""
