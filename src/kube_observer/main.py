"""CLI entrypoint for the observer."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from kube_observer import __version__
from kube_observer.config import Settings, get_settings
from kube_observer.errors import NoContextsError
from kube_observer.observation import Aggregator, ClusterClientProvider, ClusterPhase, ClusterSnapshot

PHASE_STYLES = {
    ClusterPhase.RUNNING: "green",
    ClusterPhase.OFFLINE: "red",
    ClusterPhase.UNKNOWN: "yellow",
}


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Kube Observer: watch several Kubernetes clusters and stream their state.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to kubeconfig (default: KUBECONFIG env or ~/.kube/config)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-cluster query timeout in seconds (default: from env or 5)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP and WebSocket API")
    serve.add_argument("--host", default=None, help="Bind address (default: from env)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: from env)")

    snapshot = sub.add_parser("snapshot", help="Query every context once and print the result")
    snapshot.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    sub.add_parser("contexts", help="List the contexts found in the kubeconfig")
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    if not verbose:
        logging.getLogger("kube_observer").setLevel(logging.WARNING)
        logging.getLogger("kubernetes").setLevel(logging.WARNING)


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.kubeconfig is not None:
        overrides["kubeconfig"] = args.kubeconfig
    if args.timeout is not None:
        overrides["request_timeout_seconds"] = args.timeout
    if getattr(args, "host", None) is not None:
        overrides["host"] = args.host
    if getattr(args, "port", None) is not None:
        overrides["port"] = args.port
    # validated like values from the environment
    return Settings(**{**settings.model_dump(), **overrides})


def render_snapshots(snapshots: list[ClusterSnapshot], console: Console | None = None) -> None:
    """Print snapshots as a Rich table."""
    c = console or Console()
    table = Table(title="Clusters", header_style="bold blue")
    for column in ("Context", "Version", "Status", "Nodes", "Pods", "Namespaces", "Deployments", "Services"):
        table.add_column(column)
    for s in snapshots:
        style = PHASE_STYLES.get(s.phase, "yellow")
        summary = s.summary
        table.add_row(
            s.name,
            s.version,
            f"[{style}]{s.status.phase}[/{style}]",
            f"{summary.ready_nodes}/{summary.total_nodes}",
            f"{summary.running_pods}/{summary.total_pods}",
            str(summary.total_namespaces),
            str(summary.total_deployments),
            str(summary.total_services),
        )
    c.print(table)
    for s in snapshots:
        if s.phase is ClusterPhase.OFFLINE:
            c.print(f"[red]{s.name}[/red]: {s.status.message}")


def _serve(settings: Settings) -> int:
    import uvicorn

    from kube_observer.api import create_app
    from kube_observer.context import build_context

    app = create_app(build_context(settings))
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for kube-observer CLI."""
    args = _parse_args(argv)
    _configure_logging(args.verbose)
    console = Console()

    try:
        settings = _apply_overrides(get_settings(), args)
        provider = ClusterClientProvider(settings.kubeconfig, timeout=settings.request_timeout_seconds)

        if args.command == "serve":
            return _serve(settings)

        if args.command == "contexts":
            for name in provider.list_contexts():
                console.print(name)
            return 0

        aggregator = Aggregator(provider, max_workers=settings.max_parallel_queries)
        snapshots = asyncio.run(aggregator.aggregate())
        if args.json:
            print(json.dumps([s.to_wire() for s in snapshots], indent=2))
        else:
            render_snapshots(snapshots, console)
        return 0
    except NoContextsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except ValidationError as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        logging.exception("Observer failed")
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
