"""Snapshot and resource-listing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from kube_observer.api.dependencies import get_context
from kube_observer.context import AppContext
from kube_observer.errors import ClusterNotFoundError, ConfigurationError, ConnectivityError, NoContextsError
from kube_observer.observation.models import (
    ClusterSnapshot,
    DeploymentSummary,
    NamespaceSummary,
    NodeSummary,
    PodSummary,
    ServiceSummary,
)

router = APIRouter(prefix="/api/clusters", tags=["clusters"])


async def _listing(awaitable):
    try:
        return await awaitable
    except ClusterNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except (ConfigurationError, ConnectivityError) as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


@router.get("", response_model=list[ClusterSnapshot])
async def list_clusters(ctx: AppContext = Depends(get_context)):
    try:
        return await ctx.aggregator.aggregate()
    except NoContextsError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e


@router.post("/refresh", response_model=list[ClusterSnapshot])
async def refresh_clusters(ctx: AppContext = Depends(get_context)):
    snapshots = await ctx.source.refresh()
    if snapshots is None:
        raise HTTPException(status_code=503, detail="no contexts found in kubeconfig")
    return snapshots


@router.get("/{cluster_id}", response_model=ClusterSnapshot)
async def get_cluster(cluster_id: str, ctx: AppContext = Depends(get_context)):
    try:
        snapshot = await ctx.aggregator.find(cluster_id)
    except NoContextsError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Cluster not found")
    return snapshot


@router.get("/{cluster_id}/nodes", response_model=list[NodeSummary])
async def get_cluster_nodes(cluster_id: str, ctx: AppContext = Depends(get_context)):
    return await _listing(ctx.inventory.nodes(cluster_id))


@router.get("/{cluster_id}/pods", response_model=list[PodSummary])
async def get_cluster_pods(
    cluster_id: str, namespace: str | None = None, ctx: AppContext = Depends(get_context)
):
    return await _listing(ctx.inventory.pods(cluster_id, namespace))


@router.get("/{cluster_id}/services", response_model=list[ServiceSummary])
async def get_cluster_services(
    cluster_id: str, namespace: str | None = None, ctx: AppContext = Depends(get_context)
):
    return await _listing(ctx.inventory.services(cluster_id, namespace))


@router.get("/{cluster_id}/deployments", response_model=list[DeploymentSummary])
async def get_cluster_deployments(
    cluster_id: str, namespace: str | None = None, ctx: AppContext = Depends(get_context)
):
    return await _listing(ctx.inventory.deployments(cluster_id, namespace))


@router.get("/{cluster_id}/namespaces", response_model=list[NamespaceSummary])
async def get_cluster_namespaces(cluster_id: str, ctx: AppContext = Depends(get_context)):
    return await _listing(ctx.inventory.namespaces(cluster_id))
