"""FastAPI map server that clusters items for a client-side map view."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from clusterables.manager import ClusterManager, ClusterManagerConfig

from .schemas.models import (
    ClustersRequest,
    ClustersResponse,
    ClusterSummary,
    DatasetsResponse,
    LatLng,
)
from .tools.datasets import list_datasets, load_dataset
from .tools.viewport import MercatorViewport


logger = logging.getLogger(__name__)

app = FastAPI(title="Clusterables Map Server", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Shared by all request-scoped managers; managers never shut it down
_executor = ThreadPoolExecutor(thread_name_prefix="map-server")


@app.get("/health")
async def health_check() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/datasets")
async def datasets() -> DatasetsResponse:
    return DatasetsResponse(datasets=list_datasets())


def _load_config(profile: Optional[str]) -> ClusterManagerConfig:
    try:
        return ClusterManagerConfig.load(profile)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@app.post("/clusters")
async def clusters_action(request: ClustersRequest) -> ClustersResponse:
    config = _load_config(request.profile)

    if request.items is not None:
        items = request.items
    else:
        try:
            items = load_dataset(request.dataset)
        except FileNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc

    view = request.viewport
    viewport = MercatorViewport(
        center_lat=view.center.lat,
        center_lng=view.center.lng,
        zoom=view.zoom,
        width=view.width,
        height=view.height,
    )

    manager = ClusterManager(config, executor=_executor)
    result = await manager.update(items, viewport, request.pixel_spacing)
    logger.info(
        f"Clustered {result.num_items} item(s) into {result.num_clusters} cluster(s) "
        f"[{result.status.value}]"
    )

    summaries = [
        ClusterSummary(
            id=cluster.id,
            center=LatLng(lat=cluster.center.lat, lng=cluster.center.lng),
            size=cluster.size,
            member_ids=[item.id for item in cluster.items],
        )
        for cluster in manager.clusters
    ]
    return ClustersResponse(
        status=result.status.value,
        epsilon=result.epsilon,
        clusters=summaries,
        telemetry=result.to_dict(),
    )
