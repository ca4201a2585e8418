"""Pydantic models for the Clusterables map server."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class LatLng(BaseModel):
    """Simple latitude/longitude container."""

    lat: float = Field(..., description="Latitude in decimal degrees")
    lng: float = Field(..., description="Longitude in decimal degrees")


class Place(BaseModel):
    """A named map item; satisfies the clusterable lat/lng interface."""

    id: str
    name: str
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    model_config = {"frozen": True}


class ViewportSpec(BaseModel):
    """Map view state as reported by the client."""

    center: LatLng
    zoom: float = Field(..., ge=0, le=22)
    width: int = Field(..., ge=0, description="Map width in screen points")
    height: int = Field(..., ge=0, description="Map height in screen points")


class ClustersRequest(BaseModel):
    items: Optional[List[Place]] = Field(
        default=None, description="Inline items; mutually exclusive with dataset"
    )
    dataset: Optional[str] = Field(default=None, description="Bundled dataset name")
    viewport: ViewportSpec
    pixel_spacing: Optional[float] = Field(default=None, gt=0, alias="pixelSpacing")
    profile: Optional[str] = Field(default=None, description="Clustering profile name")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _one_item_source(self) -> "ClustersRequest":
        if (self.items is None) == (self.dataset is None):
            raise ValueError("Provide exactly one of 'items' or 'dataset'")
        return self


class ClusterSummary(BaseModel):
    id: str
    center: LatLng
    size: int
    member_ids: List[str] = Field(default_factory=list, alias="memberIds")

    model_config = {"populate_by_name": True}


class ClustersResponse(BaseModel):
    status: str
    epsilon: Optional[float] = None
    clusters: List[ClusterSummary]
    telemetry: Dict[str, Any] = Field(default_factory=dict)


class DatasetsResponse(BaseModel):
    datasets: List[str]
