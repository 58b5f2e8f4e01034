"""
Pydantic models for the Docker volume plugin protocol.

Docker sends and expects CamelCase keys ("Name", "Opts", "Err", ...).
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PluginRequest(BaseModel):
    """Base request model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class VolumeNameRequest(PluginRequest):
    """Request carrying only a volume name (Remove, Path, Get)."""

    name: str = Field(..., alias="Name", description="Volume name", min_length=1)


class VolumeCreateRequest(VolumeNameRequest):
    """Request model for /VolumeDriver.Create."""

    opts: Optional[Dict[str, str]] = Field(None, alias="Opts", description="Per-volume options")


class VolumeMountRequest(VolumeNameRequest):
    """Request model for /VolumeDriver.Mount and /VolumeDriver.Unmount."""

    id: str = Field("", alias="ID", description="Caller (container) id")


class VolumeInfo(BaseModel):
    """Volume as reported to Docker."""

    Name: str
    Mountpoint: str = ""
    Status: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Generic plugin response; an empty Err means success."""

    Err: str = ""


class MountResponse(ErrorResponse):
    """Response model for Mount and Path."""

    Mountpoint: str = ""


class GetResponse(ErrorResponse):
    """Response model for Get."""

    Volume: Optional[VolumeInfo] = None


class ListResponse(ErrorResponse):
    """Response model for List."""

    Volumes: List[VolumeInfo] = Field(default_factory=list)


class ActivateResponse(BaseModel):
    """Response model for /Plugin.Activate."""

    Implements: List[str] = Field(default_factory=lambda: ["VolumeDriver"])


class CapabilitiesResponse(BaseModel):
    """Response model for /VolumeDriver.Capabilities."""

    Capabilities: Dict[str, str]
