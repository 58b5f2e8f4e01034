"""
FastAPI application implementing the Docker volume plugin protocol.
"""

import logging
import uuid
from functools import lru_cache
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cephshare.api.models import (
    ActivateResponse,
    CapabilitiesResponse,
    ErrorResponse,
    GetResponse,
    ListResponse,
    MountResponse,
    VolumeCreateRequest,
    VolumeMountRequest,
    VolumeNameRequest,
)
from cephshare.driver import CephDriver
from cephshare.exceptions import CephShareException

app = FastAPI(title="cephshare", description="Docker volume plugin for CephFS", version="0.1.0")
logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_driver() -> CephDriver:
    """Process-wide driver; built (and reconciled) on first use."""
    return CephDriver()


@app.exception_handler(CephShareException)
async def cephshare_exception_handler(request: Request, exc: CephShareException) -> JSONResponse:
    """Typed driver failures are reported to Docker through Err."""
    logger.warning("%s failed: %s", request.url.path, exc.message)
    return JSONResponse(status_code=500, content={"Err": exc.message})


def _describe_error(error: Dict[str, Any]) -> str:
    field = ".".join(str(loc) for loc in error.get("loc", ()) if loc != "body") or "body"
    return f"{field}: {error.get('msg', 'invalid value')}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed plugin requests are reported through Err as well."""
    problems = "; ".join(_describe_error(error) for error in exc.errors())
    logger.warning("%s rejected: %s", request.url.path, problems)
    return JSONResponse(status_code=500, content={"Err": f"Invalid request: {problems}"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    request_id = str(uuid.uuid4())
    logger.exception("Unhandled error (request_id=%s, path=%s)", request_id, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"Err": f"Internal plugin error (request_id={request_id})"},
    )


@app.post("/Plugin.Activate", response_model=ActivateResponse)
def activate() -> Dict[str, Any]:
    """
    Handshake: announce the implemented plugin subsystems.
    """
    return {"Implements": ["VolumeDriver"]}


@app.post("/VolumeDriver.Create", response_model=ErrorResponse)
def create_volume(req: VolumeCreateRequest, driver: CephDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Register a volume and its options. Nothing is mounted until first use.
    """
    driver.create(req.name, req.opts)
    return {"Err": ""}


@app.post("/VolumeDriver.Remove", response_model=ErrorResponse)
def remove_volume(req: VolumeNameRequest, driver: CephDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Forget a volume; fails while containers still use it.
    """
    driver.remove(req.name)
    return {"Err": ""}


@app.post("/VolumeDriver.Mount", response_model=MountResponse)
def mount_volume(req: VolumeMountRequest, driver: CephDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Mount a volume for a container, reusing an existing mount.
    """
    mountpoint = driver.mount(req.name, req.id)
    return {"Mountpoint": mountpoint, "Err": ""}


@app.post("/VolumeDriver.Unmount", response_model=ErrorResponse)
def unmount_volume(req: VolumeMountRequest, driver: CephDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Release a container's mount; the last release unmounts.
    """
    driver.unmount(req.name, req.id)
    return {"Err": ""}


@app.post("/VolumeDriver.Path", response_model=MountResponse)
def volume_path(req: VolumeNameRequest, driver: CephDriver = Depends(get_driver)) -> Dict[str, Any]:
    return {"Mountpoint": driver.path(req.name), "Err": ""}


@app.post("/VolumeDriver.Get", response_model=GetResponse)
def get_volume(req: VolumeNameRequest, driver: CephDriver = Depends(get_driver)) -> Dict[str, Any]:
    name, mountpoint = driver.get(req.name)
    return {"Volume": {"Name": name, "Mountpoint": mountpoint}, "Err": ""}


@app.post("/VolumeDriver.List", response_model=ListResponse)
def list_volumes(driver: CephDriver = Depends(get_driver)) -> Dict[str, Any]:
    volumes = [{"Name": name, "Mountpoint": mountpoint} for name, mountpoint in driver.list()]
    return {"Volumes": volumes, "Err": ""}


@app.post("/VolumeDriver.Capabilities", response_model=CapabilitiesResponse)
def capabilities(driver: CephDriver = Depends(get_driver)) -> Dict[str, Any]:
    return {"Capabilities": driver.capabilities()}
