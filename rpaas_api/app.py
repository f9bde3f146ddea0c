"""FastAPI application and request handlers."""

import base64
import binascii
import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse, Response

from rpaas import __version__
from rpaas.blocks import ConfigurationBlock
from rpaas.config import RpaasConfig
from rpaas.errors import RpaasError, is_conflict, is_deadline_exceeded, is_not_found, is_validation
from rpaas.extra_files import File
from rpaas.instances import BindAppArgs, CreateArgs, UpdateInstanceArgs
from rpaas.manager import RpaasManager
from rpaas.purge import PurgeCacheArgs
from rpaas.routes import Route as RouteArgs

from .config import LOG_LEVEL, RPAAS_CONFIG
from .models import (
    BindAppRequest,
    BindUnitRequest,
    Block,
    BlockList,
    CertificateRequest,
    CreateInstanceRequest,
    ExtraFile,
    ExtraFilesRequest,
    FlavorInfo,
    InfoItem,
    PlanInfo,
    PodStatusInfo,
    PurgeRequest,
    PurgeResponse,
    Route,
    RouteList,
    StatusResponse,
    UpdateInstanceRequest,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="rpaas API", version=__version__)


@lru_cache(maxsize=1)
def get_manager() -> RpaasManager:
    """Build the manager once, from RPAAS_CONFIG and the environment."""
    config = RpaasConfig.load(RPAAS_CONFIG or None)
    logger.info(f"Serving {config.service_name} in namespace {config.namespace}")
    return RpaasManager.from_config(config)


def _status_code(err: RpaasError) -> int:
    if is_not_found(err):
        return 404
    if is_validation(err):
        return 400
    if is_conflict(err):
        return 409
    if is_deadline_exceeded(err):
        return 504
    return 500


@app.exception_handler(RpaasError)
async def rpaas_error_handler(request: Request, exc: RpaasError) -> PlainTextResponse:
    code = _status_code(exc)
    if code == 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return PlainTextResponse(content=str(exc), status_code=code)


def _decode(content: str) -> bytes:
    try:
        return base64.b64decode(content, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(400, "file content must be base64 encoded")


@app.get("/healthcheck")
def healthcheck():
    """Health check endpoint."""
    return {"status": "ok"}


# --- instances ---

@app.post("/resources", status_code=201)
def create_instance(req: CreateInstanceRequest, manager: RpaasManager = Depends(get_manager)):
    """Create an instance."""
    manager.create_instance(CreateArgs(
        name=req.name,
        team=req.team,
        plan=req.plan,
        description=req.description,
        tags=list(req.tags),
    ))
    return Response(status_code=201)


@app.get("/resources/plans", response_model=list[PlanInfo])
def list_plans(manager: RpaasManager = Depends(get_manager)):
    """List available plans."""
    return [
        PlanInfo(name=p.name, description=p.spec.description, default=p.spec.default)
        for p in manager.get_plans() or []
    ]


@app.get("/resources/flavors", response_model=list[FlavorInfo])
def list_flavors(manager: RpaasManager = Depends(get_manager)):
    """List configured flavors."""
    return [FlavorInfo(name=f.name, description=f.description) for f in manager.get_flavors()]


@app.get("/resources/{instance}", response_model=list[InfoItem])
def instance_info(instance: str, manager: RpaasManager = Depends(get_manager)):
    """Address, replica count and routes of an instance."""
    return [InfoItem(**item) for item in manager.get_instance_info(instance)]


@app.put("/resources/{instance}")
def update_instance(
    instance: str, req: UpdateInstanceRequest, manager: RpaasManager = Depends(get_manager),
):
    """Update description, plan, team and tags of an instance."""
    manager.update_instance(instance, UpdateInstanceArgs(
        description=req.description,
        plan=req.plan,
        tags=list(req.tags),
        team=req.team,
    ))
    return Response(status_code=200)


@app.delete("/resources/{instance}")
def delete_instance(instance: str, manager: RpaasManager = Depends(get_manager)):
    """Remove an instance."""
    manager.delete_instance(instance)
    return Response(status_code=200)


@app.get("/resources/{instance}/status", response_model=StatusResponse)
def instance_status(instance: str, manager: RpaasManager = Depends(get_manager)):
    """Per-replica health of an instance."""
    pods = manager.get_instance_status(instance)
    return StatusResponse(pods={
        name: PodStatusInfo(running=s.running, status=s.status, address=s.address)
        for name, s in pods.items()
    })


# --- bindings ---

@app.post("/resources/{instance}/bind-app", status_code=201)
def bind_app(instance: str, req: BindAppRequest, manager: RpaasManager = Depends(get_manager)):
    """Bind an application to an instance."""
    manager.bind_app(instance, BindAppArgs(
        app_name=req.app_name,
        app_host=req.app_host,
        user=req.user,
        event_id=req.event_id,
    ))
    return Response(status_code=201)


@app.delete("/resources/{instance}/bind-app")
def unbind_app(instance: str, manager: RpaasManager = Depends(get_manager)):
    """Remove the application binding of an instance."""
    manager.unbind_app(instance)
    return Response(status_code=200)


@app.post("/resources/{instance}/bind", status_code=201)
def bind_unit(instance: str, req: BindUnitRequest):
    """Units need no setup; accepted for platform compatibility."""
    return Response(status_code=201)


@app.delete("/resources/{instance}/bind")
def unbind_unit(instance: str):
    return Response(status_code=200)


# --- blocks ---

@app.get("/resources/{instance}/block", response_model=BlockList)
def list_blocks(instance: str, manager: RpaasManager = Depends(get_manager)):
    blocks = manager.list_blocks(instance) or []
    return BlockList(blocks=[Block(block_name=b.name, content=b.content) for b in blocks])


@app.post("/resources/{instance}/block")
def update_block(instance: str, block: Block, manager: RpaasManager = Depends(get_manager)):
    manager.update_block(instance, ConfigurationBlock(name=block.block_name, content=block.content))
    return Response(status_code=200)


@app.delete("/resources/{instance}/block/{block_name}")
def delete_block(instance: str, block_name: str, manager: RpaasManager = Depends(get_manager)):
    manager.delete_block(instance, block_name)
    return Response(status_code=200)


# --- routes ---

@app.get("/resources/{instance}/route", response_model=RouteList)
def list_routes(instance: str, manager: RpaasManager = Depends(get_manager)):
    routes = manager.get_routes(instance)
    return RouteList(paths=[
        Route(path=r.path, destination=r.destination, content=r.content, https_only=r.https_only)
        for r in routes
    ])


@app.post("/resources/{instance}/route")
def update_route(instance: str, route: Route, manager: RpaasManager = Depends(get_manager)):
    manager.update_route(instance, RouteArgs(
        path=route.path,
        destination=route.destination,
        content=route.content,
        https_only=route.https_only,
    ))
    return Response(status_code=200)


@app.delete("/resources/{instance}/route")
def delete_route(
    instance: str, path: str = Query(...), manager: RpaasManager = Depends(get_manager),
):
    manager.delete_route(instance, path)
    return Response(status_code=200)


# --- certificates ---

@app.post("/resources/{instance}/certificate")
def update_certificate(
    instance: str, req: CertificateRequest, manager: RpaasManager = Depends(get_manager),
):
    """Add or replace a certificate/key pair."""
    manager.update_certificate(instance, req.name, req.certificate.encode(), req.key.encode())
    return Response(status_code=200)


# --- extra files ---

@app.get("/resources/{instance}/files", response_model=list[ExtraFile])
def list_extra_files(instance: str, manager: RpaasManager = Depends(get_manager)):
    return [
        ExtraFile(name=f.name, content=base64.b64encode(f.content).decode("ascii"))
        for f in manager.get_extra_files(instance)
    ]


@app.post("/resources/{instance}/files", status_code=201)
def create_extra_files(
    instance: str, req: ExtraFilesRequest, manager: RpaasManager = Depends(get_manager),
):
    files = [File(name=f.name, content=_decode(f.content)) for f in req.files]
    manager.create_extra_files(instance, *files)
    return Response(status_code=201)


@app.put("/resources/{instance}/files")
def update_extra_files(
    instance: str, req: ExtraFilesRequest, manager: RpaasManager = Depends(get_manager),
):
    files = [File(name=f.name, content=_decode(f.content)) for f in req.files]
    manager.update_extra_files(instance, *files)
    return Response(status_code=200)


@app.delete("/resources/{instance}/files")
def delete_extra_files(
    instance: str, name: list[str] = Query(...), manager: RpaasManager = Depends(get_manager),
):
    manager.delete_extra_files(instance, *name)
    return Response(status_code=200)


# --- cache ---

@app.post("/resources/{instance}/purge", response_model=PurgeResponse)
def purge_cache(instance: str, req: PurgeRequest, manager: RpaasManager = Depends(get_manager)):
    """Purge a path from the cache of every ready replica."""
    count = manager.purge_cache(instance, PurgeCacheArgs(path=req.path, preserve_path=req.preserve_path))
    return PurgeResponse(
        path=req.path,
        instances_purged=count,
        message=f"Object purged on {count} servers",
    )
