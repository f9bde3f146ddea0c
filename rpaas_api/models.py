"""Request and response models."""

from typing import Optional
from pydantic import BaseModel


class CreateInstanceRequest(BaseModel):
    """Request to create an instance."""
    name: str = ""
    team: str = ""
    plan: str = ""
    description: str = ""
    tags: list[str] = []


class UpdateInstanceRequest(BaseModel):
    """Request to update an instance."""
    description: str = ""
    plan: str = ""
    team: str = ""
    tags: list[str] = []


class BindAppRequest(BaseModel):
    """Application binding sent by the platform."""
    app_name: str = ""
    app_host: str = ""
    user: str = ""
    event_id: str = ""


class BindUnitRequest(BaseModel):
    """Unit binding. Accepted and ignored."""
    app_name: str = ""
    app_hosts: list[str] = []
    unit_host: str = ""


class InfoItem(BaseModel):
    label: str
    value: str


class PlanInfo(BaseModel):
    name: str
    description: str = ""
    default: bool = False


class FlavorInfo(BaseModel):
    name: str
    description: str = ""


class PodStatusInfo(BaseModel):
    running: bool
    status: str = ""
    address: str = ""


class StatusResponse(BaseModel):
    pods: dict[str, PodStatusInfo]


class Block(BaseModel):
    """A configuration block."""
    block_name: str
    content: str = ""


class BlockList(BaseModel):
    blocks: list[Block]


class Route(BaseModel):
    """A custom location."""
    path: str = ""
    destination: str = ""
    content: str = ""
    https_only: bool = False


class RouteList(BaseModel):
    paths: list[Route]


class CertificateRequest(BaseModel):
    """PEM certificate and key. Name defaults to "default"."""
    name: str = ""
    certificate: str
    key: str


class ExtraFile(BaseModel):
    """A file path with base64-encoded content."""
    name: str
    content: str = ""


class ExtraFilesRequest(BaseModel):
    files: list[ExtraFile]


class PurgeRequest(BaseModel):
    path: str = ""
    preserve_path: bool = False


class PurgeResponse(BaseModel):
    path: str
    instances_purged: int
    message: Optional[str] = None
