"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import DeviceStatus
from models.records import PollerState
from services.poller import Poller
from services.registry import DeviceRegistry, build_default_registry

router = APIRouter()


def get_registry() -> DeviceRegistry:
    return build_default_registry()


def _lookup(registry: DeviceRegistry, name: str) -> Poller:
    try:
        return registry.get(name)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc.args[0]),
        ) from exc


@router.get(
    "/devices",
    response_model=list[DeviceStatus],
    summary="List every configured device with its last reading.",
)
async def list_devices(
    registry: DeviceRegistry = Depends(get_registry),
) -> list[DeviceStatus]:
    return [DeviceStatus.from_poller(poller) for poller in registry.pollers()]


@router.get(
    "/devices/{name}",
    response_model=DeviceStatus,
    summary="Fetch state and last reading of a single device.",
)
async def get_device(
    name: str,
    registry: DeviceRegistry = Depends(get_registry),
) -> DeviceStatus:
    return DeviceStatus.from_poller(_lookup(registry, name))


@router.post(
    "/devices/{name}/refresh",
    response_model=DeviceStatus,
    summary="Run one poll cycle immediately and return the resulting status.",
)
def refresh_device(
    name: str,
    registry: DeviceRegistry = Depends(get_registry),
) -> DeviceStatus:
    poller = _lookup(registry, name)
    if poller.state is PollerState.stopped:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Device {name!r} is stopped.",
        )
    poller.run_cycle()
    return DeviceStatus.from_poller(poller)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    registry: DeviceRegistry = Depends(get_registry),
) -> dict[str, object]:
    pollers = registry.pollers()
    faulted = sum(1 for poller in pollers if poller.state is PollerState.faulted)
    return {"status": "ok", "devices": len(pollers), "faulted": faulted}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
