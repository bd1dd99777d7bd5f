from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..core.bridge.service import BridgeService, get_bridge_service

router = APIRouter()


@router.get("/healthz")
async def health_check(service: BridgeService = Depends(get_bridge_service)) -> Dict[str, Any]:
    """Health check endpoint that verifies chain RPC and price provider status"""

    status = await service.health()
    chain_status = status["chains"]

    # An unconfigured provider is not a failure
    all_healthy = all(
        entry["status"] in ["healthy", "unavailable"]
        for entry in [*chain_status.values(), status["prices"]]
    )
    available_chains = sum(1 for entry in chain_status.values() if entry["status"] == "healthy")

    return {
        "status": "healthy" if all_healthy and available_chains > 0 else "degraded",
        "chains": chain_status,
        "prices": status["prices"],
        "available_chains": available_chains,
        "total_chains": len(chain_status),
    }
