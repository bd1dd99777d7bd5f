from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..core.bridge.errors import BridgeError
from ..core.bridge.service import BridgeService, get_bridge_service
from ..types.requests import FeeEstimateRequest, RouteSearchRequest, TrackTransferRequest

router = APIRouter(prefix="/bridge")


def error_response(error: BridgeError) -> JSONResponse:
    """Validation problems are the caller's fault (422); everything else is upstream (503)."""
    status = 422 if error.is_validation_error else 503
    return JSONResponse(status_code=status, content={"success": False, **error.to_dict()})


@router.post("/routes")
async def post_routes(
    req: RouteSearchRequest,
    service: BridgeService = Depends(get_bridge_service),
) -> Dict[str, Any]:
    try:
        result = await service.find_routes(
            req.sourceChain,
            req.targetChain,
            req.token,
            amount=req.amount,
            preferences=req.preferences.model_dump() if req.preferences else None,
        )
    except BridgeError as e:
        return error_response(e)
    return result.to_dict()


@router.post("/fees")
async def post_fees(
    req: FeeEstimateRequest,
    service: BridgeService = Depends(get_bridge_service),
) -> Dict[str, Any]:
    try:
        estimate = await service.estimate_fee(
            req.sourceChain,
            req.targetChain,
            req.amount,
            protocol=req.bridgeProtocol,
            urgency=req.urgency,
        )
    except BridgeError as e:
        return error_response(e)
    data = estimate.to_dict()
    data["success"] = True
    if req.token:
        data["token"] = req.token
    return data


@router.post("/track")
async def post_track(
    req: TrackTransferRequest,
    service: BridgeService = Depends(get_bridge_service),
) -> Dict[str, Any]:
    try:
        progress = await service.track_transfer(
            req.sourceChain,
            req.targetChain,
            req.transactionHash,
            bridge_protocol=req.bridgeProtocol,
            user_address=req.userAddress,
            timeout=req.timeoutSeconds,
        )
    except BridgeError as e:
        return error_response(e)
    return progress.to_dict()


@router.get("/status/{chain}/{tx_hash}")
async def get_status(
    chain: str,
    tx_hash: str,
    service: BridgeService = Depends(get_bridge_service),
) -> Dict[str, Any]:
    try:
        return await service.inspect_transaction(chain, tx_hash)
    except BridgeError as e:
        return error_response(e)
