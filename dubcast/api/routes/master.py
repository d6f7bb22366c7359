"""
Master playlist endpoints
"""

from fastapi import APIRouter, Depends

from dubcast.services.orchestrator import PipelineOrchestrator
from ..dependencies import get_orchestrator
from ..exceptions import ProcessingError
from ..models.requests import RefreshMasterRequest
from ..models.responses import DubbingResponse

router = APIRouter()


@router.post("/master/refresh", response_model=DubbingResponse)
def refresh_master(
    body: RefreshMasterRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> DubbingResponse:
    """Rebuild an asset's master playlist from its ready tracks and republish it."""
    result = orchestrator.refresh_manifest(asset_id=body.asset_id, section_id=body.section_id)
    if not result.success:
        raise ProcessingError(result.error or "Playlist refresh failed", details=result.to_dict())
    return DubbingResponse(**result.to_dict())
