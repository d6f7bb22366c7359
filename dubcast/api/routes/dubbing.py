"""
Dubbing endpoints
"""

import logging

from fastapi import APIRouter, Depends

from dubcast.services.orchestrator import DubbingRequest, PipelineOrchestrator
from ..dependencies import get_orchestrator
from ..exceptions import ProcessingError
from ..models.requests import DubbingCreateRequest
from ..models.responses import DubbingResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/dubbing", response_model=DubbingResponse)
def create_dubbing(
    body: DubbingCreateRequest,
    orchestrator: PipelineOrchestrator = Depends(get_orchestrator),
) -> DubbingResponse:
    """
    Dub a video into the requested languages and publish the HLS bundle.

    Runs synchronously. A partial success (some languages failed) is
    still a 200; per-language failures are listed in ``outcomes``.
    """
    result = orchestrator.run(DubbingRequest(
        target_languages=body.target_languages,
        source_url=body.source_url,
        asset_id=body.asset_id,
        section_id=body.section_id,
        title=body.title,
        include_origin=body.include_origin,
    ))
    if not result.success:
        logger.warning(f"Dubbing failed for asset {result.asset_id}: {result.error}")
        raise ProcessingError(result.error or "Dubbing failed", details=result.to_dict())
    return DubbingResponse(**result.to_dict())
