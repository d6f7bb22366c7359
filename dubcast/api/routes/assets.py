"""
Asset and track endpoints
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from dubcast.languages import normalize_languages
from dubcast.services.track_registry import AssetRepository, TrackRecord, TrackRegistry
from ..dependencies import get_assets, get_registry
from ..exceptions import NotFoundError
from ..models.responses import AssetResponse, AssetTracksResponse, TrackResponse

router = APIRouter()


def _track_response(track: TrackRecord) -> TrackResponse:
    return TrackResponse(
        language=track.language,
        status=track.status,
        url=track.url,
        error_message=track.error_message,
        provider_job_id=track.provider_job_id,
        started_at=track.started_at,
        completed_at=track.completed_at,
        updated_at=track.updated_at,
    )


def _require_asset(assets: AssetRepository, asset_id: str):
    asset = assets.get(asset_id)
    if asset is None:
        raise NotFoundError(f"Asset {asset_id} not found")
    return asset


@router.get("/assets", response_model=List[AssetResponse])
def list_assets(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    assets: AssetRepository = Depends(get_assets),
) -> List[AssetResponse]:
    """List media assets, oldest first."""
    return [
        AssetResponse(
            asset_id=asset.id,
            section_id=asset.section_id,
            title=asset.title,
            source_url=asset.source_url,
            master_key=asset.master_key,
            created_at=asset.created_at,
        )
        for asset in assets.list(skip=skip, limit=limit)
    ]


@router.get("/assets/{asset_id}/tracks", response_model=AssetTracksResponse)
def list_tracks(
    asset_id: str,
    assets: AssetRepository = Depends(get_assets),
    registry: TrackRegistry = Depends(get_registry),
) -> AssetTracksResponse:
    """List every dub track of an asset with its status."""
    asset = _require_asset(assets, asset_id)
    return AssetTracksResponse(
        asset_id=asset.id,
        section_id=asset.section_id,
        master_key=asset.master_key,
        tracks=[_track_response(t) for t in registry.list_all(asset.id)],
    )


@router.post("/assets/{asset_id}/tracks/{language}/retry", response_model=TrackResponse)
def retry_track(
    asset_id: str,
    language: str,
    assets: AssetRepository = Depends(get_assets),
    registry: TrackRegistry = Depends(get_registry),
) -> TrackResponse:
    """Move a failed track back to pending so the next dubbing run picks it up."""
    asset = _require_asset(assets, asset_id)
    language = normalize_languages([language])[0]
    if registry.get(asset.id, language) is None:
        raise NotFoundError(f"Track '{language}' not found for asset {asset_id}")
    return _track_response(registry.retry(asset.id, language))
