"""Samehadaku scrape routes."""
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import JSONResponse

from backend.app.api.deps import get_orchestrator, scrape_rate_limit, settings
from backend.app.schemas import ApiResponse, PaginationResponse, camelize
from samehadaku.models import CollectionKind, HomeFeed, ScrapeResult
from samehadaku.orchestrator import ScrapeOrchestrator
from samehadaku.utils import API_PREFIX

router = APIRouter(
    prefix="/samehadaku",
    tags=["samehadaku"],
    dependencies=[Depends(scrape_rate_limit)],
)

RATE_LIMIT_HEADERS = ("X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset")


def envelope(data: Any, result: Optional[ScrapeResult], message: str) -> dict:
    """Wrap data in the shared response envelope."""
    ok = result.ok if result is not None else True
    return ApiResponse(
        status="success" if ok else "failed",
        creator=settings.creator,
        message=message if ok else result.message,
        data=data,
        pagination=PaginationResponse.from_pagination(result.pagination if result else None),
    ).dump()


def not_found(message: str, response: Response) -> JSONResponse:
    headers = {k: response.headers[k] for k in RATE_LIMIT_HEADERS if k in response.headers}
    return JSONResponse(
        status_code=404,
        content=ApiResponse(status="failed", creator=settings.creator, message=message).dump(),
        headers=headers,
    )


def home_data(feed: HomeFeed, base_url: str) -> dict:
    """Group home sections with their API and site links."""
    return {
        "recent": {
            "href": f"{API_PREFIX}/recent",
            "samehadakuUrl": f"{base_url}/",
            "animeList": camelize(feed.recent),
        },
        "batch": {
            "href": f"{API_PREFIX}/batch",
            "samehadakuUrl": f"{base_url}/batch/",
            "batchList": camelize(feed.batch),
        },
        "movie": {
            "href": f"{API_PREFIX}/movies",
            "samehadakuUrl": f"{base_url}/anime-movie/",
            "animeList": camelize(feed.movie),
        },
        "top10": {
            "href": f"{API_PREFIX}/popular",
            "samehadakuUrl": f"{base_url}/daftar-anime/?order=popular",
            "animeList": camelize(feed.top10),
        },
    }


def anime_list(result: ScrapeResult, message: str) -> dict:
    return envelope({"animeList": camelize(result.records)}, result, message)


@router.get("/home")
async def get_home(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)):
    """Home sections: recent, batch, movie and top 10."""
    result = await orchestrator.get_home()
    return envelope(
        home_data(result.records, orchestrator.base_url), result, "Successfully fetched home data"
    )


@router.get("/recent")
async def get_recent(
    page: int = Query(1, ge=1),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """Latest episode updates."""
    return anime_list(await orchestrator.get_recent(page), "Successfully fetched recent anime")


@router.get("/search")
async def search(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """Search anime by keyword."""
    return anime_list(await orchestrator.search(q, page), f"Successfully searched for: {q}")


@router.get("/ongoing")
async def get_ongoing(
    page: int = Query(1, ge=1),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    return anime_list(await orchestrator.get_ongoing(page), "Successfully fetched ongoing anime")


@router.get("/completed")
async def get_completed(
    page: int = Query(1, ge=1),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    return anime_list(await orchestrator.get_completed(page), "Successfully fetched completed anime")


@router.get("/popular")
async def get_popular(
    page: int = Query(1, ge=1),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    return anime_list(await orchestrator.get_popular(page), "Successfully fetched popular anime")


@router.get("/movies")
async def get_movies(
    page: int = Query(1, ge=1),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    return anime_list(await orchestrator.get_movies(page), "Successfully fetched anime movies")


@router.get("/genres")
async def get_genres(orchestrator: ScrapeOrchestrator = Depends(get_orchestrator)):
    """Genre list."""
    result = await orchestrator.get_genres()
    return envelope({"genreList": camelize(result.records)}, result, "Successfully fetched genre list")


@router.get("/genres/{genre_id}")
async def get_by_genre(
    genre_id: str,
    page: int = Query(1, ge=1),
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """Anime tagged with one genre."""
    return anime_list(
        await orchestrator.get_by_genre(genre_id, page),
        f"Successfully fetched anime for genre: {genre_id}",
    )


@router.get("/anime/{anime_id}")
async def get_detail(
    anime_id: str,
    response: Response,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """Anime detail with episode and batch lists."""
    detail = await orchestrator.get_detail(anime_id)
    if detail is None:
        return not_found("Anime not found", response)
    return envelope(camelize(detail), None, "Successfully fetched anime detail")


@router.get("/episode/{episode_id}")
async def get_episode(
    episode_id: str,
    response: Response,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """Episode stream and download links."""
    episode = await orchestrator.get_episode(episode_id)
    if episode is None:
        return not_found("Episode not found", response)
    return envelope(camelize(episode), None, "Successfully fetched episode detail")


@router.get("/total-pages/{endpoint}")
async def get_total_pages(
    endpoint: str,
    orchestrator: ScrapeOrchestrator = Depends(get_orchestrator),
):
    """
    Total pages of an unfiltered collection.

    Unknown endpoints fall back to recent. Resolving a cold collection probes
    the site and can take a while.
    """
    valid = {k.value: k for k in ScrapeOrchestrator.unfiltered_kinds()}
    kind = valid.get(endpoint, CollectionKind.RECENT)
    total = await orchestrator.get_total_pages(kind)
    return envelope(
        {"endpoint": kind.value, "totalPages": total},
        None,
        "Successfully fetched/calculated total pages",
    )
