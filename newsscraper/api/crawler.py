"""
Crawler API endpoints for running article searches.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from newsscraper.crawler.article import day_range
from newsscraper.crawler.exceptions import ConfigurationError
from newsscraper.schemas.crawler import (
    ArticleResponse,
    ProviderListResponse,
    ProviderResponse,
    SearchRequest,
    SearchResultsResponse,
    SearchStatusResponse,
    SearchTaskResponse,
)
from newsscraper.services.crawler import (
    CrawlerService,
    SearchStatus,
    SearchTask,
    get_crawler_service,
)

router = APIRouter(prefix="/crawler", tags=["crawler"])


def _get_task_or_404(service: CrawlerService, task_id: str) -> SearchTask:
    task = service.get_task(task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Task {task_id} not found",
        )
    return task


@router.get("/providers", response_model=ProviderListResponse)
async def get_providers(service: CrawlerService = Depends(get_crawler_service)):
    """
    Get all known news providers.

    Returns whether each provider is enabled and usable with the current
    configuration.
    """
    providers = [ProviderResponse(**p) for p in service.list_providers()]
    return ProviderListResponse(providers=providers, total=len(providers))


@router.post("/search", response_model=SearchTaskResponse)
async def start_search(
    request: SearchRequest,
    service: CrawlerService = Depends(get_crawler_service),
):
    """
    Start a search across providers.

    The search runs in the background; poll the status endpoint for progress.
    """
    from_date, to_date = day_range(request.from_date, request.to_date)
    try:
        task = service.start_search(
            keywords=request.keywords,
            from_date=from_date,
            to_date=to_date,
            provider_names=request.providers,
            export=request.export,
        )
    except ConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return SearchTaskResponse(
        task_id=task.task_id,
        status=task.status.value,
        providers=task.providers,
        message=f"Search started for {len(task.providers)} provider(s)",
    )


@router.get("/status/{task_id}", response_model=SearchStatusResponse)
async def get_search_status(
    task_id: str,
    service: CrawlerService = Depends(get_crawler_service),
):
    """Get the status of a search."""
    task = _get_task_or_404(service, task_id)
    return SearchStatusResponse(**task.to_dict())


@router.get("/results/{task_id}", response_model=SearchResultsResponse)
async def get_search_results(
    task_id: str,
    service: CrawlerService = Depends(get_crawler_service),
):
    """
    Get the articles found by a search.

    Returns 409 while the search has not completed.
    """
    task = _get_task_or_404(service, task_id)
    if task.status != SearchStatus.COMPLETED or task.result is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Task is not completed (status: {task.status.value})",
        )

    articles = {
        provider: [ArticleResponse(**a.to_dict()) for a in result.values()]
        for provider, result in task.result.items()
    }
    return SearchResultsResponse(
        task_id=task.task_id,
        status=task.status.value,
        articles=articles,
        total=task.total_articles,
    )
