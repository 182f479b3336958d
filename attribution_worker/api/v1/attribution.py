"""
API endpoints for click recording, sale attribution and model introspection
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from attribution_worker.core.exceptions import (
    AttributionNotFoundError,
    AttributionPersistenceError,
    AttributionStateError,
    ContentAttributionNotFoundError,
)
from attribution_worker.core.logging import get_logger
from attribution_worker.domains.attribution.models import (
    AttributionOptions,
    AttributionRecord,
    AttributionResult,
    ClickEvent,
    ClickStats,
    ContentAttributionRecord,
    ContentAttributionResult,
    ContentAttributionStats,
    LearningHealth,
    ModelStatus,
    Project,
    RawContent,
    SaleEvent,
)
from attribution_worker.domains.attribution.services import (
    AttributionService,
    ContentAttributionEngine,
    ContentAttributionService,
)
from attribution_worker.shared.constants.app import API_V1_PREFIX

logger = get_logger(__name__)
router = APIRouter(prefix=f"{API_V1_PREFIX}/attribution", tags=["attribution"])


class RecordClickResponse(BaseModel):
    click_id: str
    recorded: bool


class AttributeSaleRequest(BaseModel):
    sale: SaleEvent
    options: Optional[AttributionOptions] = None


class FeedbackRequest(BaseModel):
    confirmed: bool


class ContentAttributionRequest(BaseModel):
    content: RawContent
    projects: List[Project] = Field(default_factory=list)


class ContentReviewRequest(BaseModel):
    reviewer: str
    note: Optional[str] = None


def get_attribution_service(request: Request) -> AttributionService:
    service = getattr(request.app.state, "attribution_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Attribution service is not ready")
    return service


def get_content_engine(request: Request) -> ContentAttributionEngine:
    engine = getattr(request.app.state, "content_engine", None)
    return engine or ContentAttributionEngine()


def get_content_service(request: Request) -> ContentAttributionService:
    service = getattr(request.app.state, "content_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Content attribution service is not ready")
    return service


@router.post("/clicks", response_model=RecordClickResponse)
async def record_click(
    click: ClickEvent, service: AttributionService = Depends(get_attribution_service)
):
    """Index a click for matching against later sales"""
    recorded = await service.record_click(click)
    return RecordClickResponse(click_id=click.id, recorded=recorded)


@router.post("/sales", response_model=AttributionResult)
async def attribute_sale(
    body: AttributeSaleRequest,
    service: AttributionService = Depends(get_attribution_service),
):
    """Attribute a sale; repeated deliveries return the stored attribution"""
    try:
        return await service.attribute_sale(body.sale, body.options)
    except AttributionPersistenceError as e:
        logger.error("Attribution could not be stored", sale_id=body.sale.id, error=e.message)
        raise HTTPException(status_code=503, detail=e.to_dict())


@router.post("/{attribution_id}/feedback", response_model=AttributionRecord)
async def attribution_feedback(
    attribution_id: str,
    body: FeedbackRequest,
    service: AttributionService = Depends(get_attribution_service),
):
    """Confirm or reject an attribution and feed the verdict to the model"""
    try:
        return await service.process_attribution_feedback(attribution_id, body.confirmed)
    except AttributionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())
    except AttributionStateError as e:
        raise HTTPException(status_code=409, detail=e.to_dict())
    except AttributionPersistenceError as e:
        logger.error(
            "Attribution review could not be stored",
            attribution_id=attribution_id,
            error=e.message,
        )
        raise HTTPException(status_code=503, detail=e.to_dict())


@router.get("/model", response_model=ModelStatus)
async def get_model_status(service: AttributionService = Depends(get_attribution_service)):
    """Weights, training progress, click index stats and learning health"""
    return service.get_model_status()


@router.get("/model/extended", response_model=ModelStatus)
async def get_extended_model_status(
    service: AttributionService = Depends(get_attribution_service),
):
    return await service.get_extended_model_status()


@router.get("/model/health", response_model=LearningHealth)
async def get_model_health(service: AttributionService = Depends(get_attribution_service)):
    return service.engine.model.check_learning_health()


@router.get("/clicks/stats", response_model=ClickStats)
async def get_click_stats(service: AttributionService = Depends(get_attribution_service)):
    return service.get_click_stats()


@router.get("/clicks/unattributed/{user_id}", response_model=List[ClickEvent])
async def get_unattributed_clicks(
    user_id: str, service: AttributionService = Depends(get_attribution_service)
):
    return service.get_unattributed_clicks_for_user(user_id)


@router.post("/content", response_model=ContentAttributionResult)
async def attribute_content(
    body: ContentAttributionRequest,
    engine: ContentAttributionEngine = Depends(get_content_engine),
):
    """Deterministic attribution of one content item to candidate projects"""
    return engine.attribute_content(body.content, body.projects)


@router.post("/content/ingest", response_model=List[ContentAttributionRecord])
async def ingest_content(
    body: ContentAttributionRequest,
    service: ContentAttributionService = Depends(get_content_service),
):
    """Attribute a content item and store one row per matched project"""
    return await service.ingest_content(body.content, body.projects)


@router.get("/content/review-queue", response_model=List[ContentAttributionRecord])
async def get_content_review_queue(
    project_id: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    service: ContentAttributionService = Depends(get_content_service),
):
    return await service.get_review_queue(project_id, limit)


@router.get("/content/stats/{project_id}", response_model=ContentAttributionStats)
async def get_content_stats(
    project_id: str, service: ContentAttributionService = Depends(get_content_service)
):
    return await service.get_stats(project_id)


@router.post("/content/{content_attribution_id}/approve", response_model=ContentAttributionRecord)
async def approve_content_attribution(
    content_attribution_id: str,
    body: ContentReviewRequest,
    service: ContentAttributionService = Depends(get_content_service),
):
    try:
        return await service.approve(content_attribution_id, body.reviewer, body.note)
    except ContentAttributionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())


@router.post("/content/{content_attribution_id}/reject", response_model=ContentAttributionRecord)
async def reject_content_attribution(
    content_attribution_id: str,
    body: ContentReviewRequest,
    service: ContentAttributionService = Depends(get_content_service),
):
    try:
        return await service.reject(content_attribution_id, body.reviewer, body.note)
    except ContentAttributionNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())
