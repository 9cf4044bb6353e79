"""
Partner Router - API keys and evaluation access for partners
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...db import EvaluationRepository, PartnerKeyRecord, PartnerKeyRepository, new_api_key
from ..dependencies import get_partner_keys, get_store, require_partner_key
from ..schemas import (
    GenerateKeyRequest,
    GenerateKeyResponse,
    PartnerAuthRequest,
    PartnerAuthResponse,
    PartnerEvaluation,
    PartnerEvaluationResponse,
    PartnerEvaluationsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/partner", tags=["partner"])


@router.post("/auth", response_model=PartnerAuthResponse)
async def issue_partner_key(
    body: PartnerAuthRequest,
    keys: PartnerKeyRepository = Depends(get_partner_keys),
):
    """Issue a partner API key with a daily request budget."""
    if not body.partnerId or not body.partnerName:
        raise HTTPException(status_code=400, detail="missing_partner")

    record = await keys.create_key(body.partnerId, body.partnerName)
    logger.info("Issued API key for partner %s", record.partner_id)
    return PartnerAuthResponse(
        apiKey=record.key,
        partnerId=record.partner_id,
        partnerName=record.partner_name,
        rateLimit=record.rate_limit,
    )


@router.get("/evaluations", response_model=PartnerEvaluationsResponse)
async def list_partner_evaluations(
    country: Optional[str] = Query(None),
    minScore: Optional[int] = Query(None),
    maxScore: Optional[int] = Query(None),
    partner: PartnerKeyRecord = Depends(require_partner_key),
    store: EvaluationRepository = Depends(get_store),
):
    """Evaluations submitted through this partner or without a partner."""
    evaluations = await store.list(
        country=country,
        min_score=minScore,
        max_score=maxScore,
        partner_id=partner.partner_id,
    )
    return PartnerEvaluationsResponse(
        evaluations=evaluations,
        total=len(evaluations),
        rateLimitRemaining=max(0, partner.rate_limit - partner.requests_used_today),
    )


@router.post("/generate-key", response_model=GenerateKeyResponse)
async def generate_evaluation_key(
    body: GenerateKeyRequest,
    store: EvaluationRepository = Depends(get_store),
):
    """Create (or return the existing) access key for one evaluation."""
    evaluation_id = body.evaluationId or body.jobId
    if not evaluation_id:
        raise HTTPException(status_code=400, detail="missing_evaluationId")

    record = await store.get(evaluation_id)
    if record is None:
        raise HTTPException(status_code=404, detail="not_found")

    if record.get("apiKey"):
        return GenerateKeyResponse(
            apiKey=record["apiKey"],
            evaluationId=evaluation_id,
            message="API key already exists for this evaluation",
        )

    api_key = new_api_key()
    if not await store.set_api_key(evaluation_id, api_key):
        raise HTTPException(status_code=404, detail="not_found")
    return GenerateKeyResponse(
        apiKey=api_key,
        evaluationId=evaluation_id,
        message="API key created successfully",
    )


@router.get("", response_model=PartnerEvaluationResponse)
async def get_evaluation_by_key(
    apiKey: Optional[str] = Query(None),
    store: EvaluationRepository = Depends(get_store),
):
    """Resolve a single evaluation from its per-evaluation access key."""
    if not apiKey:
        raise HTTPException(status_code=401, detail="missing_api_key")

    record = await store.get_by_api_key(apiKey)
    if record is None:
        raise HTTPException(status_code=403, detail="invalid_api_key")

    data = PartnerEvaluation.model_validate(
        {k: v for k, v in record.items() if k in PartnerEvaluation.model_fields and v is not None}
    )
    return PartnerEvaluationResponse(success=True, data=data)
