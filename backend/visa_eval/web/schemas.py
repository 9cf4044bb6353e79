"""
Web API Schemas - Pydantic models for request/response
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..services.pipeline import JobStatus


class JobCreatedResponse(BaseModel):
    jobId: str


class JobStatusResponse(BaseModel):
    jobId: str
    status: JobStatus
    subscribers: int
    running: bool


class SendReportRequest(BaseModel):
    evaluationId: Optional[str] = None


class OkResponse(BaseModel):
    ok: bool = True


class PartnerAuthRequest(BaseModel):
    partnerId: Optional[str] = None
    partnerName: Optional[str] = None


class PartnerAuthResponse(BaseModel):
    apiKey: str
    partnerId: str
    partnerName: str
    rateLimit: int


class GenerateKeyRequest(BaseModel):
    evaluationId: Optional[str] = None
    jobId: Optional[str] = None  # older clients send the evaluation id as jobId


class GenerateKeyResponse(BaseModel):
    apiKey: str
    evaluationId: str
    message: str


class PartnerEvaluationsResponse(BaseModel):
    evaluations: List[Dict[str, Any]] = Field(default_factory=list)
    total: int
    rateLimitRemaining: int


class PartnerEvaluation(BaseModel):
    """Evaluation shape returned to partners holding a per-evaluation key."""
    id: str
    name: str = ""
    email: str = ""
    country: str = ""
    visaType: str = ""
    score: int = 0
    summary: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    recommendation: str = ""
    nextSteps: List[str] = Field(default_factory=list)
    timeline: str = ""
    additionalNotes: str = ""
    createdAt: Optional[str] = None


class PartnerEvaluationResponse(BaseModel):
    success: bool = True
    data: PartnerEvaluation
