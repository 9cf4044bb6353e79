"""
Request dependencies: process-scoped services and partner authentication.

Every service is constructed once in the application lifespan and stored
on app.state; handlers receive them through these dependencies.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from ..db import EvaluationRepository, PartnerKeyRecord, PartnerKeyRepository
from ..services.pipeline import Mailer, ReportRenderer
from .config import AppConfig
from .services.job_executor import JobExecutorService
from .services.job_service import JobRegistry


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_registry(request: Request) -> JobRegistry:
    return request.app.state.registry


def get_executor(request: Request) -> JobExecutorService:
    return request.app.state.executor


def get_store(request: Request) -> EvaluationRepository:
    return request.app.state.store


def get_partner_keys(request: Request) -> PartnerKeyRepository:
    return request.app.state.partner_keys


def get_renderer(request: Request) -> ReportRenderer:
    return request.app.state.renderer


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


async def require_partner_key(
    x_api_key: Optional[str] = Header(None, alias="x-api-key"),
    keys: PartnerKeyRepository = Depends(get_partner_keys),
) -> PartnerKeyRecord:
    """
    Authenticate a partner from the x-api-key header.

    Counts the request against the key's daily budget.
    """
    api_key = (x_api_key or "").strip()
    if not api_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_api_key")

    record = await keys.verify(api_key)
    if record is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="invalid_api_key")
    return record
