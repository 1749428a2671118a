"""
Routes for notice templates, the template engine and SMS placeholder formats.
"""

import logging

from fastapi import APIRouter, Depends, Query

from legal_case_management.api.dependencies import get_system
from legal_case_management.api.schemas import (
    BatchRenderRequest,
    SmsFormatRequest,
    TemplatePreviewRequest,
    TemplateRenderRequest,
    TemplateValidateRequest,
)
from legal_case_management.models.entities import MasterStatus
from legal_case_management.models.master_data import NoticeTemplateCreate, NoticeTemplateUpdate
from legal_case_management.models.notices import RenderNoticeRequest
from legal_case_management.services import sms_format
from legal_case_management.services.legal_system import LegalCaseSystem
from legal_case_management.services.security import sanitize_search_term

router = APIRouter()

logger = logging.getLogger(__name__)


# ------------------------------------------------------------ notice templates


@router.post("/api/notice-templates", status_code=201)
async def create_notice_template(data: NoticeTemplateCreate, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notice_templates.create(data)


@router.get("/api/notice-templates")
async def list_notice_templates(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: str | None = None,
    status: MasterStatus | None = None,
    system: LegalCaseSystem = Depends(get_system),
) -> dict:
    return system.notice_templates.list(page=page, limit=limit, search=sanitize_search_term(search), status=status)


@router.get("/api/notice-templates/code/{template_code}")
async def get_notice_template_by_code(template_code: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notice_templates.get_by_code(template_code)


@router.get("/api/notice-templates/{template_id}")
async def get_notice_template(template_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notice_templates.get(template_id)


@router.put("/api/notice-templates/{template_id}")
async def update_notice_template(
    template_id: str, data: NoticeTemplateUpdate, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.notice_templates.update(template_id, data)


@router.delete("/api/notice-templates/{template_id}")
async def delete_notice_template(template_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.notice_templates.delete(template_id)


# ------------------------------------------------------------ template engine


@router.post("/api/template-engine/render")
async def render_template(data: TemplateRenderRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.template_engine.render(
        data.template_id,
        data.data,
        data.output_format,
        custom_variables=data.custom_variables,
        preview=data.preview,
        generated_by=data.generated_by,
    )


@router.post("/api/template-engine/render-notice")
async def render_notice(data: RenderNoticeRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    """Run the full notice pipeline: gather, mask, render, check compliance, post-process."""
    return system.renderer.render_notice(data)


@router.post("/api/template-engine/render-batch")
async def render_notice_batch(data: BatchRenderRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return await system.renderer.render_batch(data.requests)


@router.post("/api/template-engine/validate")
async def validate_template(data: TemplateValidateRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.template_engine.validate_template(data.content, data.max_characters)


@router.get("/api/template-engine/templates/{template_id}/validate")
async def validate_stored_template(template_id: str, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.template_engine.validate_stored_template(template_id)


@router.post("/api/template-engine/templates/{template_id}/preview")
async def preview_template(
    template_id: str, data: TemplatePreviewRequest, system: LegalCaseSystem = Depends(get_system)
) -> dict:
    return system.template_engine.preview(template_id, data.sample_data)


@router.post("/api/template-engine/variables")
async def template_variables(data: SmsFormatRequest, system: LegalCaseSystem = Depends(get_system)) -> dict:
    return {"variables": system.template_engine.extract_variables(data.body)}


@router.get("/api/template-engine/sample-data")
async def template_sample_data(system: LegalCaseSystem = Depends(get_system)) -> dict:
    return system.template_engine.mock_template_data()


# ----------------------------------------------------------------- sms format


@router.post("/api/sms-format/to-sms")
async def convert_to_sms_format(data: SmsFormatRequest) -> dict:
    return {"body": sms_format.to_sms_format(data.body)}


@router.post("/api/sms-format/from-sms")
async def convert_from_sms_format(data: SmsFormatRequest) -> dict:
    return {"body": sms_format.from_sms_format(data.body)}


@router.post("/api/sms-format/detect")
async def detect_sms_format(data: SmsFormatRequest) -> dict:
    return {
        "format": sms_format.detect_format(data.body),
        "variables": sms_format.extract_variables(data.body),
    }
