"""Lead routes: public intake plus the recruiter pipeline."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile, status
from pydantic import ValidationError

from leadflow import views
from leadflow.auth import require_roles
from leadflow.intake import AttachmentTooLarge, IntakeError, encode_attachment, submit_application
from leadflow.schemas import (
    BatchDeleteRequest,
    BatchOutcome,
    BatchStatusRequest,
    Lead,
    LeadFormData,
    LeadPatch,
    LeadStatus,
    PipelineMetrics,
    Role,
    StatusChange,
)
from leadflow.store import PipelineStore
from leadflow.tools.outreach import draft_email, draft_sms

router = APIRouter()

_can_read = Depends(require_roles(Role.RECRUITER, Role.MANAGER))
_can_write = Depends(require_roles(Role.RECRUITER))


def _store(request: Request) -> PipelineStore:
    return request.app.state.store


def _get_or_404(store: PipelineStore, lead_id: str) -> Lead:
    lead = store.get(lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


# ── Public intake ─────────────────────────────────────────────────────────

async def _submit(request: Request, form: LeadFormData) -> dict:
    config = request.app.state.config
    try:
        result = await submit_application(request.app.state.gateway, form, config.max_cv_bytes)
    except AttachmentTooLarge as e:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))
    except IntakeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not result.success:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return {"success": True}


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_lead(form: LeadFormData, request: Request):
    return await _submit(request, form)


@router.post("/apply", status_code=status.HTTP_201_CREATED)
async def submit_lead_with_cv(
    request: Request,
    full_name: str = Form(...),
    email: str = Form(...),
    phone: str = Form(...),
    post_applied_for: str = Form(...),
    bio: str = Form(...),
    source: str = Form(""),
    cv: UploadFile | None = File(None),
):
    """Multipart variant of the intake form with an optional CV upload."""
    cv_base64 = cv_file_name = None
    if cv is not None and cv.filename:
        content = await cv.read()
        try:
            cv_base64, cv_file_name = encode_attachment(
                content, cv.filename, request.app.state.config.max_cv_bytes,
            )
        except AttachmentTooLarge as e:
            raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=str(e))
        except IntakeError as e:
            raise HTTPException(status_code=400, detail=str(e))

    try:
        form = LeadFormData(
            full_name=full_name,
            email=email,
            phone=phone,
            post_applied_for=post_applied_for,
            bio=bio,
            source=source,
            cv_base64=cv_base64,
            cv_file_name=cv_file_name,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))
    return await _submit(request, form)


# ── Pipeline reads ────────────────────────────────────────────────────────

@router.get("", response_model=list[Lead], dependencies=[_can_read])
async def list_leads(
    request: Request,
    q: str | None = Query(None),
    status_filter: LeadStatus | None = Query(None, alias="status"),
    refresh: bool = Query(False),
):
    store = _store(request)
    if refresh:
        await store.load()
    leads = views.filter_by_status(views.search_leads(store.leads, q), status_filter)
    return views.sort_for_display(leads)


@router.get("/board", dependencies=[_can_read])
async def board(request: Request, q: str | None = Query(None)):
    columns = views.board_columns(views.search_leads(_store(request).leads, q))
    return {column.value: leads for column, leads in columns.items()}


@router.get("/metrics", response_model=PipelineMetrics, dependencies=[_can_read])
async def metrics(request: Request):
    return views.compute_metrics(_store(request).leads)


@router.post("/reload", response_model=list[Lead], dependencies=[_can_write])
async def reload(request: Request):
    store = _store(request)
    await store.load()
    if store.last_error:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=store.last_error)
    return views.sort_for_display(store.leads)


# ── Batch mutations ───────────────────────────────────────────────────────

@router.post("/batch/delete", response_model=BatchOutcome, dependencies=[_can_write])
async def batch_delete(req: BatchDeleteRequest, request: Request):
    return await _store(request).batch_delete(req.ids)


@router.post("/batch/status", response_model=BatchOutcome, dependencies=[_can_write])
async def batch_status(req: BatchStatusRequest, request: Request):
    return await _store(request).batch_set_status(req.ids, req.status)


# ── Single lead ───────────────────────────────────────────────────────────

@router.get("/{lead_id}", response_model=Lead, dependencies=[_can_read])
async def get_lead(lead_id: str, request: Request):
    return _get_or_404(_store(request), lead_id)


@router.patch("/{lead_id}/status", response_model=Lead, dependencies=[_can_write])
async def change_status(lead_id: str, req: StatusChange, request: Request):
    store = _store(request)
    _get_or_404(store, lead_id)
    result = await store.set_status(lead_id, req.status)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return _get_or_404(store, lead_id)


@router.patch("/{lead_id}", response_model=Lead, dependencies=[_can_write])
async def update_lead(lead_id: str, req: LeadPatch, request: Request):
    changes = {
        name: getattr(req, name)
        for name in req.model_fields_set
        if getattr(req, name) is not None
    }
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    store = _store(request)
    _get_or_404(store, lead_id)
    result = await store.update_fields(lead_id, changes)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return _get_or_404(store, lead_id)


@router.put("/{lead_id}", response_model=Lead, dependencies=[_can_write])
async def save_lead(lead_id: str, lead: Lead, request: Request):
    if lead.id != lead_id:
        raise HTTPException(status_code=400, detail="Lead id does not match the URL")
    store = _store(request)
    _get_or_404(store, lead_id)
    result = await store.save_detail(lead)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    return _get_or_404(store, lead_id)


@router.get("/{lead_id}/outreach", dependencies=[_can_write])
async def outreach(lead_id: str, request: Request):
    lead = _get_or_404(_store(request), lead_id)
    company = request.app.state.config.company_name
    return {"email": draft_email(lead, company), "sms": draft_sms(lead, company)}
