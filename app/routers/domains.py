# app/routers/domains.py - Admin allow-list of interviewer email domains

from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from app.core.security import get_current_admin
from app.models.admin import AllowedDomain, DomainCreateRequest
from app.models.user import CurrentUser
from app.services.runtime import Runtime, get_runtime

router = APIRouter()


@router.get("", response_model=List[AllowedDomain])
async def list_domains(
    current_user: CurrentUser = Depends(get_current_admin),
    rt: Runtime = Depends(get_runtime),
):
    return [AllowedDomain(id=d["id"], domain=d["domain"]) for d in rt.domains.list_all()]


@router.post("", response_model=AllowedDomain)
async def add_domain(
    request: DomainCreateRequest,
    current_user: CurrentUser = Depends(get_current_admin),
    rt: Runtime = Depends(get_runtime),
):
    if rt.domains.query(domain=request.domain):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="This domain is already in the allowed list.")
    doc_id = rt.domains.add({"domain": request.domain})
    return AllowedDomain(id=doc_id, domain=request.domain)


@router.delete("/{domain_id}")
async def delete_domain(
    domain_id: str,
    current_user: CurrentUser = Depends(get_current_admin),
    rt: Runtime = Depends(get_runtime),
):
    if rt.domains.get(domain_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Domain not found")
    rt.domains.delete(domain_id)
    return {"success": True, "message": "Domain removed", "domain_id": domain_id}
