from typing import List

from fastapi import APIRouter, Depends, Response, status

from subdomain_engine.api.container import get_orchestrator
from subdomain_engine.api.schemas.subdomain import (
    SubdomainCreateRequest,
    SubdomainResponse,
    SubdomainUpdateRequest,
)

router = APIRouter(prefix="/domains/{domain_id}/subdomains", tags=["subdomains"])


@router.post("/", response_model=SubdomainResponse, status_code=status.HTTP_201_CREATED)
def create_subdomain(
    domain_id: int,
    request: SubdomainCreateRequest,
    orchestrator=Depends(get_orchestrator),
):
    record = orchestrator.create_subdomain(
        domain_id=domain_id,
        name=request.name,
        record_type=request.record_type,
        target_value=request.target_value,
        ttl=request.ttl,
        priority=request.priority,
        port=request.port,
        weight=request.weight,
    )
    return SubdomainResponse.from_record(record)


@router.get("/", response_model=List[SubdomainResponse])
def list_subdomains(
    domain_id: int,
    include_inactive: bool = False,
    orchestrator=Depends(get_orchestrator),
):
    records = orchestrator.list_subdomains(domain_id, include_inactive=include_inactive)
    return [SubdomainResponse.from_record(r) for r in records]


@router.get("/{subdomain_id}", response_model=SubdomainResponse)
def get_subdomain(
    domain_id: int,
    subdomain_id: int,
    orchestrator=Depends(get_orchestrator),
):
    return SubdomainResponse.from_record(
        orchestrator.get_subdomain(domain_id, subdomain_id)
    )


@router.patch("/{subdomain_id}", response_model=SubdomainResponse)
def update_subdomain(
    domain_id: int,
    subdomain_id: int,
    request: SubdomainUpdateRequest,
    orchestrator=Depends(get_orchestrator),
):
    record = orchestrator.update_subdomain(domain_id, subdomain_id, request.to_update())
    return SubdomainResponse.from_record(record)


@router.delete("/{subdomain_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subdomain(
    domain_id: int,
    subdomain_id: int,
    orchestrator=Depends(get_orchestrator),
):
    orchestrator.delete_subdomain(domain_id, subdomain_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
