"""Documents API routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from teamspace.core.workspace.documents import DocumentService
from teamspace.entrypoints.api.deps import get_document_service
from teamspace.entrypoints.api.middleware.jwt_auth import JwtContext, verify_jwt
from teamspace.entrypoints.api.schemas import DocumentResponse, PageResponse, page_response

router = APIRouter(tags=["documents"])

AuthDep = Annotated[JwtContext, Depends(verify_jwt)]
DocumentServiceDep = Annotated[DocumentService, Depends(get_document_service)]


class DocumentCreate(BaseModel):
    """Document creation request."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str = ""


class DocumentUpdate(BaseModel):
    """Document update request. Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=255)
    content: str | None = None


@router.post(
    "/projects/{project_id}/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_document(
    project_id: UUID,
    body: DocumentCreate,
    auth: AuthDep,
    service: DocumentServiceDep,
) -> DocumentResponse:
    """Create a document in a project."""
    document = await service.create_document(
        auth.user_uuid, project_id, body.title, body.content
    )
    return DocumentResponse.model_validate(document)


@router.get("/projects/{project_id}/documents", response_model=PageResponse[DocumentResponse])
async def list_project_documents(
    project_id: UUID,
    auth: AuthDep,
    service: DocumentServiceDep,
    cursor: str | None = None,
    limit: str | None = None,
) -> PageResponse[DocumentResponse]:
    """List a project's documents, newest first."""
    page = await service.list_documents_by_project(
        auth.user_uuid, project_id, cursor=cursor, limit=limit
    )
    return page_response(page, DocumentResponse)


@router.get("/documents/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: UUID, auth: AuthDep, service: DocumentServiceDep
) -> DocumentResponse:
    """Get a document by ID."""
    document = await service.get_document(auth.user_uuid, document_id)
    return DocumentResponse.model_validate(document)


@router.patch("/documents/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: UUID,
    body: DocumentUpdate,
    auth: AuthDep,
    service: DocumentServiceDep,
) -> DocumentResponse:
    """Update a document's title or content."""
    document = await service.update_document(
        auth.user_uuid, document_id, title=body.title, content=body.content
    )
    return DocumentResponse.model_validate(document)


@router.delete("/documents/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID, auth: AuthDep, service: DocumentServiceDep
) -> Response:
    """Delete a document."""
    await service.delete_document(auth.user_uuid, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
