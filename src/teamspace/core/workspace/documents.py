"""Document lifecycle. Rights derive from the caller's project role."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from teamspace.core.audit.recorder import AuditRecorder
from teamspace.core.audit.types import AuditAction, EntityType
from teamspace.core.exceptions import ConflictError, NotFoundError
from teamspace.core.pagination import Page, build_page, page_request
from teamspace.core.rbac.authorizer import Authorizer
from teamspace.core.rbac.policy import ProjectAction
from teamspace.core.rbac.repository import WorkspaceRepository
from teamspace.core.rbac.types import Document


class DocumentService:
    """Document operations."""

    def __init__(self, repo: WorkspaceRepository, audit: AuditRecorder | None = None) -> None:
        """Initialize with workspace storage and an audit recorder."""
        self._repo = repo
        self._authz = Authorizer(repo)
        self._audit = audit or AuditRecorder()

    async def create_document(
        self,
        actor_id: UUID,
        project_id: UUID,
        title: str,
        content: str = "",
    ) -> Document:
        """Create a document authored by the actor. Any project member may create.

        Raises:
            ConflictError: If the project already has a document with the title.
        """
        await self._authz.project(actor_id, project_id, ProjectAction.CREATE_DOCUMENT)

        if await self._repo.document_title_taken(project_id, title):
            raise ConflictError("Document with the same title already exists")

        document = await self._repo.create_document(project_id, title, content, author_id=actor_id)
        await self._audit.record(
            actor_id,
            AuditAction.CREATE_DOCUMENT,
            EntityType.DOCUMENT,
            document.id,
            metadata={"project_id": str(project_id), "title": title},
        )
        return document

    async def get_document(self, actor_id: UUID, document_id: UUID) -> Document:
        """Get a document from a project the actor is a member of."""
        access = await self._authz.document(actor_id, document_id, ProjectAction.READ)
        return access.document

    async def update_document(
        self,
        actor_id: UUID,
        document_id: UUID,
        title: str | None = None,
        content: str | None = None,
    ) -> Document:
        """Update title and/or content. Requires project EDITOR or ADMIN."""
        access = await self._authz.document(actor_id, document_id, ProjectAction.UPDATE_DOCUMENT)
        if title is not None and title != access.document.title:
            taken = await self._repo.document_title_taken(
                access.document.project_id, title, exclude_document_id=document_id
            )
            if taken:
                raise ConflictError("Document with the same title already exists")

        document = await self._repo.update_document(document_id, title=title, content=content)
        if not document:
            raise NotFoundError("Document not found")

        await self._audit.record(
            actor_id,
            AuditAction.UPDATE_DOCUMENT,
            EntityType.DOCUMENT,
            document_id,
            metadata={"title_changed": title is not None, "content_changed": content is not None},
        )
        return document

    async def delete_document(self, actor_id: UUID, document_id: UUID) -> None:
        """Soft-delete a document. Requires project ADMIN."""
        await self._authz.document(actor_id, document_id, ProjectAction.DELETE_DOCUMENT)

        if not await self._repo.delete_document(document_id):
            raise NotFoundError("Document not found")

        await self._audit.record(
            actor_id, AuditAction.DELETE_DOCUMENT, EntityType.DOCUMENT, document_id
        )

    async def list_documents_by_project(
        self,
        actor_id: UUID,
        project_id: UUID,
        cursor: str | None = None,
        limit: Any = None,
    ) -> Page[Document]:
        """List a project's documents, newest first."""
        await self._authz.project(actor_id, project_id, ProjectAction.READ)
        request = page_request(cursor, limit)
        rows = await self._repo.list_documents(project_id, request.after, request.fetch_size)
        return build_page(rows, request.limit)
