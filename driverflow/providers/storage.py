"""Document storage provider backed by the Cloud Storage JSON API."""

from __future__ import annotations

import time
from typing import Optional

import anyio
import httpx

from ..config import StorageConfig
from ..contracts import DocumentFile, Subject
from ..exceptions import ProviderError
from .base import BaseProvider


class DocumentStorageProvider(BaseProvider):
    """Upload every document a driver supplied into the storage bucket."""

    name = "firebase_storage"
    label = "Document storage"

    def __init__(
        self,
        config: StorageConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(config, transport=transport)  # type: ignore[arg-type]

    def _require(self, config: StorageConfig, message: Optional[str] = None) -> None:
        super()._require(config, message or "Firebase not initialized")

    def _headers(self, config: StorageConfig) -> dict[str, str]:
        return {"Authorization": f"Bearer {config.access_token}"}

    def build_request(self, subject: Subject) -> dict:
        return {"subjectId": subject.id, "documents": list(subject.documents)}

    @staticmethod
    def folder_for(subject_id: str, document: DocumentFile) -> str:
        if document.kind == "profile_photo":
            return f"drivers/{subject_id}/profile"
        return f"drivers/{subject_id}/documents"

    async def _upload(self, subject_id: str, document: DocumentFile) -> dict:
        try:
            content = await anyio.Path(document.path).read_bytes()
        except OSError as exc:
            raise ProviderError(
                f"{self.label} failed: cannot read {document.file_name}: {exc}",
                provider=self.name,
            ) from exc

        bucket = self.config.bucket
        object_name = (
            f"{self.folder_for(subject_id, document)}/"
            f"{int(time.time() * 1000)}_{document.file_name}"
        )
        await self._send(
            self.config,
            "POST",
            f"/upload/storage/v1/b/{bucket}/o",
            params={"uploadType": "media", "name": object_name},
            content=content,
            headers={"Content-Type": document.content_type},
        )
        return {
            "fileName": document.file_name,
            "filePath": object_name,
            "publicUrl": f"https://storage.googleapis.com/{bucket}/{object_name}",
            "contentType": document.content_type,
            "size": len(content),
            "bucket": bucket,
        }

    async def call(self, request: dict) -> dict:
        self._require(self.config)
        subject_id = request["subjectId"]
        documents = []
        for document in request["documents"]:
            entry = {"type": document.kind}
            if document.kind == "additional_document":
                entry["name"] = document.file_name
            entry["result"] = await self._upload(subject_id, document)
            documents.append(entry)
        return {
            "totalDocuments": len(documents),
            "documents": documents,
            "storageBucket": self.config.bucket,
        }
