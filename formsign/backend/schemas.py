"""Wire models exchanged with the document backend."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from formsign.model.form import Form


class DownloadInfo(BaseModel):
    url: str = ""


class DocumentProperties(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    tag: str = "MASTER"
    title: Optional[str] = None
    download: DownloadInfo = Field(default_factory=DownloadInfo)


class DocumentType(BaseModel):
    id: str


class FormDocument(BaseModel):
    """A form record as the backend serializes it."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    document_properties: DocumentProperties = Field(alias="documentProperties")
    document_type: DocumentType = Field(alias="documentType")

    def to_form(self) -> Form:
        props = self.document_properties
        return Form(
            id=props.id,
            tag=props.tag,
            source_url=props.download.url,
            document_type=self.document_type.id,
            title=props.title or "",
            raw=self.model_dump(by_alias=True),
        )


class ResponsePayload(BaseModel):
    document: FormDocument


class BackendResponse(BaseModel):
    payload: ResponsePayload


class SignatureRecord(BaseModel):
    annotation_field_name: str
    data_uri: str
    timestamp: str


class SubmitRequest(BaseModel):
    token: str
    annotation_data: dict[str, Any] = Field(alias="annotationData")
    signatures: dict[str, SignatureRecord]

    model_config = ConfigDict(populate_by_name=True)
