"""Schemas for bulk user imports and deletions."""

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities import FileInfo, RowVerdict


class ImportRowRead(BaseModel):
    row: int
    name: str
    phone: str
    dni: str


class RowErrorRead(BaseModel):
    row: int
    field: str | None
    type: str | None
    message: str | None

    @classmethod
    def from_verdict(cls, verdict: RowVerdict) -> "RowErrorRead":
        return cls(
            row=verdict.row_number,
            field=verdict.field,
            type=verdict.error_type.value if verdict.error_type else None,
            message=verdict.message,
        )


class ValidationSummaryRead(BaseModel):
    total_rows: int
    valid_rows: int
    invalid_rows: int
    errors: list[RowErrorRead] = Field(default_factory=list)


class FileInfoRead(BaseModel):
    file_type: str
    detected_encoding: str | None = None
    detected_delimiter: str | None = None
    detected_quote: str | None = None

    @classmethod
    def from_info(cls, info: FileInfo) -> "FileInfoRead":
        return cls(
            file_type=info.file_type,
            detected_encoding=info.detected_encoding,
            detected_delimiter=info.detected_delimiter,
            detected_quote=info.detected_quote,
        )


class SheetInfoRead(BaseModel):
    available_sheets: list[str] = Field(default_factory=list)
    selected_sheet: str | None = None


class ProcessingInfoRead(BaseModel):
    total_rows: int
    chunks_processed: int


class ImportPreviewResponse(BaseModel):
    preview_data: list[ImportRowRead]
    validation_summary: ValidationSummaryRead
    file_info: FileInfoRead
    sheet_info: SheetInfoRead | None = None
    processing_info: ProcessingInfoRead


class ImportSummaryRead(BaseModel):
    total_rows: int
    valid_rows: int
    invalid_rows: int
    created_count: int
    failed_count: int
    batches_processed: int


class ImportResponse(BaseModel):
    message: str
    summary: ImportSummaryRead
    errors: list[RowErrorRead] = Field(default_factory=list)
    file_info: FileInfoRead
    sheet_info: SheetInfoRead | None = None


class ImportRolledBackResponse(BaseModel):
    message: str
    failed_row: int
    validation_errors: list[RowErrorRead] = Field(default_factory=list)


class ImportStorageFaultResponse(BaseModel):
    message: str
    failed_row: int
    created_count: int
    batches_processed: int
    errors: list[RowErrorRead] = Field(default_factory=list)


class MassDeleteRequest(BaseModel):
    user_ids: list[int] = Field(default_factory=list)
    confirmed: bool = False

    model_config = ConfigDict(extra="forbid")


class MassDeleteSummaryRead(BaseModel):
    total_selected: int
    successfully_deleted: int
    failed_deletions: int
    invalid_ids: list[int] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class MassDeleteResponse(BaseModel):
    message: str
    summary: MassDeleteSummaryRead
