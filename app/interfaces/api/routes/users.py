"""Rutas para administrar usuarios y sus cargas masivas."""

import logging

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Response,
    UploadFile,
    status,
)
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.application.use_cases.user_imports import (
    TEMPLATE_FILENAME,
    DecodeError,
    FileTooLargeError,
    ImportPreview,
    ImportResult,
    ImportRolledBackError,
    StorageFaultError,
    build_csv_template,
    import_users as import_users_uc,
    preview_user_import as preview_user_import_uc,
)
from app.application.use_cases.users import (
    UserValidationError,
    create_user as create_user_uc,
    delete_user as delete_user_uc,
    get_user as get_user_uc,
    list_users as list_users_uc,
    mass_delete_users as mass_delete_users_uc,
    update_user as update_user_uc,
)
from app.config import Settings
from app.domain.entities import FileInfo, User
from app.infrastructure.database import get_db
from app.interfaces.api.dependencies import get_app_settings
from app.interfaces.api.schemas import (
    FileInfoRead,
    ImportPreviewResponse,
    ImportResponse,
    ImportRolledBackResponse,
    ImportStorageFaultResponse,
    ImportRowRead,
    ImportSummaryRead,
    MassDeleteRequest,
    MassDeleteResponse,
    MassDeleteSummaryRead,
    ProcessingInfoRead,
    RowErrorRead,
    SheetInfoRead,
    UserCreate,
    UserRead,
    UserUpdate,
    ValidationSummaryRead,
)

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)

IMPORT_SUCCESS_MESSAGE = "Usuarios importados exitosamente"
IMPORT_PARTIAL_MESSAGE = "Importación completada con errores"
MASS_DELETE_SUCCESS_MESSAGE = "Usuarios eliminados exitosamente"
MASS_DELETE_PARTIAL_MESSAGE = "Algunos usuarios no pudieron ser eliminados"
MASS_DELETE_FAILED_MESSAGE = "Ningún usuario pudo ser eliminado"


def _to_read_model(user: User) -> UserRead:
    return UserRead.model_validate(user)


def _validation_exception(exc: UserValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": str(exc), "errors": exc.errors},
    )


def _read_upload(file: UploadFile, max_bytes: int) -> bytes:
    if file.size is not None and file.size > max_bytes:
        raise FileTooLargeError(file.size, max_bytes)
    try:
        file_bytes = file.file.read(max_bytes + 1)
    finally:
        file.file.seek(0)
    if len(file_bytes) > max_bytes:
        raise FileTooLargeError(file.size or len(file_bytes), max_bytes)
    return file_bytes


def _sheet_info(info: FileInfo) -> SheetInfoRead | None:
    if not info.available_sheets:
        return None
    return SheetInfoRead(
        available_sheets=list(info.available_sheets),
        selected_sheet=info.selected_sheet,
    )


def _preview_response(preview: ImportPreview) -> ImportPreviewResponse:
    summary = preview.summary
    return ImportPreviewResponse(
        preview_data=[ImportRowRead(**row.as_dict()) for row in preview.rows],
        validation_summary=ValidationSummaryRead(
            total_rows=summary.total_rows,
            valid_rows=summary.valid_rows,
            invalid_rows=summary.invalid_rows,
            errors=[RowErrorRead.from_verdict(verdict) for verdict in summary.errors],
        ),
        file_info=FileInfoRead.from_info(preview.file_info),
        sheet_info=_sheet_info(preview.file_info),
        processing_info=ProcessingInfoRead(
            total_rows=preview.file_info.total_rows,
            chunks_processed=preview.file_info.chunks_processed,
        ),
    )


def _import_response(result: ImportResult) -> ImportResponse:
    summary = result.summary
    return ImportResponse(
        message=IMPORT_PARTIAL_MESSAGE if result.has_failures else IMPORT_SUCCESS_MESSAGE,
        summary=ImportSummaryRead(
            total_rows=summary.total_rows,
            valid_rows=summary.valid_rows,
            invalid_rows=summary.invalid_rows,
            created_count=summary.created_count,
            failed_count=summary.failed_count,
            batches_processed=summary.batches_processed,
        ),
        errors=[RowErrorRead.from_verdict(verdict) for verdict in result.errors],
        file_info=FileInfoRead.from_info(result.file_info),
        sheet_info=_sheet_info(result.file_info),
    )


@router.get("/", response_model=list[UserRead])
def list_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    search: str | None = None,
    db: Session = Depends(get_db),
):
    """Devuelve una lista de usuarios activos."""

    users = list_users_uc(db, skip=skip, limit=limit, search=search)
    return [_to_read_model(user) for user in users]


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(
    user_in: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Crea un nuevo usuario validando teléfono y DNI."""

    try:
        user = create_user_uc(
            db,
            name=user_in.name,
            phone=user_in.phone,
            dni=user_in.dni,
            email=user_in.email,
            strict_dni=settings.import_strict_dni,
        )
    except UserValidationError as exc:
        raise _validation_exception(exc) from exc
    return _to_read_model(user)


@router.get("/csv-template")
def download_csv_template(settings: Settings = Depends(get_app_settings)) -> Response:
    """Descarga la plantilla CSV para la carga masiva de usuarios."""

    content = build_csv_template(settings.import_strict_dni)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{TEMPLATE_FILENAME}"'},
    )


@router.post("/mass-preview", response_model=ImportPreviewResponse)
def preview_mass_import(
    file: UploadFile = File(...),
    sheet: str | None = Form(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Valida un archivo CSV o Excel sin guardar ningún usuario."""

    try:
        file_bytes = _read_upload(file, settings.import_max_upload_bytes)
        preview = preview_user_import_uc(
            db,
            file_bytes=file_bytes,
            filename=file.filename or "",
            content_type=file.content_type,
            sheet_name=sheet or None,
            max_bytes=settings.import_max_upload_bytes,
            chunk_rows=settings.import_chunk_rows,
            column_tolerance=settings.import_column_tolerance,
            strict_dni=settings.import_strict_dni,
        )
    except DecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return _preview_response(preview)


@router.post(
    "/mass-store",
    response_model=ImportResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        status.HTTP_207_MULTI_STATUS: {"model": ImportResponse},
        status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ImportRolledBackResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ImportStorageFaultResponse},
    },
)
def store_mass_import(
    file: UploadFile = File(...),
    sheet: str | None = Form(None),
    batch_size: int | None = Form(None, ge=1, le=1000),
    atomic: bool = Form(False),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Importa usuarios desde un archivo CSV o Excel."""

    try:
        file_bytes = _read_upload(file, settings.import_max_upload_bytes)
        result = import_users_uc(
            db,
            file_bytes=file_bytes,
            filename=file.filename or "",
            content_type=file.content_type,
            sheet_name=sheet or None,
            max_bytes=settings.import_max_upload_bytes,
            chunk_rows=settings.import_chunk_rows,
            column_tolerance=settings.import_column_tolerance,
            strict_dni=settings.import_strict_dni,
            batch_size=batch_size or settings.import_batch_size,
            atomic=atomic,
        )
    except DecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    except ImportRolledBackError as exc:
        body = ImportRolledBackResponse(
            message=str(exc),
            failed_row=exc.failed_row,
            validation_errors=[
                RowErrorRead.from_verdict(verdict) for verdict in exc.validation_errors
            ],
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body.model_dump()
        )
    except StorageFaultError as exc:
        body = ImportStorageFaultResponse(
            message=str(exc),
            failed_row=exc.failed_row,
            created_count=exc.created_count,
            batches_processed=exc.batches_processed,
            errors=[RowErrorRead.from_verdict(verdict) for verdict in exc.failures],
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump()
        )

    response = _import_response(result)
    if result.has_failures:
        return JSONResponse(
            status_code=status.HTTP_207_MULTI_STATUS, content=response.model_dump()
        )
    return response


@router.delete(
    "/mass-destroy",
    response_model=MassDeleteResponse,
    responses={status.HTTP_207_MULTI_STATUS: {"model": MassDeleteResponse}},
)
def mass_destroy_users(
    payload: MassDeleteRequest,
    db: Session = Depends(get_db),
):
    """Elimina lógicamente varios usuarios previa confirmación."""

    try:
        summary = mass_delete_users_uc(
            db, user_ids=payload.user_ids, confirmed=payload.confirmed
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc

    summary_read = MassDeleteSummaryRead.model_validate(summary)
    if summary.successfully_deleted == 0:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": MASS_DELETE_FAILED_MESSAGE,
                "summary": summary_read.model_dump(),
            },
        )
    if summary.invalid_ids:
        response = MassDeleteResponse(message=MASS_DELETE_PARTIAL_MESSAGE, summary=summary_read)
        return JSONResponse(
            status_code=status.HTTP_207_MULTI_STATUS, content=response.model_dump()
        )
    return MassDeleteResponse(message=MASS_DELETE_SUCCESS_MESSAGE, summary=summary_read)


@router.get("/{user_id}", response_model=UserRead)
def read_user(user_id: int, db: Session = Depends(get_db)):
    """Obtiene al usuario identificado por ``user_id``."""

    try:
        user = get_user_uc(db, user_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _to_read_model(user)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    user_in: UserUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    """Actualiza los datos de un usuario existente."""

    update_data = user_in.model_dump(exclude_unset=True)
    try:
        user = update_user_uc(
            db,
            user_id=user_id,
            name=update_data.get("name"),
            phone=update_data.get("phone"),
            dni=update_data.get("dni"),
            email=update_data.get("email"),
            strict_dni=settings.import_strict_dni,
        )
    except UserValidationError as exc:
        raise _validation_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _to_read_model(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, db: Session = Depends(get_db)) -> Response:
    """Elimina lógicamente al usuario indicado."""

    try:
        delete_user_uc(db, user_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
