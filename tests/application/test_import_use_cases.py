"""Tests for the preview and import use cases and the CSV template."""

from __future__ import annotations

import pytest
from conftest import InMemoryUserRepository

from app.application.use_cases.user_imports import (
    ImportRolledBackError,
    UnsupportedFormatError,
    build_csv_template,
    decode_upload,
    import_users,
    preview_user_import,
    validate_rows,
)
from app.domain.entities import ImportErrorType

OPTIONS = {"max_bytes": 1024 * 1024, "chunk_rows": 500}

MIXED_FILE = (
    "name,phone,dni\n"
    "Ana Gómez,612345678,12345678\n"
    ",622345678,22345678\n"
    "Ana Copia,612345678,32345678\n"
    "Luis Pérez,632345678,42345678\n"
).encode("utf-8")


def _valid_file(count: int) -> bytes:
    lines = ["name,phone,dni"] + [
        f"Usuario Prueba,7{index:08d},{index + 10000000:08d}" for index in range(count)
    ]
    return ("\n".join(lines) + "\n").encode("utf-8")


def test_preview_reports_mixed_file_without_persisting() -> None:
    repository = InMemoryUserRepository()

    preview = preview_user_import(
        None,
        file_bytes=MIXED_FILE,
        filename="users.csv",
        content_type="text/csv",
        repository=repository,
        **OPTIONS,
    )

    assert (preview.summary.total_rows, preview.summary.valid_rows) == (4, 2)
    assert preview.summary.invalid_rows == 2
    assert {e.error_type for e in preview.summary.errors} == {
        ImportErrorType.REQUIRED_FIELD,
        ImportErrorType.DUPLICATE_IN_FILE,
    }
    assert preview.file_info.detected_encoding == "UTF-8"
    assert [row.row_number for row in preview.rows] == [2, 3, 4, 5]
    assert repository.batch_sizes == []


def test_preview_twice_gives_identical_summary() -> None:
    repository = InMemoryUserRepository(phones=["632345678"])
    kwargs = dict(
        file_bytes=MIXED_FILE,
        filename="users.csv",
        content_type="text/csv",
        repository=repository,
        **OPTIONS,
    )

    first = preview_user_import(None, **kwargs)
    second = preview_user_import(None, **kwargs)

    assert first.summary == second.summary
    assert first.file_info == second.file_info


def test_preview_flags_existing_identifiers() -> None:
    repository = InMemoryUserRepository(dnis=["42345678"])

    preview = preview_user_import(
        None,
        file_bytes=MIXED_FILE,
        filename="users.csv",
        repository=repository,
        **OPTIONS,
    )

    assert preview.summary.errors[-1].error_type is ImportErrorType.DUPLICATE_IN_DATABASE
    assert preview.summary.errors[-1].row_number == 5


def test_atomic_import_with_invalid_row_creates_nothing() -> None:
    repository = InMemoryUserRepository()

    with pytest.raises(ImportRolledBackError) as excinfo:
        import_users(
            None,
            file_bytes=MIXED_FILE,
            filename="users.csv",
            repository=repository,
            atomic=True,
            **OPTIONS,
        )

    assert excinfo.value.failed_row == 3
    assert len(excinfo.value.validation_errors) == 2
    assert repository.committed == []
    assert repository.batch_sizes == []


def test_non_atomic_import_creates_fifty_rows_in_five_batches() -> None:
    repository = InMemoryUserRepository()

    result = import_users(
        None,
        file_bytes=_valid_file(50),
        filename="users.csv",
        repository=repository,
        batch_size=10,
        atomic=False,
        **OPTIONS,
    )

    assert result.summary.created_count == 50
    assert result.summary.failed_count == 0
    assert result.summary.batches_processed == 5
    assert not result.has_failures
    assert len(repository.committed) == 50


def test_non_atomic_import_skips_invalid_and_conflicting_rows() -> None:
    repository = InMemoryUserRepository(conflicting_rows=[5])

    result = import_users(
        None,
        file_bytes=MIXED_FILE,
        filename="users.csv",
        repository=repository,
        atomic=False,
        **OPTIONS,
    )

    assert result.summary.created_count == 1
    assert result.summary.failed_count == 1
    assert [error.row_number for error in result.errors] == [3, 4, 5]
    assert result.errors[-1].error_type is ImportErrorType.DUPLICATE_IN_DATABASE


def test_decode_errors_abort_before_validation() -> None:
    repository = InMemoryUserRepository()

    with pytest.raises(UnsupportedFormatError):
        import_users(
            None,
            file_bytes=MIXED_FILE,
            filename="users.txt",
            repository=repository,
            **OPTIONS,
        )


@pytest.mark.parametrize("strict", [False, True])
def test_csv_template_is_accepted_by_the_importer(strict: bool) -> None:
    template = build_csv_template(strict)

    assert template.splitlines()[0] == "name,phone,dni"
    decoded = decode_upload(template.encode("utf-8"), "users_template.csv", **OPTIONS)
    report = validate_rows(decoded.rows, set(), set(), strict_dni=strict)
    assert report.summary.total_rows == 1
    assert report.summary.valid_rows == 1


def test_csv_template_strict_dni_has_checksum_letter() -> None:
    assert build_csv_template(True).splitlines()[1].endswith("12345678Z")
    assert build_csv_template(False).splitlines()[1].endswith("12345678")
