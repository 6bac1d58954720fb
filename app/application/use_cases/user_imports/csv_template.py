"""Build the downloadable CSV template for bulk user imports."""

from __future__ import annotations

import pandas as pd

from app.domain.entities import IMPORT_FIELDS

from ..users.validators import dni_checksum_letter

TEMPLATE_FILENAME = "users_template.csv"
_EXAMPLE_NAME = "Juan Pérez"
_EXAMPLE_PHONE = "+34612345678"
_EXAMPLE_DNI_NUMBER = "12345678"


def build_csv_template(strict_dni: bool = False) -> str:
    """Return the header row plus one example row accepted by the importer."""

    dni = _EXAMPLE_DNI_NUMBER
    if strict_dni:
        dni += dni_checksum_letter(_EXAMPLE_DNI_NUMBER)

    frame = pd.DataFrame(
        [{"name": _EXAMPLE_NAME, "phone": _EXAMPLE_PHONE, "dni": dni}],
        columns=list(IMPORT_FIELDS),
    )
    return frame.to_csv(index=False, lineterminator="\n")


__all__ = ["TEMPLATE_FILENAME", "build_csv_template"]
