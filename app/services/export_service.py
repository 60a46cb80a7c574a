from io import BytesIO
from typing import Iterable

from openpyxl import Workbook
from sqlalchemy.orm import Session

from app.core.constants import EXPORT_FIELDS
from app.models.product import Product
from app.services.product_service import list_products_for_export


def escape_field(value) -> str:
    if value is None:
        return ""
    text = str(value)
    if "," in text or '"' in text:
        text = '"{}"'.format(text.replace('"', '""'))
    return text


def build_csv(products: Iterable[Product]) -> str:
    lines = [",".join(EXPORT_FIELDS)]
    for product in products:
        lines.append(",".join(escape_field(getattr(product, key)) for key in EXPORT_FIELDS))
    return "\n".join(lines)


def build_workbook(products: Iterable[Product]) -> bytes:
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "products"
    worksheet.append(list(EXPORT_FIELDS))
    for product in products:
        row = []
        for key in EXPORT_FIELDS:
            value = getattr(product, key)
            row.append("" if value is None else value)
        worksheet.append(row)

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_products_csv(db: Session) -> str:
    return build_csv(list_products_for_export(db))


def export_products_workbook(db: Session) -> bytes:
    return build_workbook(list_products_for_export(db))


__all__ = [
    "build_csv",
    "build_workbook",
    "escape_field",
    "export_products_csv",
    "export_products_workbook",
]
