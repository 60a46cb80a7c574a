from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.config import Settings
from app.core.constants import (
    EXPORT_CSV_FILENAME,
    EXPORT_XLSX_FILENAME,
    IMPORT_UPLOAD_FIELD,
    XLSX_MEDIA_TYPE,
)
from app.core.errors import NotFoundError, UploadMissingError, UploadTooLargeError
from app.dependencies import get_app_settings, get_db
from app.schemas.product import (
    DeleteResponse,
    ImportResult,
    ProductCreate,
    ProductRead,
    ProductUpdate,
    StockChangeRead,
)
from app.services import export_service, import_service, product_service
from app.services.history_service import load_stock_history

router = APIRouter(prefix="/api/products", tags=["Products"])


def _attachment(filename):
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("", response_model=List[ProductRead])
def list_products(
    name: Optional[str] = Query(None, description="Case-insensitive name substring"),
    db: Session = Depends(get_db),
):
    return product_service.list_products(db, name)


@router.post("", response_model=ProductRead, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    return product_service.create_product(db, payload.model_dump())


@router.get("/export")
def export_products(
    export_format: str = Query("csv", alias="format", pattern="^(csv|xlsx)$"),
    db: Session = Depends(get_db),
):
    if export_format == "xlsx":
        return Response(
            content=export_service.export_products_workbook(db),
            media_type=XLSX_MEDIA_TYPE,
            headers=_attachment(EXPORT_XLSX_FILENAME),
        )
    return Response(
        content=export_service.export_products_csv(db),
        media_type="text/csv",
        headers=_attachment(EXPORT_CSV_FILENAME),
    )


@router.post("/import", response_model=ImportResult)
def import_products(
    csv_file: Optional[UploadFile] = File(None, alias=IMPORT_UPLOAD_FIELD),
    dry_run: bool = Query(False),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    if csv_file is None:
        raise UploadMissingError()

    limit = settings.IMPORT_MAX_UPLOAD_BYTES
    if limit and csv_file.size is not None and csv_file.size > limit:
        csv_file.file.close()
        raise UploadTooLargeError()

    summary = import_service.import_stream(
        db,
        csv_file.file,
        filename=csv_file.filename,
        dry_run=dry_run,
    )
    return summary.to_dict()


@router.get("/{product_id}", response_model=ProductRead)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = product_service.get_product(db, product_id)
    if product is None:
        raise NotFoundError()
    return product


@router.put("/{product_id}", response_model=ProductRead)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    return product_service.update_product(
        db,
        product_id,
        payload.model_dump(exclude_unset=True),
        actor=settings.HISTORY_ACTOR,
    )


@router.delete("/{product_id}", response_model=DeleteResponse)
def delete_product(product_id: int, db: Session = Depends(get_db)):
    product_service.delete_product(db, product_id)
    return {"message": "Product deleted"}


@router.get("/{product_id}/history", response_model=List[StockChangeRead])
def get_product_history(product_id: int, db: Session = Depends(get_db)):
    return load_stock_history(db, product_id)


__all__ = ["router"]
