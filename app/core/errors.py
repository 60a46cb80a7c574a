from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class InventoryError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_payload(self):
        return {"error": self.message}


class ValidationError(InventoryError):
    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message=None, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])

    @classmethod
    def for_field(cls, field, message):
        return cls(message, errors=[{"field": field, "message": message}])

    def to_payload(self):
        payload = super().to_payload()
        if self.errors:
            payload["errors"] = self.errors
        return payload


class DuplicateNameError(InventoryError):
    status_code = 400
    default_message = "Product name must be unique"

    def __init__(self, name=None, existing_id=None):
        super().__init__()
        self.name = name
        self.existing_id = existing_id


class NotFoundError(InventoryError):
    status_code = 404
    default_message = "Product not found"


class StoreError(InventoryError):
    status_code = 500
    default_message = "Database operation failed"


class UploadMissingError(InventoryError):
    status_code = 400
    default_message = "CSV file is required"


class UploadTooLargeError(InventoryError):
    status_code = 400
    default_message = "Uploaded file exceeds the maximum size"


class ImportReadError(InventoryError):
    status_code = 500
    default_message = "Failed to read CSV file"


class ImportFailedError(InventoryError):
    status_code = 500
    default_message = "Failed to import products"


def _field_name(location):
    parts = [str(part) for part in location if part not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def format_validation_errors(exc: RequestValidationError):
    errors = []
    for item in exc.errors():
        errors.append(
            {
                "field": _field_name(item.get("loc", ())),
                "message": item.get("msg", "Invalid value"),
            }
        )
    return errors


async def inventory_error_handler(_request: Request, exc: InventoryError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def request_validation_handler(_request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "errors": format_validation_errors(exc)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InventoryError, inventory_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


__all__ = [
    "DuplicateNameError",
    "ImportFailedError",
    "ImportReadError",
    "InventoryError",
    "NotFoundError",
    "StoreError",
    "UploadMissingError",
    "UploadTooLargeError",
    "ValidationError",
    "format_validation_errors",
    "register_exception_handlers",
]
