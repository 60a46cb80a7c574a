import http.client
import json
import mimetypes
import uuid
from pathlib import Path
from urllib import error, request
from urllib.parse import urlencode, urlparse

from app.core.constants import IMPORT_UPLOAD_FIELD

_ALLOWED_HTTP_SCHEMES = {"http", "https"}


class ApiError(RuntimeError):
    def __init__(self, message, status_code=None, errors=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []


def _validate_base_url(base_url):
    parsed = urlparse(base_url)
    if parsed.scheme.lower() not in _ALLOWED_HTTP_SCHEMES or not parsed.netloc:
        raise ValueError("API base URL must be an absolute HTTP(S) URL")
    return base_url.rstrip("/")


def _error_from_http(exc):
    body = ""
    try:
        body_bytes = exc.read()
        if body_bytes:
            body = body_bytes.decode("utf-8", errors="replace").strip()
    except (OSError, ValueError):
        body = ""

    message = "HTTP {}".format(exc.code)
    errors = []
    if body:
        try:
            payload = json.loads(body)
        except ValueError:
            message = "HTTP {} {}".format(exc.code, body)
        else:
            if isinstance(payload, dict):
                message = payload.get("error") or message
                errors = payload.get("errors") or []
    return ApiError(message, status_code=exc.code, errors=errors)


def _decode_json(body):
    try:
        return json.loads(body.decode("utf-8"))
    except ValueError as exc:
        raise ApiError("Invalid JSON in server response") from exc


def _read_upload(file_path):
    try:
        return file_path.read_bytes()
    except OSError as exc:
        raise ApiError("Unable to read {}: {}".format(file_path, exc)) from exc


def encode_multipart(field_name, filename, content, content_type=None):
    boundary = uuid.uuid4().hex
    content_type = content_type or mimetypes.guess_type(filename)[0] or "application/octet-stream"
    head = (
        "--{boundary}\r\n"
        'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n'
        "Content-Type: {content_type}\r\n\r\n"
    ).format(
        boundary=boundary,
        field=field_name,
        filename=filename.replace('"', "%22"),
        content_type=content_type,
    )
    body = head.encode("utf-8") + content + "\r\n--{}--\r\n".format(boundary).encode("utf-8")
    return body, "multipart/form-data; boundary={}".format(boundary)


class InventoryApiClient:
    """Thin JSON client for the ``/api/products`` endpoints."""

    def __init__(self, base_url, timeout=15):
        self.base_url = _validate_base_url(base_url)
        self.timeout = timeout

    def _send(self, method, path, *, params=None, data=None, headers=None):
        url = self.base_url + path
        if params:
            url = "{}?{}".format(url, urlencode(params))
        req = request.Request(url, data=data, method=method, headers=headers or {})
        try:
            with request.urlopen(req, timeout=self.timeout) as response:  # nosec B310
                return response.read()
        except error.HTTPError as exc:
            raise _error_from_http(exc) from exc
        except error.URLError as exc:
            raise ApiError("Network error: {}".format(exc.reason)) from exc
        except (OSError, http.client.HTTPException) as exc:
            raise ApiError("Network error: {}".format(str(exc) or type(exc).__name__)) from exc

    def _json(self, method, path, *, params=None, payload=None):
        data = None
        headers = {"Accept": "application/json"}
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        body = self._send(method, path, params=params, data=data, headers=headers)
        if not body:
            return None
        return _decode_json(body)

    def list_products(self, name=None):
        params = {"name": name} if name else None
        return self._json("GET", "/api/products", params=params)

    def get_product(self, product_id):
        return self._json("GET", "/api/products/{}".format(int(product_id)))

    def create_product(self, fields):
        return self._json("POST", "/api/products", payload=dict(fields))

    def update_product(self, product_id, fields):
        return self._json("PUT", "/api/products/{}".format(int(product_id)), payload=dict(fields))

    def delete_product(self, product_id):
        return self._json("DELETE", "/api/products/{}".format(int(product_id)))

    def get_history(self, product_id):
        return self._json("GET", "/api/products/{}/history".format(int(product_id)))

    def import_file(self, path, *, dry_run=False):
        file_path = Path(path)
        body, content_type = encode_multipart(
            IMPORT_UPLOAD_FIELD,
            file_path.name,
            _read_upload(file_path),
        )
        params = {"dry_run": "true"} if dry_run else None
        raw = self._send(
            "POST",
            "/api/products/import",
            params=params,
            data=body,
            headers={"Content-Type": content_type, "Accept": "application/json"},
        )
        return _decode_json(raw)

    def export_csv(self):
        body = self._send("GET", "/api/products/export")
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ApiError("Export is not valid UTF-8") from exc


__all__ = ["ApiError", "InventoryApiClient", "encode_multipart"]
