import http.client
import io
import json
import socket
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch
from urllib import error

from app.client.api_client import ApiError, InventoryApiClient, encode_multipart


class FakeResponse:
    def __init__(self, body):
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


class InventoryApiClientTest(unittest.TestCase):
    def setUp(self):
        self.client = InventoryApiClient("http://inventory.local:5000/")

    def test_rejects_non_http_base_url(self):
        with self.assertRaises(ValueError):
            InventoryApiClient("file:///tmp/api")

    @patch("app.client.api_client.request.urlopen")
    def test_list_products_passes_name_filter(self, urlopen):
        urlopen.return_value = FakeResponse(json.dumps([{"id": 1, "name": "Pen"}]).encode())

        products = self.client.list_products("pen")

        req = urlopen.call_args[0][0]
        self.assertEqual(req.full_url, "http://inventory.local:5000/api/products?name=pen")
        self.assertEqual(req.get_method(), "GET")
        self.assertEqual(products[0]["name"], "Pen")

    @patch("app.client.api_client.request.urlopen")
    def test_update_sends_json_body(self, urlopen):
        urlopen.return_value = FakeResponse(b'{"id": 3, "name": "Pen", "stock": 4}')

        self.client.update_product(3, {"name": "Pen", "stock": 4})

        req = urlopen.call_args[0][0]
        self.assertEqual(req.get_method(), "PUT")
        self.assertEqual(req.full_url, "http://inventory.local:5000/api/products/3")
        self.assertEqual(json.loads(req.data), {"name": "Pen", "stock": 4})

    @patch("app.client.api_client.request.urlopen")
    def test_http_error_carries_server_message(self, urlopen):
        urlopen.side_effect = error.HTTPError(
            "http://inventory.local:5000/api/products/9",
            404,
            "Not Found",
            {},
            io.BytesIO(b'{"error": "Product not found"}'),
        )
        with self.assertRaises(ApiError) as ctx:
            self.client.delete_product(9)
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.message, "Product not found")

    @patch("app.client.api_client.request.urlopen")
    def test_network_error_becomes_api_error(self, urlopen):
        urlopen.side_effect = error.URLError("connection refused")
        with self.assertRaises(ApiError) as ctx:
            self.client.list_products()
        self.assertIsNone(ctx.exception.status_code)

    @patch("app.client.api_client.request.urlopen")
    def test_import_file_posts_multipart(self, urlopen):
        urlopen.return_value = FakeResponse(b'{"added": 1, "skipped": 0, "duplicates": []}')
        with tempfile.TemporaryDirectory() as tmp_dir:
            path = Path(tmp_dir) / "products.csv"
            path.write_text("name\nPen\n", encoding="utf-8")
            result = self.client.import_file(path)

        req = urlopen.call_args[0][0]
        self.assertTrue(req.get_header("Content-type").startswith("multipart/form-data; boundary="))
        self.assertIn(b'name="csvFile"; filename="products.csv"', req.data)
        self.assertEqual(result["added"], 1)

    @patch("app.client.api_client.request.urlopen")
    def test_dropped_connection_becomes_api_error(self, urlopen):
        urlopen.side_effect = http.client.RemoteDisconnected("Remote end closed connection")
        with self.assertRaises(ApiError) as ctx:
            self.client.get_history(1)
        self.assertIn("Remote end closed connection", ctx.exception.message)

    @patch("app.client.api_client.request.urlopen")
    def test_malformed_json_becomes_api_error(self, urlopen):
        urlopen.return_value = FakeResponse(b"<html>gateway error</html>")
        with self.assertRaises(ApiError):
            self.client.list_products()

    def test_silent_server_times_out_as_api_error(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
            listener.bind(("127.0.0.1", 0))
            listener.listen(1)
            port = listener.getsockname()[1]
            client = InventoryApiClient("http://127.0.0.1:{}".format(port), timeout=0.3)

            with self.assertRaises(ApiError) as ctx:
                client.list_products()
        self.assertTrue(ctx.exception.message.startswith("Network error"))
        self.assertIsNone(ctx.exception.status_code)

    def test_missing_upload_file_becomes_api_error(self):
        with self.assertRaises(ApiError):
            self.client.import_file("/nonexistent/products.csv")

    def test_encode_multipart_wraps_content(self):
        body, content_type = encode_multipart("csvFile", "a.csv", b"name\nPen\n")
        boundary = content_type.split("boundary=")[1]
        self.assertTrue(body.startswith("--{}\r\n".format(boundary).encode()))
        self.assertTrue(body.endswith("--{}--\r\n".format(boundary).encode()))
        self.assertIn(b"Content-Type: text/csv", body)


if __name__ == "__main__":
    unittest.main()
