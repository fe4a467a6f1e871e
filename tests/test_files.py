import io

from filevault.core.errors import OperationTimeout
from filevault.models.files import PaginatedFiles

from conftest import PDF_BYTES, PNG_BYTES, TEXT_BYTES, summary


def test_upload_then_list_download_and_delete(test_client, store):
    # Upload
    files = {"file": ("holiday.png", io.BytesIO(PNG_BYTES), "image/png")}
    r = test_client.post("/api/v1/upload", data={"bucket": "my-bucket"}, files=files)
    assert r.status_code == 201, r.text
    url = r.json()["url"]
    key = url.rsplit("/", 1)[1]
    assert key.endswith(".png") and "holiday" not in key

    # List
    r = test_client.get("/api/v1/list", params={"bucket": "my-bucket"})
    assert r.status_code == 200
    data = r.json()
    assert [f["key"] for f in data["files"]] == [key]
    assert data["files"][0]["extension"] == ".png"
    assert data["files"][0]["size_bytes"] == len(PNG_BYTES)

    # Download
    r = test_client.get("/api/v1/download", params={"bucket": "my-bucket", "key": key})
    assert r.status_code == 200
    assert r.content == PNG_BYTES
    assert "attachment" in r.headers["content-disposition"]

    # Delete
    r = test_client.delete("/api/v1/delete", params={"bucket": "my-bucket", "key": key})
    assert r.status_code == 204
    assert store.objects["my-bucket"] == {}


def test_upload_multiple(test_client):
    files = [
        ("files", ("a.png", io.BytesIO(PNG_BYTES), "image/png")),
        ("files", ("b.pdf", io.BytesIO(PDF_BYTES), "application/pdf")),
    ]
    r = test_client.post("/api/v1/upload-multiple", data={"bucket": "my-bucket"}, files=files)
    assert r.status_code == 201, r.text
    urls = r.json()["urls"]
    assert [u.rsplit(".", 1)[1] for u in urls] == ["png", "pdf"]


def test_upload_multiple_is_all_or_nothing(test_client):
    files = [
        ("files", ("a.png", io.BytesIO(PNG_BYTES), "image/png")),
        ("files", ("fake.pdf", io.BytesIO(TEXT_BYTES), "application/pdf")),
    ]
    r = test_client.post("/api/v1/upload-multiple", data={"bucket": "my-bucket"}, files=files)
    assert r.status_code == 400
    assert "urls" not in r.json()
    assert r.json()["error"] == "file type not allowed or malicious content detected"


def test_upload_without_file_is_rejected(test_client, store):
    r = test_client.post("/api/v1/upload", data={"bucket": "my-bucket"})
    assert r.status_code == 400
    assert r.json() == {"error": "file field is required"}
    assert store.calls == []


def test_upload_invalid_bucket(test_client, store):
    files = {"file": ("a.png", io.BytesIO(PNG_BYTES), "image/png")}
    r = test_client.post("/api/v1/upload", data={"bucket": "Not_Valid"}, files=files)
    assert r.status_code == 400
    assert r.json() == {"error": "invalid bucket name pattern"}
    assert store.calls == []


def test_list_filter_and_token(test_client, store):
    store.pages = [PaginatedFiles(files=[summary("a.png"), summary("b.PDF")], next_token="tok-2")]
    r = test_client.get(
        "/api/v1/list",
        params={"bucket": "my-bucket", "extension": "pdf", "token": "tok-1", "limit": 0},
    )
    assert r.status_code == 200
    assert r.json()["next_token"] == "tok-2"
    assert [f["key"] for f in r.json()["files"]] == ["b.PDF"]
    assert store.calls == [("list", "my-bucket", "", "tok-1", 10)]


def test_download_non_ascii_key_uses_encoded_filename(test_client, store):
    store.objects["my-bucket"] = {"rapport-日本.pdf": PDF_BYTES}
    r = test_client.get("/api/v1/download", params={"bucket": "my-bucket", "key": "rapport-日本.pdf"})
    assert r.status_code == 200
    assert r.content == PDF_BYTES
    disposition = r.headers["content-disposition"]
    assert 'filename="rapport-__.pdf"' in disposition
    assert "filename*=UTF-8''rapport-%E6%97%A5%E6%9C%AC.pdf" in disposition


def test_download_key_with_quote_keeps_header_valid(test_client, store):
    store.objects["my-bucket"] = {'a"b.png': PNG_BYTES}
    r = test_client.get("/api/v1/download", params={"bucket": "my-bucket", "key": 'a"b.png'})
    assert r.status_code == 200
    assert r.headers["content-disposition"] == (
        "attachment; filename=\"a_b.png\"; filename*=UTF-8''a%22b.png"
    )


def test_list_non_numeric_limit_falls_back_to_default(test_client, store):
    r = test_client.get("/api/v1/list", params={"bucket": "my-bucket", "limit": "abc"})
    assert r.status_code == 200
    assert store.calls == [("list", "my-bucket", "", "", 10)]


def test_download_missing_file(test_client):
    r = test_client.get("/api/v1/download", params={"bucket": "my-bucket", "key": "nope.png"})
    assert r.status_code == 404
    assert r.json() == {"error": "file not found in storage"}


def test_presign(test_client):
    r = test_client.get("/api/v1/presign", params={"bucket": "my-bucket", "key": "a.png"})
    assert r.status_code == 200
    assert r.json()["presigned_url"].startswith("https://my-bucket.s3.test/a.png")


def test_delete_without_key(test_client):
    r = test_client.delete("/api/v1/delete", params={"bucket": "my-bucket"})
    assert r.status_code == 400
    assert r.json() == {"error": "file key is required"}


def test_timeout_maps_to_gateway_timeout(test_client, store):
    store.put_error = OperationTimeout()
    files = {"file": ("a.png", io.BytesIO(PNG_BYTES), "image/png")}
    r = test_client.post("/api/v1/upload", data={"bucket": "my-bucket"}, files=files)
    assert r.status_code == 504
    assert r.json() == {"error": "request timed out"}


def test_unexpected_backend_error_does_not_leak(test_client, store):
    store.put_error = RuntimeError("secret internal detail")
    files = {"file": ("a.png", io.BytesIO(PNG_BYTES), "image/png")}
    r = test_client.post("/api/v1/upload", data={"bucket": "my-bucket"}, files=files)
    assert r.status_code == 500
    assert r.json() == {"error": "an unexpected error occurred"}
