import io
import threading
import time
from typing import Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from filevault.core.config import get_settings
from filevault.core.deps import get_object_store
from filevault.core.errors import FileNotFoundInStorage
from filevault.main import create_app
from filevault.models.files import BucketSummary, FileSummary, PaginatedFiles
from filevault.services.object_store import ObjectStore
from filevault.services.storage import StorageService
from filevault.utils.formatting import format_bytes

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"0" * 512
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + b"0" * 64
PDF_BYTES = b"%PDF-1.4\n%EOF\n"
TEXT_BYTES = b"hello, this is plain text"
# PNG animé : signature, IHDR puis acTL avant tout IDAT
APNG_BYTES = (
    b"\x89PNG\r\n\x1a\n"
    + b"\x00\x00\x00\x0dIHDR" + b"\x00" * 13 + b"\x00" * 4
    + b"\x00\x00\x00\x08acTL" + b"\x00\x00\x00\x02\x00\x00\x00\x00" + b"\x00" * 4
)


class SlowStream(io.BytesIO):
    """
    Flux dont chaque lecture prend `delay` secondes (lecture réseau lente).
    """

    def __init__(self, data: bytes, delay: float):
        super().__init__(data)
        self.delay = delay

    def read(self, *args):
        time.sleep(self.delay)
        return super().read(*args)


class FakeObjectStore(ObjectStore):
    """
    Backend en mémoire qui enregistre chaque appel (espion).
    `delay_for` : contenu -> secondes d'attente avant d'écrire l'objet.
    `put_error` : exception levée par chaque put.
    `fail_for` : contenu -> exception à lever pour ce seul put, ou None.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.objects: Dict[str, Dict[str, bytes]] = {}
        self.completed: List[str] = []
        self.buckets: Dict[str, BucketSummary] = {}
        self.pages: List[PaginatedFiles] = []
        self.delay_for: Optional[Callable[[bytes], float]] = None
        self.put_error: Optional[Exception] = None
        self.fail_for: Optional[Callable[[bytes], Optional[Exception]]] = None
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def put(self, bucket, key, stream, content_type=None):
        self._record("put", bucket, key, content_type)
        data = stream.read()
        if self.delay_for is not None:
            time.sleep(self.delay_for(data))
        if self.put_error is not None:
            raise self.put_error
        if self.fail_for is not None:
            error = self.fail_for(data)
            if error is not None:
                raise error
        with self._lock:
            self.objects.setdefault(bucket, {})[key] = data
            self.completed.append(key)
        return f"https://{bucket}.s3.test/{key}"

    def get(self, bucket, key):
        self._record("get", bucket, key)
        try:
            return io.BytesIO(self.objects[bucket][key])
        except KeyError:
            raise FileNotFoundInStorage()

    def list(self, bucket, prefix, token, limit):
        self._record("list", bucket, prefix, token, limit)
        if self.pages:
            return self.pages.pop(0)
        files = [
            FileSummary(
                key=key,
                url=f"https://{bucket}.s3.test/{key}",
                size_bytes=len(data),
                size_formatted=format_bytes(len(data)),
                extension=("." + key.rsplit(".", 1)[1].lower()) if "." in key else "",
                storage_class="STANDARD",
            )
            for key, data in self.objects.get(bucket, {}).items()
        ]
        return PaginatedFiles(files=files, next_token="")

    def delete(self, bucket, key):
        self._record("delete", bucket, key)
        self.objects.get(bucket, {}).pop(key, None)

    def delete_all(self, bucket):
        self._record("delete_all", bucket)
        self.objects.pop(bucket, None)

    def bucket_exists(self, bucket):
        self._record("bucket_exists", bucket)
        return bucket in self.buckets

    def create_bucket(self, bucket):
        self._record("create_bucket", bucket)
        self.buckets[bucket] = BucketSummary(name=bucket)

    def list_buckets(self):
        self._record("list_buckets")
        return list(self.buckets.values())

    def delete_bucket(self, bucket):
        self._record("delete_bucket", bucket)
        self.buckets.pop(bucket, None)

    def presign(self, bucket, key, ttl_seconds):
        self._record("presign", bucket, key, ttl_seconds)
        return f"https://{bucket}.s3.test/{key}?X-Amz-Expires={ttl_seconds}"

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


def summary(key: str, size: int = 10) -> FileSummary:
    ext = ("." + key.rsplit(".", 1)[1]) if "." in key else ""
    return FileSummary(
        key=key,
        url=f"https://bucket.s3.test/{key}",
        size_bytes=size,
        size_formatted=format_bytes(size),
        extension=ext.lower(),
        storage_class="STANDARD",
    )


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def service(store) -> StorageService:
    return StorageService(store)


@pytest.fixture
def test_client(store, monkeypatch):
    """
    TestClient branché sur le backend en mémoire, avec des settings de test.
    """
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("APP_NAME", "FileVault API (tests)")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost")

    # IMPORTANT: vider le cache des settings pour prendre en compte les env
    get_settings.cache_clear()

    app = create_app()
    app.dependency_overrides[get_object_store] = lambda: store
    with TestClient(app) as client:
        yield client

    get_settings.cache_clear()
