import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import BinaryIO, Iterator, List, Optional

from filevault.core.context import OperationContext
from filevault.core.errors import (
    BackendError,
    BucketAlreadyExists,
    MissingField,
    StorageError,
)
from filevault.models.files import BucketStats, BucketSummary, File, PaginatedFiles
from filevault.services.object_store import ObjectStore
from filevault.utils.formatting import format_bytes
from filevault.utils.identity import build_object_name
from filevault.utils.validators import validate_bucket_name, validate_content

logger = logging.getLogger(__name__)

UPLOAD_TIMEOUT_SECONDS = 60
DELETE_TIMEOUT_SECONDS = 5
PRESIGN_TTL_SECONDS = 15 * 60
DEFAULT_PAGE_SIZE = 10


@contextmanager
def _backend_call(operation: str) -> Iterator[None]:
    """
    Les erreurs déjà classifiées passent telles quelles, le reste est
    enveloppé dans BackendError (cause conservée).
    """
    try:
        yield
    except StorageError:
        raise
    except Exception as exc:
        logger.error("backend %s failed: %s", operation, exc)
        raise BackendError(operation, exc) from exc


def _require_key(key: str) -> None:
    if not key:
        raise MissingField("file key is required")


class StorageService:
    """
    Orchestration des opérations fichiers/buckets au-dessus d'un ObjectStore.
    Aucune validation n'est contournée : le nom de bucket est vérifié avant
    tout appel au backend.
    """

    def __init__(
        self,
        store: ObjectStore,
        upload_timeout: float = UPLOAD_TIMEOUT_SECONDS,
        delete_timeout: float = DELETE_TIMEOUT_SECONDS,
        presign_ttl: int = PRESIGN_TTL_SECONDS,
    ):
        self.store = store
        self.upload_timeout = upload_timeout
        self.delete_timeout = delete_timeout
        self.presign_ttl = presign_ttl

    # ---------- uploads ----------

    def upload_file(self, bucket: str, file: File, ctx: Optional[OperationContext] = None) -> str:
        """
        Valide, renomme (uuid7 + extension d'origine) puis envoie le fichier.
        Retourne l'URL publique, également affectée à `file.url`.
        """
        ctx = (ctx or OperationContext.background()).with_timeout(self.upload_timeout)

        bucket = validate_bucket_name(bucket)

        try:
            content_type = validate_content(file.content)
        except StorageError as exc:
            logger.error("security validation failed: %s (filename=%s)", exc, file.name)
            raise

        file.name = build_object_name(file.name)
        file.content_type = content_type

        ctx.raise_if_done()
        with _backend_call("upload"):
            url = self.store.put(bucket, file.name, file.content, content_type)

        file.url = url
        logger.info("file uploaded successfully: %s", url)
        return url

    def upload_multiple_files(
        self, bucket: str, files: List[File], ctx: Optional[OperationContext] = None
    ) -> List[str]:
        """
        Une tâche par fichier, sans plafond de concurrence.
        Tout ou rien : la première erreur annule le contexte partagé et
        c'est la seule renvoyée. Les objets déjà envoyés restent en place.
        """
        if not files:
            return []

        group_ctx = (ctx or OperationContext.background()).with_cancel()
        # chaque tâche écrit uniquement à son propre index
        results: List[str] = [""] * len(files)
        first_error: List[Exception] = []
        error_lock = threading.Lock()

        def run(index: int, file: File) -> None:
            try:
                results[index] = self.upload_file(bucket, file, group_ctx)
            except Exception as exc:
                with error_lock:
                    if not first_error:
                        first_error.append(exc)
                        group_ctx.cancel()

        with ThreadPoolExecutor(max_workers=len(files), thread_name_prefix="upload") as pool:
            for i, f in enumerate(files):
                pool.submit(run, i, f)

        if first_error:
            logger.error("multi-upload aborted: %s", first_error[0])
            raise first_error[0]

        return results

    # ---------- fichiers ----------

    def get_download_url(self, bucket: str, key: str) -> str:
        bucket = validate_bucket_name(bucket)
        _require_key(key)

        with _backend_call("presign url"):
            return self.store.presign(bucket, key, self.presign_ttl)

    def download_file(self, bucket: str, key: str) -> BinaryIO:
        bucket = validate_bucket_name(bucket)
        _require_key(key)

        with _backend_call("download"):
            return self.store.get(bucket, key)

    def list_files(self, bucket: str, extension: str = "", token: str = "", limit: int = DEFAULT_PAGE_SIZE) -> PaginatedFiles:
        """
        Une seule page du backend, filtrée après coup par extension :
        la page peut donc contenir moins de `limit` éléments.
        """
        bucket = validate_bucket_name(bucket)

        if limit <= 0:
            limit = DEFAULT_PAGE_SIZE

        with _backend_call("list objects"):
            page = self.store.list(bucket, "", token, limit)

        if not extension:
            return page

        target = extension.lower()
        if not target.startswith("."):
            target = "." + target

        return PaginatedFiles(
            files=[f for f in page.files if f.extension.lower() == target],
            next_token=page.next_token,
        )

    def delete_file(self, bucket: str, key: str, ctx: Optional[OperationContext] = None) -> None:
        ctx = (ctx or OperationContext.background()).with_timeout(self.delete_timeout)

        _require_key(key)
        bucket = validate_bucket_name(bucket)

        ctx.raise_if_done()
        with _backend_call("delete object"):
            self.store.delete(bucket, key)
        logger.info("file deleted: bucket=%s key=%s", bucket, key)

    # ---------- buckets ----------

    def get_bucket_stats(self, bucket: str) -> BucketStats:
        # TODO: paginer jusqu'au bout pour les buckets de plus d'une page (sous-comptage actuel)
        bucket = validate_bucket_name(bucket)

        with _backend_call("bucket stats"):
            page = self.store.list(bucket, "", "", None)

        total_size = sum(f.size_bytes for f in page.files)
        return BucketStats(
            bucket_name=bucket,
            total_files=len(page.files),
            total_size_bytes=total_size,
            total_size_formatted=format_bytes(total_size),
        )

    def create_bucket(self, bucket: str) -> None:
        bucket = validate_bucket_name(bucket)

        with _backend_call("create bucket"):
            if self.store.bucket_exists(bucket):
                raise BucketAlreadyExists()
            self.store.create_bucket(bucket)
        logger.info("bucket created: %s", bucket)

    def list_all_buckets(self) -> List[BucketSummary]:
        with _backend_call("list buckets"):
            return self.store.list_buckets()

    def delete_bucket(self, bucket: str) -> None:
        bucket = validate_bucket_name(bucket)

        with _backend_call("delete bucket"):
            self.store.delete_bucket(bucket)
        logger.info("bucket deleted: %s", bucket)

    def empty_bucket(self, bucket: str) -> None:
        bucket = validate_bucket_name(bucket)

        with _backend_call("empty bucket"):
            self.store.delete_all(bucket)
        logger.info("bucket emptied: %s", bucket)
