import logging
import posixpath
from typing import Any, BinaryIO, Dict, List, Optional
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from filevault.core.config import Settings
from filevault.core.errors import (
    BackendError,
    BucketAlreadyExists,
    FileNotFoundInStorage,
    OperationTimeout,
    StorageError,
)
from filevault.models.files import BucketSummary, FileSummary, PaginatedFiles
from filevault.services.object_store import ObjectStore
from filevault.utils.formatting import format_bytes

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}
BUCKET_EXISTS_CODES = {"BucketAlreadyExists", "BucketAlreadyOwnedByYou"}
DEFAULT_REGION = "us-east-1"


def build_s3_client(settings: Settings):
    """
    Client boto3 partagé. Une seule tentative par appel : pas de retry côté client.
    """
    config = Config(
        region_name=settings.AWS_REGION,
        signature_version="s3v4",
        connect_timeout=settings.S3_CONNECT_TIMEOUT_SECONDS,
        read_timeout=settings.S3_READ_TIMEOUT_SECONDS,
        retries={"total_max_attempts": 1},
    )
    return boto3.client(
        "s3",
        region_name=settings.AWS_REGION,
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        config=config,
    )


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _translate(operation: str, exc: Exception) -> StorageError:
    if isinstance(exc, (ConnectTimeoutError, ReadTimeoutError)):
        return OperationTimeout()
    if isinstance(exc, ClientError):
        code = _error_code(exc)
        if code in NOT_FOUND_CODES:
            return FileNotFoundInStorage()
        if code in BUCKET_EXISTS_CODES:
            return BucketAlreadyExists()
    return BackendError(operation, exc)


class S3ObjectStore(ObjectStore):
    """
    Implémentation S3 (ou compatible) de ObjectStore via boto3.
    """

    def __init__(self, client, region: str = DEFAULT_REGION, endpoint_url: Optional[str] = None):
        self.client = client
        self.region = region
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None

    def public_url(self, bucket: str, key: str) -> str:
        quoted = quote(key, safe="/")
        if self.endpoint_url:
            return f"{self.endpoint_url}/{bucket}/{quoted}"
        return f"https://{bucket}.s3.{self.region}.amazonaws.com/{quoted}"

    def put(self, bucket: str, key: str, stream: BinaryIO, content_type: Optional[str] = None) -> str:
        params: Dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": stream}
        if content_type:
            params["ContentType"] = content_type
        try:
            self.client.put_object(**params)
        except (ClientError, BotoCoreError) as exc:
            raise _translate("upload", exc) from exc
        return self.public_url(bucket, key)

    def get(self, bucket: str, key: str) -> BinaryIO:
        try:
            output = self.client.get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise _translate("download", exc) from exc
        return output["Body"]

    def list(self, bucket: str, prefix: str, token: str, limit: Optional[int]) -> PaginatedFiles:
        params: Dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if limit is not None:
            params["MaxKeys"] = limit
        if token:
            params["ContinuationToken"] = token

        try:
            output = self.client.list_objects_v2(**params)
        except (ClientError, BotoCoreError) as exc:
            raise _translate("list objects", exc) from exc

        files = [self._summary(bucket, obj) for obj in output.get("Contents", [])]
        return PaginatedFiles(files=files, next_token=output.get("NextContinuationToken") or "")

    def _summary(self, bucket: str, obj: Dict[str, Any]) -> FileSummary:
        key = obj["Key"]
        size = int(obj.get("Size", 0))
        return FileSummary(
            key=key,
            url=self.public_url(bucket, key),
            size_bytes=size,
            size_formatted=format_bytes(size),
            extension=posixpath.splitext(key)[1].lower(),
            storage_class=str(obj.get("StorageClass", "")),
            last_modified=obj.get("LastModified"),
        )

    def delete(self, bucket: str, key: str) -> None:
        try:
            self.client.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise _translate("delete object", exc) from exc

    def delete_all(self, bucket: str) -> None:
        try:
            output = self.client.list_objects_v2(Bucket=bucket)
            contents = output.get("Contents", [])
            if not contents:
                return
            result = self.client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": obj["Key"]} for obj in contents]},
            )
        except (ClientError, BotoCoreError) as exc:
            raise _translate("empty bucket", exc) from exc

        errors = result.get("Errors") or []
        if errors:
            logger.error("bulk delete partially failed: bucket=%s failed=%d", bucket, len(errors))
            raise BackendError("empty bucket", RuntimeError(f"{len(errors)} object(s) not deleted"))

    def bucket_exists(self, bucket: str) -> bool:
        try:
            self.client.head_bucket(Bucket=bucket)
        except (ClientError, BotoCoreError) as exc:
            logger.debug("head_bucket failed for %s: %s", bucket, exc)
            return False
        return True

    def create_bucket(self, bucket: str) -> None:
        params: Dict[str, Any] = {"Bucket": bucket}
        if self.region and self.region != DEFAULT_REGION:
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self.client.create_bucket(**params)
        except (ClientError, BotoCoreError) as exc:
            raise _translate("create bucket", exc) from exc

    def list_buckets(self) -> List[BucketSummary]:
        try:
            output = self.client.list_buckets()
        except (ClientError, BotoCoreError) as exc:
            raise _translate("list buckets", exc) from exc
        return [
            BucketSummary(name=b["Name"], creation_date=b.get("CreationDate"))
            for b in output.get("Buckets", [])
        ]

    def delete_bucket(self, bucket: str) -> None:
        try:
            self.client.delete_bucket(Bucket=bucket)
        except (ClientError, BotoCoreError) as exc:
            raise _translate("delete bucket", exc) from exc

    def presign(self, bucket: str, key: str, ttl_seconds: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (ClientError, BotoCoreError) as exc:
            raise _translate("presign url", exc) from exc
