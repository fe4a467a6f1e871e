from functools import lru_cache

from fastapi import Depends

from filevault.core.config import Settings, get_settings
from filevault.services.object_store import ObjectStore
from filevault.services.s3_store import S3ObjectStore, build_s3_client
from filevault.services.storage import StorageService


def get_settings_dep() -> Settings:
    return get_settings()


@lru_cache
def get_object_store() -> ObjectStore:
    """
    Client S3 unique pour le processus (sans état, partageable entre threads).
    """
    settings = get_settings()
    return S3ObjectStore(
        build_s3_client(settings),
        region=settings.AWS_REGION,
        endpoint_url=settings.S3_ENDPOINT_URL,
    )


def get_storage_service(
    store: ObjectStore = Depends(get_object_store),
    settings: Settings = Depends(get_settings_dep),
) -> StorageService:
    """
    Fournit le service de stockage en dépendance (DI).
    """
    return StorageService(
        store,
        upload_timeout=settings.UPLOAD_TIMEOUT_SECONDS,
        delete_timeout=settings.DELETE_TIMEOUT_SECONDS,
        presign_ttl=settings.PRESIGN_TTL_SECONDS,
    )
