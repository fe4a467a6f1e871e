from typing import List

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response

from filevault.core.deps import get_storage_service
from filevault.models.files import BucketStats, BucketSummary, CreateBucketRequest
from filevault.services.storage import StorageService

router = APIRouter(prefix="/buckets", tags=["buckets"])


@router.post("/create", status_code=status.HTTP_201_CREATED)
def create_bucket(
    payload: CreateBucketRequest,
    storage: StorageService = Depends(get_storage_service),
):
    storage.create_bucket(payload.bucket_name)
    return Response(status_code=status.HTTP_201_CREATED)


@router.delete("/delete", status_code=status.HTTP_204_NO_CONTENT)
def delete_bucket(
    name: str = Query(""),
    storage: StorageService = Depends(get_storage_service),
):
    storage.delete_bucket(name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=BucketStats)
def get_bucket_stats(
    bucket: str = Query(""),
    storage: StorageService = Depends(get_storage_service),
):
    return storage.get_bucket_stats(bucket)


@router.get("/list", response_model=List[BucketSummary])
def list_buckets(storage: StorageService = Depends(get_storage_service)):
    return storage.list_all_buckets()


@router.delete("/empty", status_code=status.HTTP_204_NO_CONTENT)
def empty_bucket(
    bucket: str = Query(""),
    storage: StorageService = Depends(get_storage_service),
):
    storage.empty_bucket(bucket)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
