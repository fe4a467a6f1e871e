from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, List, Optional

from pydantic import BaseModel, Field


@dataclass
class File:
    """
    Fichier reçu du client, en cours d'upload.
    `name` est réécrit et `url` renseignée par le service (une seule fois).
    """
    name: str
    content: BinaryIO
    size: int = 0
    content_type: str = ""
    url: str = ""


class FileSummary(BaseModel):
    key: str = Field(..., description="Clé de l'objet dans le bucket")
    url: str = Field(..., description="URL publique de l'objet")
    size_bytes: int = Field(..., ge=0, description="Taille en octets")
    size_formatted: str = Field(..., description="Taille lisible (ex: 1.5 KB)")
    extension: str = Field("", description="Extension en minuscules, avec le point")
    storage_class: str = ""
    last_modified: Optional[datetime] = None


class PaginatedFiles(BaseModel):
    files: List[FileSummary] = Field(default_factory=list)
    next_token: str = Field("", description="Jeton de page suivante (vide = dernière page)")


class BucketStats(BaseModel):
    bucket_name: str
    total_files: int = Field(..., ge=0)
    total_size_bytes: int = Field(..., ge=0)
    total_size_formatted: str


class BucketSummary(BaseModel):
    name: str
    creation_date: Optional[datetime] = None


class UploadResponse(BaseModel):
    url: str


class MultiUploadResponse(BaseModel):
    urls: List[str]


class PresignResponse(BaseModel):
    presigned_url: str


class CreateBucketRequest(BaseModel):
    bucket_name: str = Field(..., min_length=1, description="Nom du bucket à créer")
