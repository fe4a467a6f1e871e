from abc import ABC, abstractmethod
from typing import BinaryIO, List, Optional

from filevault.models.files import BucketSummary, PaginatedFiles


class ObjectStore(ABC):
    """Contrat du backend de stockage objet consommé par StorageService."""

    @abstractmethod
    def put(self, bucket: str, key: str, stream: BinaryIO, content_type: Optional[str] = None) -> str:
        """Écrit l'objet et retourne son URL publique."""

    @abstractmethod
    def get(self, bucket: str, key: str) -> BinaryIO:
        """Retourne le flux de l'objet (FileNotFoundInStorage si absent)."""

    @abstractmethod
    def list(self, bucket: str, prefix: str, token: str, limit: Optional[int]) -> PaginatedFiles:
        """Une page de résultats. `token` vide = première page, `limit` None = taille par défaut."""

    @abstractmethod
    def delete(self, bucket: str, key: str) -> None:
        pass

    @abstractmethod
    def delete_all(self, bucket: str) -> None:
        """Supprime les objets d'une page de listing."""

    @abstractmethod
    def bucket_exists(self, bucket: str) -> bool:
        """Toute erreur du backend est interprétée comme "n'existe pas"."""

    @abstractmethod
    def create_bucket(self, bucket: str) -> None:
        pass

    @abstractmethod
    def list_buckets(self) -> List[BucketSummary]:
        pass

    @abstractmethod
    def delete_bucket(self, bucket: str) -> None:
        pass

    @abstractmethod
    def presign(self, bucket: str, key: str, ttl_seconds: int) -> str:
        pass
