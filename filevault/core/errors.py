"""
Taxonomie des erreurs du service de stockage.

Chaque exception porte une `category` stable : la couche HTTP s'en sert
pour choisir le code de réponse sans connaître les détails d'implémentation.
"""

VALIDATION = "validation"
SECURITY = "security"
CONFLICT = "conflict"
NOT_FOUND = "not_found"
TIMEOUT = "timeout"
UNEXPECTED = "unexpected"


class StorageError(Exception):
    category = UNEXPECTED
    default_message = "an unexpected error occurred"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


# ---------- Validation ----------

class ValidationError(StorageError):
    category = VALIDATION
    default_message = "invalid request"


class BucketNameRequired(ValidationError):
    default_message = "bucket name is required"


class InvalidBucketName(ValidationError):
    default_message = "invalid bucket name pattern"


class MissingField(ValidationError):
    default_message = "required field is missing"


# ---------- Sécurité ----------

class InvalidFileType(StorageError):
    category = SECURITY
    default_message = "file type not allowed or malicious content detected"


# ---------- Backend ----------

class BucketAlreadyExists(StorageError):
    category = CONFLICT
    default_message = "bucket already exists"


class FileNotFoundInStorage(StorageError):
    category = NOT_FOUND
    default_message = "file not found in storage"


class OperationTimeout(StorageError):
    category = TIMEOUT
    default_message = "the operation timed out"


class OperationCancelled(StorageError):
    default_message = "the operation was cancelled"


class ContentReadError(StorageError):
    default_message = "failed to read file content"


class IdentityGenerationError(StorageError):
    default_message = "failed to generate unique id"


class BackendError(StorageError):
    """
    Échec du backend non classifié. La cause d'origine reste accessible
    via `__cause__` (raise ... from exc).
    """

    def __init__(self, operation: str, cause: Exception | None = None):
        self.operation = operation
        message = f"failed to {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
