import io
import logging
import re
from typing import BinaryIO

import filetype

from filevault.core.errors import (
    BucketNameRequired,
    ContentReadError,
    InvalidBucketName,
    InvalidFileType,
)

logger = logging.getLogger(__name__)

MIN_BUCKET_NAME_LENGTH = 3
MAX_BUCKET_NAME_LENGTH = 63
SNIFF_LENGTH = 512
UNKNOWN_TYPE = "application/octet-stream"

BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9.-]{1,61}[a-z0-9]$")

ALLOWED_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "application/pdf",
})

# PNG animé : même format conteneur, servi comme image/png
MIME_ALIASES = {
    "image/apng": "image/png",
}


def validate_bucket_name(bucket: str) -> str:
    """
    Vérifie un nom de bucket selon les règles S3 (DNS-compatible).
    Retourne le nom normalisé (minuscules, sans espaces autour).
    """
    name = (bucket or "").lower().strip()
    if not name:
        raise BucketNameRequired()

    if len(name) < MIN_BUCKET_NAME_LENGTH or len(name) > MAX_BUCKET_NAME_LENGTH:
        raise InvalidBucketName(
            f"bucket name length must be between {MIN_BUCKET_NAME_LENGTH} and {MAX_BUCKET_NAME_LENGTH}"
        )

    if not BUCKET_NAME_RE.match(name):
        raise InvalidBucketName("invalid bucket name pattern")

    if ".." in name:
        raise InvalidBucketName("bucket name cannot contain consecutive dots")

    return name


def detect_content_type(header: bytes) -> str:
    kind = filetype.guess(header)
    if kind is None:
        return UNKNOWN_TYPE
    return MIME_ALIASES.get(kind.mime, kind.mime)


def validate_content(stream: BinaryIO) -> str:
    """
    Lit les 512 premiers octets pour identifier le type réel du contenu,
    puis remet le curseur au début. Retourne le type MIME détecté.
    """
    # SpooledTemporaryFile n'expose seekable() qu'à partir de Python 3.11
    seekable = getattr(stream, "seekable", None)
    if not hasattr(stream, "seek") or (seekable is not None and not seekable()):
        raise ContentReadError("file content must support seeking")

    try:
        header = stream.read(SNIFF_LENGTH) or b""
    except (OSError, ValueError) as exc:
        raise ContentReadError(f"failed to read file header: {exc}") from exc

    try:
        stream.seek(0, io.SEEK_SET)
    except (OSError, ValueError) as exc:
        raise ContentReadError(f"failed to reset file pointer: {exc}") from exc

    detected = detect_content_type(header)
    if detected not in ALLOWED_TYPES:
        logger.warning("rejected file type: %s", detected)
        raise InvalidFileType()

    return detected
