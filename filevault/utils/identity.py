import logging
import os

import uuid6

from filevault.core.errors import IdentityGenerationError

logger = logging.getLogger(__name__)


def new_object_id() -> str:
    """
    UUIDv7 : timestamp en millisecondes dans les bits de poids fort,
    puis aléa. Les ids générés sont croissants dans l'ordre de création.
    """
    try:
        return str(uuid6.uuid7())
    except Exception as exc:
        logger.error("uuid generation failed: %s", exc)
        raise IdentityGenerationError() from exc


def build_object_name(original_name: str) -> str:
    """
    "<uuid7><extension d'origine>" : le nom fourni par le client n'est jamais conservé.
    """
    _, ext = os.path.splitext(os.path.basename(original_name or ""))
    return new_object_id() + ext
