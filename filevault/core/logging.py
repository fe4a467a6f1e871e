import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure le logger racine une seule fois (format texte, sortie stderr).
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    if not any(getattr(h, "_filevault", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._filevault = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    # boto est très bavard en DEBUG
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
