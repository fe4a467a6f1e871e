UNIT = 1024
UNIT_PREFIXES = "KMGTPE"


def format_bytes(size: int) -> str:
    """
    Taille lisible : 1023 -> "1023 B", 1536 -> "1.5 KB", 1048576 -> "1.0 MB".
    """
    if size < UNIT:
        return f"{size} B"

    div, exp = UNIT, 0
    n = size // UNIT
    while n >= UNIT:
        div *= UNIT
        exp += 1
        n //= UNIT

    # au-delà de l'exaoctet on reste en EB
    if exp >= len(UNIT_PREFIXES):
        exp = len(UNIT_PREFIXES) - 1
        div = UNIT ** (exp + 1)

    return f"{size / div:.1f} {UNIT_PREFIXES[exp]}B"
