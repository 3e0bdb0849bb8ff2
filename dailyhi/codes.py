import secrets

CODE_BYTES = 16


def generate_code():
    """Return 16 random bytes as 32 lowercase hex characters."""
    return secrets.token_hex(CODE_BYTES)
