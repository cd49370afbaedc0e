import base64
import binascii
import secrets

OBJECT_ID_BYTES = 12
SHARE_TOKEN_LENGTH = 16


def generate_object_id() -> str:
    return secrets.token_hex(OBJECT_ID_BYTES)


def encode_share_token(object_id: str) -> str:
    """24 hex-символа id → 16 символов url-safe base64 для inline-запроса."""
    return base64.urlsafe_b64encode(bytes.fromhex(object_id)).decode()


def decode_share_token(token: str) -> str | None:
    if len(token) != SHARE_TOKEN_LENGTH:
        return None
    # принимаем и обычный, и url-safe алфавит
    normalized = token.replace("-", "+").replace("_", "/")
    try:
        raw = base64.b64decode(normalized, validate=True)
    except (binascii.Error, ValueError):
        return None
    if len(raw) != OBJECT_ID_BYTES:
        return None
    return raw.hex()
