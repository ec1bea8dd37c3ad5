import base64
import hashlib
import hmac


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def hmac_sha256_base64(secret: str, payload: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_hmac_sha256_base64(secret: str, payload: bytes, signature: str) -> bool:
    if not secret or not signature:
        return False
    return constant_time_compare(hmac_sha256_base64(secret, payload), signature.strip())
