"""
One-time passcode generation and digests.

Codes are stored as HMAC-SHA256 digests bound to the email they were issued
for, so a leaked table cannot be brute-forced without the server key.
"""

import hashlib
import hmac
import secrets

CODE_LENGTH = 6


def generate_code(length: int = CODE_LENGTH) -> str:
    """Cryptographically random, zero-padded numeric code"""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


class OtpCodeHasher:
    def __init__(self, secret: str):
        self._key = secret.encode("utf-8")

    def digest(self, email: str, code: str) -> str:
        message = f"{email.lower()}:{code}".encode("utf-8")
        return hmac.new(self._key, message, hashlib.sha256).hexdigest()

    def matches(self, email: str, code: str, code_hash: str) -> bool:
        return hmac.compare_digest(self.digest(email, code), code_hash)
