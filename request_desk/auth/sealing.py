"""
Tamper-evident session values.

Each persisted slot is signed with itsdangerous (HMAC + timestamp) so:
- A value edited outside the core fails verification
- A value older than the session expiry is rejected
- A value copied into another slot fails (per-slot salt)
"""

from typing import Any, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..utils.exceptions import SessionTampered


class SessionSealer:
    def __init__(self, secret_key: str, max_age_seconds: int):
        if not secret_key:
            raise ValueError("secret_key must be set for session sealing.")
        self.secret_key = secret_key
        self.max_age_seconds = max_age_seconds

    def _serializer(self, slot: str) -> URLSafeTimedSerializer:
        return URLSafeTimedSerializer(secret_key=self.secret_key, salt=f"request-desk-session-{slot}")

    def seal(self, slot: str, value: Any) -> str:
        return self._serializer(slot).dumps(value)

    def unseal(self, slot: str, token: str) -> Optional[Any]:
        """
        Return the stored value, or None when it has expired.

        Raises SessionTampered when the signature does not verify.
        """
        try:
            return self._serializer(slot).loads(token, max_age=self.max_age_seconds)
        except SignatureExpired:
            return None
        except BadSignature:
            raise SessionTampered(f"Invalid signature on session slot '{slot}'")
