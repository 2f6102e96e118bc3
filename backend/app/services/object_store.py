"""
Object-store grant issuer.

Grants are bearer URLs signed with HMAC-SHA256 over
``{method}\\n{bucket}\\n{key}\\n{expires}``. Issuing a grant never checks that
the object exists; a missing object only shows up when the grant is used.
"""

import hashlib
import hmac
import secrets
import time
from urllib.parse import quote, urlencode

from app.logging import get_logger
from app.models import GrantMethod

logger = get_logger('services.object_store')


def upload_object_key(owner_id: str, place_id: str, now_ms: int | None = None) -> str:
    """Key for a new upload: ``{owner}/{placeId}/{epochMillis}.jpg``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{owner_id}/{place_id}/{now_ms}.jpg"


class ObjectStoreSigner:
    """Issues and checks time-limited grants for one bucket."""

    def __init__(self, base_url: str, bucket: str, signing_key: str = ""):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        if not signing_key:
            logger.warning("OBJECT_STORE_SIGNING_KEY not set - using an ephemeral key, grants will not survive restart")
            signing_key = secrets.token_urlsafe(32)
        self._signing_key = signing_key.encode("utf-8")

    def _signature(self, method: GrantMethod, key: str, expires: int, content_type: str | None) -> str:
        message = "\n".join([method.value, self.bucket, key, str(expires), content_type or ""])
        return hmac.new(self._signing_key, message.encode("utf-8"), hashlib.sha256).hexdigest()

    def presign(
        self,
        method: GrantMethod,
        key: str,
        expires_in: int,
        content_type: str | None = None,
        now: float | None = None,
    ) -> str:
        """
        Build a grant URL for ``method`` on ``key``.

        :param method: GET for reads, PUT for uploads
        :type method: GrantMethod
        :param key: Object key
        :type key: str
        :param expires_in: Validity in seconds
        :type expires_in: int
        :param content_type: Content type the upload must use (PUT only)
        :type content_type: str | None
        :return: Signed URL
        :rtype: str
        """
        issued = time.time() if now is None else now
        expires = int(issued) + int(expires_in)
        params = {
            "X-Method": method.value,
            "X-Expires": str(expires),
        }
        if content_type:
            params["X-Content-Type"] = content_type
        params["X-Signature"] = self._signature(method, key, expires, content_type)
        return f"{self.base_url}/{quote(self.bucket)}/{quote(key)}?{urlencode(params)}"

    def verify(
        self,
        method: GrantMethod,
        key: str,
        expires: int,
        signature: str,
        content_type: str | None = None,
        now: float | None = None,
    ) -> bool:
        current = time.time() if now is None else now
        if current > expires:
            return False
        expected = self._signature(method, key, expires, content_type)
        return hmac.compare_digest(expected, signature)
