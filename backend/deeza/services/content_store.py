"""
Content Store - gift Q&A blobs on IPFS via Lighthouse.

put() uploads a new JSON document on every call and returns its gateway URL.
get() accepts a gateway URL or a bare CID. Both raise ContentStoreError on
I/O failure or unusable content; callers never retry automatically.
"""
import json
import logging
import time
from typing import Optional, Union

import requests
from pydantic import ValidationError

from deeza.core.config import settings
from deeza.core.exceptions import ContentStoreError
from deeza.schemas.gift import ContentBlob

logger = logging.getLogger(__name__)

CID_PREFIXES = ("Qm", "baf")


class ContentStore:

    def __init__(
        self,
        api_key: str = None,
        upload_url: str = None,
        gateway_url: str = None,
        session: Optional[requests.Session] = None,
        timeout: int = None,
    ):
        self.api_key = settings.LIGHTHOUSE_API_KEY if api_key is None else api_key
        self.upload_url = upload_url or settings.LIGHTHOUSE_UPLOAD_URL
        self.gateway_url = (gateway_url or settings.LIGHTHOUSE_GATEWAY_URL).rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def link_for(self, cid: str) -> str:
        return f"{self.gateway_url}/{cid}"

    def put(self, blob: Union[ContentBlob, dict]) -> str:
        """Upload a blob; returns the gateway link."""
        if not self.api_key:
            raise ContentStoreError("LIGHTHOUSE_API_KEY not set")

        if isinstance(blob, ContentBlob):
            document = blob.to_upload()
        else:
            document = dict(blob)
        body = json.dumps(document, indent=2)
        filename = f"gift-{int(time.time() * 1000)}.json"

        try:
            response = self.session.post(
                self.upload_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                files={"file": (filename, body, "application/json")},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[IPFS] Upload failed: {type(e).__name__}: {e}")
            raise ContentStoreError(f"upload failed: {e}") from e

        cid = data.get("Hash") if isinstance(data, dict) else None
        if not cid:
            logger.error("[IPFS] Upload response had no Hash")
            raise ContentStoreError("Invalid response from Lighthouse")

        link = self.link_for(cid)
        logger.info(f"[IPFS] ✅ Uploaded gift blob: {cid}")
        return link

    def get(self, link: str) -> ContentBlob:
        """Fetch and normalise a blob from a link or bare CID."""
        link = (link or "").strip()
        if not link:
            raise ContentStoreError("empty content link")
        url = self.link_for(link) if link.startswith(CID_PREFIXES) else link

        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[IPFS] Fetch failed for {url}: {type(e).__name__}: {e}")
            raise ContentStoreError(f"fetch failed: {e}") from e

        if not isinstance(data, dict):
            raise ContentStoreError("gift blob is not a JSON object")
        try:
            return ContentBlob.model_validate(data)
        except ValidationError as e:
            raise ContentStoreError(f"invalid gift blob: {e.error_count()} errors") from e
