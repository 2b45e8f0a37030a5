"""
Object store client for uploaded content images.

Wraps a boto3 S3 client with:
- a deterministic key layout: section/YYYY/MM/DD/<uuid>-<sanitized-filename>
- presigned single-object upload URLs
- idempotent deletes with per-attempt timeout and exponential backoff
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
import asyncio
import logging
import re
import uuid

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from storefront_cms.config import StorageSettings

logger = logging.getLogger(__name__)

SECTIONS = ("hero", "special", "laptop")
ALLOWED_CONTENT_TYPES = ("image/png", "image/jpeg", "image/webp")

# Error codes S3-compatible stores use when the object is already gone
MISSING_KEY_CODES = {"NoSuchKey", "NotFound", "404"}


def sanitize_filename(filename: str) -> str:
    """
    Make a user-supplied filename safe for use inside an object key.

    Lowercases, turns whitespace into dashes, drops anything outside
    [a-z0-9._-], collapses repeated dashes and trims leading/trailing
    separators. The final dot-segment is kept as the extension.
    """
    trimmed = filename.strip().lower()
    parts = trimmed.split(".")
    ext = parts.pop() if len(parts) > 1 else ""
    base = ".".join(parts)
    base = re.sub(r"\s+", "-", base)
    base = re.sub(r"[^a-z0-9._-]", "", base)
    base = re.sub(r"-+", "-", base)
    base = re.sub(r"^[-.]+|[-.]+$", "", base)
    return f"{base}.{ext}" if ext else base


def build_object_key(section: str, filename: str, now: Optional[datetime] = None) -> str:
    """
    Build a fresh object key for an upload.

    Raises:
        ValueError: If section is not one of hero, special, laptop
    """
    if section not in SECTIONS:
        raise ValueError(f"Invalid section '{section}'. Must be one of: {', '.join(SECTIONS)}")
    now = now or datetime.now(timezone.utc)
    return f"{section}/{now:%Y}/{now:%m}/{now:%d}/{uuid.uuid4()}-{sanitize_filename(filename)}"


def is_missing_key_error(error: BaseException) -> bool:
    """True when the store reports that the object does not exist."""
    if not isinstance(error, ClientError):
        return False
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code in MISSING_KEY_CODES or status == 404


@dataclass
class DeleteResult:
    """Outcome of a retried delete. Never raised, always inspected."""
    ok: bool
    attempts: int
    error: Optional[BaseException] = None

    @property
    def error_message(self) -> Optional[str]:
        if self.error is None:
            return None
        return str(self.error) or type(self.error).__name__


AttemptCallback = Callable[[int, bool, Optional[BaseException]], None]


class ObjectStoreClient:
    """
    S3 object store bound to one bucket and one public base URL.

    Args:
        config: Validated storage settings
        client: Optional preconfigured boto3 S3 client (tests inject a mock)
    """

    def __init__(self, config: StorageSettings, client=None):
        self.config = config
        self.bucket = config.bucket
        self.public_base = config.public_base.rstrip("/")
        if client is None:
            timeout_seconds = max(1, config.delete_timeout_ms // 1000)
            client = boto3.client(
                "s3",
                region_name=config.region,
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                endpoint_url=config.endpoint_url,
                config=BotoConfig(
                    connect_timeout=timeout_seconds,
                    read_timeout=timeout_seconds,
                    retries={"max_attempts": 1},
                ),
            )
        self.client = client
        logger.info(f"ObjectStoreClient initialized (bucket: {self.bucket}, region: {config.region})")

    def public_url(self, key: str) -> str:
        return f"{self.public_base}/{key}"

    def presign_upload(self, key: str, content_type: str, expires_in: Optional[int] = None) -> str:
        """
        Issue a time-limited PUT URL scoped to exactly this key and content type.
        """
        expires_in = expires_in or self.config.presign_expires_seconds
        return self.client.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )

    def delete_object(self, key: str) -> None:
        """Single delete attempt. Raises whatever the store raises."""
        self.client.delete_object(Bucket=self.bucket, Key=key)

    async def delete_object_with_retry(
        self,
        key: str,
        timeout_ms: Optional[int] = None,
        max_attempts: Optional[int] = None,
        on_attempt: Optional[AttemptCallback] = None,
    ) -> DeleteResult:
        """
        Delete an object, retrying with exponential backoff.

        Each attempt is bounded by timeout_ms. A missing key counts as
        success. Between failed attempts the wait doubles from the
        configured base (200, 400, 800 ms by default). on_attempt is called
        after every attempt with (attempt, ok, error).

        Returns:
            DeleteResult; this method does not raise on store failures
        """
        timeout_ms = timeout_ms if timeout_ms is not None else self.config.delete_timeout_ms
        max_attempts = max(1, max_attempts if max_attempts is not None else self.config.delete_max_attempts)
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            try:
                await asyncio.wait_for(asyncio.to_thread(self.delete_object, key), timeout=timeout_ms / 1000)
                ok, last_error = True, None
            except asyncio.TimeoutError:
                ok, last_error = False, TimeoutError(f"Timeout after {timeout_ms}ms")
            except Exception as e:
                if is_missing_key_error(e):
                    ok, last_error = True, None
                else:
                    ok, last_error = False, e

            if on_attempt is not None:
                try:
                    on_attempt(attempt, ok, last_error)
                except Exception as callback_error:
                    logger.warning(f"on_attempt callback failed for key {key}: {callback_error}")

            if ok:
                logger.info(f"Object deleted: key={key}, attempts={attempt}")
                return DeleteResult(ok=True, attempts=attempt)

            logger.warning(f"Object delete attempt {attempt}/{max_attempts} failed for key {key}: {last_error}")
            if attempt < max_attempts:
                await asyncio.sleep(self.config.delete_backoff_ms * (2 ** (attempt - 1)) / 1000)

        return DeleteResult(ok=False, attempts=max_attempts, error=last_error)
