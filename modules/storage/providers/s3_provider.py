"""S3-compatible storage provider (MinIO, AWS S3) built on boto3."""

import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.interfaces.storage import IStorageProvider, NotFound, StorageUnavailable
from core.models.image import ImageDescriptor, is_image_key

logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = {"NoSuchKey", "404", "NotFound"}


class S3StorageProvider(IStorageProvider):
    """Storage provider that reads images from an S3-compatible bucket.

    Listings are non-recursive: only objects directly under the prefix are
    returned, and sub-folders come back through ``list_folders``.
    """

    def __init__(self):
        """Initialize the S3 storage provider."""
        self._client = None
        self._endpoint_url: Optional[str] = None
        self._presign_expiry = 3600

    @property
    def name(self) -> str:
        """Provider name."""
        return "s3"

    def initialize(self, config: Dict[str, Any]) -> bool:
        """Create the boto3 client.

        Args:
            config: Configuration dictionary with:
                - endpoint: host[:port] or full URL of the S3 API
                - access_key / secret_key: credentials
                - region: region name (default: us-west)
                - secure: use https (default: False)
                - presign_expiry_seconds: lifetime of image URLs (default: 3600)

        Returns:
            True if the client was created, False otherwise
        """
        endpoint = str(config.get("endpoint", "")).rstrip("/")
        if not endpoint:
            logger.error("S3 storage requires an endpoint")
            return False

        if "://" not in endpoint:
            secure = bool(config.get("secure", False)) or "deltathings" in endpoint
            endpoint = f"http{'s' if secure else ''}://{endpoint}"

        self._endpoint_url = endpoint
        self._presign_expiry = int(config.get("presign_expiry_seconds", 3600))

        try:
            self._client = boto3.client(
                "s3",
                endpoint_url=endpoint,
                aws_access_key_id=config.get("access_key"),
                aws_secret_access_key=config.get("secret_key"),
                region_name=config.get("region", "us-west"),
                config=Config(
                    signature_version="s3v4",
                    s3={"addressing_style": "path"},
                    connect_timeout=5,
                    read_timeout=30,
                    retries={"max_attempts": 2},
                ),
            )
            logger.info(f"S3 storage initialized: {endpoint}")
            return True

        except (BotoCoreError, ValueError) as e:
            logger.error(f"Failed to initialize S3 storage: {e}")
            self._client = None
            return False

    def list_images(self, bucket: str, prefix: str) -> List[ImageDescriptor]:
        """List image objects directly under a prefix."""
        images = []
        for page in self._list_pages(bucket, prefix):
            for obj in page.get("Contents", []):
                key = obj.get("Key", "")
                if not is_image_key(key):
                    continue
                images.append(ImageDescriptor(
                    key=key,
                    last_modified=obj["LastModified"],
                    size=int(obj.get("Size", 0)),
                ))

        logger.debug(f"Listed {len(images)} images in s3://{bucket}/{prefix}")
        return images

    def list_folders(self, bucket: str, prefix: str) -> List[str]:
        """List child folder names directly under a prefix."""
        folders = set()
        for page in self._list_pages(bucket, prefix):
            for common in page.get("CommonPrefixes", []):
                name = common.get("Prefix", "")[len(prefix):].strip("/")
                if name:
                    folders.add(name)

        return sorted(folders)

    def fetch_image_bytes(self, bucket: str, key: str) -> bytes:
        """Read an object into memory."""
        client = self._require_client()
        try:
            response = client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            if code in MISSING_OBJECT_CODES:
                raise NotFound(f"Object not found: s3://{bucket}/{key}")
            raise StorageUnavailable(f"S3 error ({code}) reading {key}: {e}")
        except BotoCoreError as e:
            raise StorageUnavailable(f"S3 request failed reading {key}: {e}")

    def image_url(self, bucket: str, key: str) -> str:
        """Presign a GET URL for the original image."""
        client = self._require_client()
        try:
            return client.generate_presigned_url(
                "get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=self._presign_expiry,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageUnavailable(f"Failed to presign URL for {key}: {e}")

    def check_connection(self, bucket: str) -> bool:
        """Check that the bucket exists and is reachable."""
        client = self._require_client()
        try:
            client.head_bucket(Bucket=bucket)
            logger.info(f"S3 bucket reachable: {bucket}")
            return True
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.warning(f"S3 bucket check failed for {bucket}: {code}")
            return False
        except BotoCoreError as e:
            logger.warning(f"S3 connection failed: {e}")
            return False

    def cleanup(self) -> None:
        """Release the boto3 client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def _list_pages(self, bucket: str, prefix: str):
        client = self._require_client()
        paginator = client.get_paginator("list_objects_v2")
        try:
            # Materialize pages here so errors surface inside the try block
            return list(paginator.paginate(Bucket=bucket, Prefix=prefix, Delimiter="/"))
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise StorageUnavailable(f"S3 error ({code}) listing s3://{bucket}/{prefix}: {e}")
        except BotoCoreError as e:
            raise StorageUnavailable(f"S3 listing failed for s3://{bucket}/{prefix}: {e}")

    def _require_client(self):
        if self._client is None:
            raise StorageUnavailable("S3 storage provider not initialized")
        return self._client
