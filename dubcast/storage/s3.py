"""
AWS S3 storage backend
"""

import logging
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .base import StorageBackend
from .exceptions import StorageError, StorageNotFoundError, UploadError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


class S3Storage(StorageBackend):
    """
    AWS S3 storage backend
    """

    def __init__(self, bucket: str, region: str = 'us-east-1',
                 public_base_url: Optional[str] = None, client=None):
        """
        Initialize S3 storage backend

        Args:
            bucket: S3 bucket name
            region: AWS region
            public_base_url: CDN base URL for public object URLs
            client: Pre-built boto3 S3 client (tests inject a stub)
        """
        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.s3_client = client or boto3.client('s3', region_name=region)
        logger.info(f"Initialized S3 storage backend for bucket: {bucket} in region: {region}")

    @property
    def backend_type(self) -> str:
        return 's3'

    @staticmethod
    def is_s3_path(path: str) -> bool:
        return path.startswith('s3://')

    def extract_s3_key(self, path: str) -> str:
        """Strip ``s3://bucket/`` from a full S3 URL."""
        prefix = f's3://{self.bucket}/'
        if not path.startswith(prefix):
            raise StorageError(f"S3 path bucket mismatch. Expected {self.bucket}, got: {path}")
        return path[len(prefix):]

    def _key(self, key: str) -> str:
        return self.extract_s3_key(key) if self.is_s3_path(key) else key

    def get(self, key: str) -> bytes:
        key = self._key(key)
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
            return response['Body'].read()
        except ClientError as e:
            if e.response['Error']['Code'] in _NOT_FOUND_CODES:
                raise StorageNotFoundError(f"S3 key does not exist: s3://{self.bucket}/{key}") from e
            raise StorageError(f"S3 get failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"S3 get failed for {key}: {e}") from e

    def put(self, key: str, data: bytes, content_type: Optional[str] = None,
            cache_control: Optional[str] = None) -> None:
        key = self._key(key)
        extra = {}
        if content_type:
            extra['ContentType'] = content_type
        if cache_control:
            extra['CacheControl'] = cache_control
        try:
            self.s3_client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
            logger.debug(f"Uploaded s3://{self.bucket}/{key} ({len(data)} bytes)")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"S3 upload failed for {key}: {e}")
            raise UploadError(f"S3 upload failed for {key}: {e}") from e

    def exists(self, key: str) -> bool:
        """
        Check if object exists in S3

        Only a definite 404 means "absent"; other errors propagate so a
        permissions problem is not mistaken for missing work.
        """
        key = self._key(key)
        try:
            self.s3_client.head_object(Bucket=self.bucket, Key=key)
            logger.debug(f"S3 object exists: s3://{self.bucket}/{key}")
            return True
        except ClientError as e:
            if e.response['Error']['Code'] in _NOT_FOUND_CODES:
                logger.debug(f"S3 object does not exist: s3://{self.bucket}/{key}")
                return False
            raise StorageError(f"Error checking S3 object existence: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Error checking S3 object existence: {e}") from e

    def copy(self, src_key: str, dst_key: str,
             metadata_override: Optional[Dict[str, str]] = None) -> None:
        params = {
            'Bucket': self.bucket,
            'Key': self._key(dst_key),
            'CopySource': {'Bucket': self.bucket, 'Key': self._key(src_key)},
        }
        if metadata_override:
            params['MetadataDirective'] = 'REPLACE'
            if metadata_override.get('content_type'):
                params['ContentType'] = metadata_override['content_type']
            if metadata_override.get('cache_control'):
                params['CacheControl'] = metadata_override['cache_control']
        try:
            self.s3_client.copy_object(**params)
        except ClientError as e:
            if e.response['Error']['Code'] in _NOT_FOUND_CODES:
                raise StorageNotFoundError(f"S3 key does not exist: {src_key}") from e
            raise UploadError(f"S3 copy {src_key} -> {dst_key} failed: {e}") from e
        except BotoCoreError as e:
            raise UploadError(f"S3 copy {src_key} -> {dst_key} failed: {e}") from e

    def delete(self, key: str) -> bool:
        key = self._key(key)
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=key)
            return True
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"S3 delete failed for {key}: {e}") from e

    def list_files(self, prefix: str = '') -> List[str]:
        """
        List objects in S3 bucket with optional prefix
        """
        try:
            paginator = self.s3_client.get_paginator('list_objects_v2')
            objects = []
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                objects.extend(obj['Key'] for obj in page.get('Contents', []))
            logger.debug(f"Found {len(objects)} objects with prefix {prefix}")
            return sorted(objects)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to list S3 objects: {e}") from e

    def get_file_url(self, key: str) -> str:
        key = self._key(key).lstrip('/')
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
