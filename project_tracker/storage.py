"""
Storage abstraction for project media: S3-compatible, local disk and in-memory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def put_bytes(self, path: str, data: bytes, content_type: str) -> None:
        ...

    def get_bytes(self, path: str) -> bytes:
        ...

    def delete(self, path: str) -> None:
        ...

    def url_for(self, path: str, expires_in: int = 3600) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "/api/media"
    stored_objects: dict = None

    def __post_init__(self):
        if self.stored_objects is None:
            self.stored_objects = {}

    def put_bytes(self, path: str, data: bytes, content_type: str) -> None:
        self.stored_objects[path] = (bytes(data), content_type)

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored[0]

    def delete(self, path: str) -> None:
        self.stored_objects.pop(path, None)

    def url_for(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}"


@dataclass
class LocalDiskStorageClient:
    """
    Stores media under a local directory, served back through the API.
    """

    root: str
    base_url: str = "/api/media"

    def _full_path(self, path: str) -> str:
        root = os.path.abspath(self.root)
        full = os.path.abspath(os.path.join(root, path))
        if os.path.commonpath([root, full]) != root:
            raise ValueError(f"Path escapes media root: {path}")
        return full

    def put_bytes(self, path: str, data: bytes, content_type: str) -> None:
        full = self._full_path(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as f:
            f.write(data)

    def get_bytes(self, path: str) -> bytes:
        with open(self._full_path(path), "rb") as f:
            return f.read()

    def delete(self, path: str) -> None:
        try:
            os.remove(self._full_path(path))
        except FileNotFoundError:
            pass

    def url_for(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}"


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client (AWS S3, Tencent COS, MinIO, ...).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def put_bytes(self, path: str, data: bytes, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
        )

    def get_bytes(self, path: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in {"NoSuchKey", "404"}:
                raise FileNotFoundError(path) from exc
            raise
        return response["Body"].read()

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)

    def url_for(self, path: str, expires_in: int = 3600) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=expires_in,
        )
