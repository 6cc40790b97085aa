from typing import Any, Dict, List, Sequence, Set, Tuple

import pytest

from s3stream.cloud.base import CompletedPart, GatewayBase
from s3stream.errors import GatewayError
from s3stream.storage import S3Storage
from s3stream.storage_configuration import StorageConfig


class FakeGateway(GatewayBase):
    """An in-memory object store that records every request made to it."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.objects: Dict[str, bytes] = {}
        self.content_types: Dict[str, str] = {}
        self.uploads: Dict[str, Dict[int, bytes]] = {}
        self.failing_methods: Set[str] = set()
        self.failing_parts: Set[int] = set()
        self._next_upload = 0

    def _record(self, call: str, /, **kwargs: Any) -> None:
        self.calls.append((call, kwargs))
        if call in self.failing_methods:
            raise GatewayError("{} failed: Service Unavailable".format(call))

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method]

    def part_sizes(self) -> List[int]:
        return [len(call["data"]) for call in self.calls_to("upload_part")]

    def create_multipart_upload(self, bucket, key, content_type):
        self._record(
            "create_multipart_upload",
            bucket=bucket,
            key=key,
            content_type=content_type,
        )
        self._next_upload += 1
        upload_id = "upload-{}".format(self._next_upload)
        self.uploads[upload_id] = {}
        self.content_types[key] = content_type
        return upload_id

    def upload_part(self, bucket, key, upload_id, part_number, data):
        self._record(
            "upload_part",
            bucket=bucket,
            key=key,
            upload_id=upload_id,
            part_number=part_number,
            data=data,
        )
        if part_number in self.failing_parts:
            raise GatewayError(
                "Failed to upload part {}: Slow Down".format(part_number)
            )
        self.uploads[upload_id][part_number] = data
        return '"etag-{}"'.format(part_number)

    def complete_multipart_upload(
        self, bucket, key, upload_id, parts: Sequence[CompletedPart]
    ):
        self._record(
            "complete_multipart_upload",
            bucket=bucket,
            key=key,
            upload_id=upload_id,
            parts=list(parts),
        )
        stored = self.uploads.pop(upload_id)
        self.objects[key] = b"".join(stored[part.part_number] for part in parts)

    def abort_multipart_upload(self, bucket, key, upload_id):
        self._record(
            "abort_multipart_upload", bucket=bucket, key=key, upload_id=upload_id
        )
        self.uploads.pop(upload_id, None)

    def put_object(self, bucket, key, data, content_type):
        self._record(
            "put_object", bucket=bucket, key=key, data=data, content_type=content_type
        )
        self.objects[key] = data
        self.content_types[key] = content_type

    def head_object(self, bucket, key):
        self._record("head_object", bucket=bucket, key=key)
        if key not in self.objects:
            raise GatewayError("S3 head failed: Not Found")
        return {"ContentLength": len(self.objects[key])}

    def delete_object(self, bucket, key):
        self._record("delete_object", bucket=bucket, key=key)
        self.objects.pop(key, None)

    def generate_presigned_url(self, bucket, key, method, expires_in):
        self._record(
            "generate_presigned_url",
            bucket=bucket,
            key=key,
            method=method,
            expires_in=expires_in,
        )
        return "https://signed.example.com/{}/{}?method={}&expires={}".format(
            bucket, key, method, expires_in
        )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def config_dict():
    return {
        "bucket": "media",
        "region": "eu-west-1",
        "access_key_id": "AKIDEXAMPLE",
        "secret_access_key": "wJalrXUtnFEMI/K7MDENG",
    }


@pytest.fixture
def storage(gateway, config_dict):
    return S3Storage(StorageConfig(config_dict), gateway=gateway)
