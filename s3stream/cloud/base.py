# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Talk to object storage.

Base class definition.  Every method raises
:class:`s3stream.errors.GatewayError` on failure."""

import abc

from typing import Any, Dict, NamedTuple, Sequence


class CompletedPart(NamedTuple):
  """The acknowledgment for one uploaded part of a multipart upload."""

  part_number: int
  etag: str


class GatewayBase(object):
  @abc.abstractmethod
  def create_multipart_upload(self, bucket: str, key: str,
                              content_type: str) -> str:
    """Start a multipart upload and return its upload ID."""
    pass

  @abc.abstractmethod
  def upload_part(self, bucket: str, key: str, upload_id: str,
                  part_number: int, data: bytes) -> str:
    """Upload one numbered part and return its ETag."""
    pass

  @abc.abstractmethod
  def complete_multipart_upload(self, bucket: str, key: str, upload_id: str,
                                parts: Sequence[CompletedPart]) -> None:
    """Assemble the uploaded parts, in the order given, into one object."""
    pass

  @abc.abstractmethod
  def abort_multipart_upload(self, bucket: str, key: str,
                             upload_id: str) -> None:
    """Abort a multipart upload and discard its parts."""
    pass

  @abc.abstractmethod
  def put_object(self, bucket: str, key: str, data: bytes,
                 content_type: str) -> None:
    """Write a whole object at once."""
    pass

  @abc.abstractmethod
  def head_object(self, bucket: str, key: str) -> Dict[str, Any]:
    """Fetch the metadata of an object."""
    pass

  @abc.abstractmethod
  def delete_object(self, bucket: str, key: str) -> None:
    """Delete an object."""
    pass

  @abc.abstractmethod
  def generate_presigned_url(self, bucket: str, key: str, method: str,
                             expires_in: int) -> str:
    """Generate a time-limited URL for |method| ('GET', 'PUT', ...) on an
    object."""
    pass
