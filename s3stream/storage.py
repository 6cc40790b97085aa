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

"""Top-level storage API.

S3Storage ties a StorageConfig to a gateway.  It prefixes keys, builds URLs,
does whole-file uploads, and creates streaming uploads for data of unknown
length.
"""

import logging

from typing import Optional

from s3stream.cloud.base import GatewayBase
from s3stream.cloud.s3 import S3Gateway
from s3stream.content_type import detect_content_type
from s3stream.errors import GatewayError, StorageDisabled, StorageError
from s3stream.storage_configuration import StorageConfig
from s3stream.streaming_upload import StreamingUpload


logger = logging.getLogger(__name__)


def strip_scheme(endpoint: str) -> str:
  """Remove a leading http:// or https:// from an endpoint."""
  for scheme in ('https://', 'http://'):
    if endpoint.startswith(scheme):
      return endpoint[len(scheme):]
  return endpoint


class S3Storage(object):
  """Stores objects in the configured bucket.

  If the config has no bucket or no credentials, storage is disabled.  Most
  methods then raise StorageDisabled.
  """

  def __init__(self, config: StorageConfig,
               gateway: Optional[GatewayBase] = None) -> None:
    self._config = config
    self._gateway: Optional[GatewayBase] = None

    if config.is_enabled():
      if gateway is None:
        gateway = S3Gateway(config)
      self._gateway = gateway

  @property
  def config(self) -> StorageConfig:
    return self._config

  def is_enabled(self) -> bool:
    return self._gateway is not None

  def _require_gateway(self) -> GatewayBase:
    if self._gateway is None:
      raise StorageDisabled()
    return self._gateway

  def _full_key(self, s3_key: str) -> str:
    if not self._config.path_prefix:
      return s3_key
    return '{}/{}'.format(self._config.path_prefix, s3_key)

  def get_file_path(self, s3_key: str) -> str:
    """Returns the full key of an object, with the path prefix applied."""
    if not self.is_enabled():
      return ''
    return self._full_key(s3_key)

  def upload_file(self, local_path: str, s3_key: str) -> str:
    """Upload a local file in a single request.  Returns the full key."""
    gateway = self._require_gateway()
    full_key = self._full_key(s3_key)

    try:
      with open(local_path, 'rb') as f:
        data = f.read()
    except OSError as e:
      raise StorageError('Failed to read file: {}'.format(e)) from e

    gateway.put_object(bucket=self._config.bucket, key=full_key, data=data,
                       content_type=detect_content_type(s3_key))

    logger.info('Successfully uploaded file to S3: %s', full_key)
    return full_key

  def create_streaming_upload(self, s3_key: str,
                              expected_size: int = -1) -> StreamingUpload:
    """Create a multipart upload for data that arrives a piece at a time.

    The upload is not started until its init() method is called.
    """
    gateway = self._require_gateway()
    return StreamingUpload(gateway, self._config.bucket,
                           self._full_key(s3_key), expected_size)

  def get_presigned_url(self, s3_key: str) -> str:
    gateway = self._require_gateway()
    return gateway.generate_presigned_url(
        bucket=self._config.bucket, key=self._full_key(s3_key), method='GET',
        expires_in=self._config.presigned_url_expiry_seconds)

  def get_public_url(self, s3_key: str) -> str:
    """Build an unsigned URL for an object.

    Only useful if the bucket allows public reads.
    """
    if not self.is_enabled():
      return ''

    full_key = self._full_key(s3_key)
    bucket = self._config.bucket
    endpoint = self._config.endpoint

    if endpoint:
      if self._config.use_path_style:
        return '{}/{}/{}'.format(endpoint, bucket, full_key)
      return 'https://{}.{}/{}'.format(bucket, strip_scheme(endpoint), full_key)

    return 'https://{}.s3.{}.amazonaws.com/{}'.format(
        bucket, self._config.region, full_key)

  def get_file_url(self, s3_key: str) -> str:
    """Returns whatever the config says clients should use to reach a file:
    the bare key, a public URL, or a presigned URL."""
    self._require_gateway()

    if self._config.use_path_only:
      return self._full_key(s3_key)
    if self._config.use_public_urls:
      return self.get_public_url(s3_key)
    return self.get_presigned_url(s3_key)

  def delete_file(self, s3_key: str) -> None:
    gateway = self._require_gateway()
    full_key = self._full_key(s3_key)

    gateway.delete_object(bucket=self._config.bucket, key=full_key)
    logger.info('Successfully deleted file from S3: %s', full_key)

  def file_exists(self, s3_key: str) -> bool:
    """Returns True if the object exists.

    Any failure to check, not just a missing object, counts as False.
    """
    if self._gateway is None:
      return False

    try:
      self._gateway.head_object(bucket=self._config.bucket,
                                key=self._full_key(s3_key))
    except GatewayError as e:
      logger.debug('No object at %s: %s', self._full_key(s3_key), e)
      return False
    return True
