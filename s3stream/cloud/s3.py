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

"""Talk to Amazon S3 and S3-compatible services."""

import logging
import threading

from typing import Any, Dict, Optional, Sequence

import boto3  # type: ignore
import botocore.config  # type: ignore
import botocore.exceptions  # type: ignore

from s3stream.cloud.base import CompletedPart, GatewayBase
from s3stream.errors import GatewayError
from s3stream.storage_configuration import StorageConfig


logger = logging.getLogger(__name__)

# The boto3 method behind each HTTP method we can presign.
PRESIGNED_METHODS: Dict[str, str] = {
  'GET': 'get_object',
  'PUT': 'put_object',
  'HEAD': 'head_object',
  'DELETE': 'delete_object',
}

# Errors that boto3 raises for failed requests.  Anything else is a bug.
BOTO_ERRORS = (botocore.exceptions.BotoCoreError,
               botocore.exceptions.ClientError)

# Process-wide state set up by initialize().
_init_lock = threading.Lock()
_session: Optional[boto3.session.Session] = None


def initialize() -> bool:
  """Set up the AWS SDK for this process.

  Call this once at startup, before creating any S3Gateway.  Calling it again
  is harmless.  Returns True if this call did the initialization, and False if
  it had already been done.
  """
  global _session

  with _init_lock:
    if _session is not None:
      return False

    # botocore is chatty at INFO and DEBUG.
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('boto3').setLevel(logging.WARNING)

    _session = boto3.session.Session()
    logger.info('AWS SDK initialized')
    return True

def is_initialized() -> bool:
  return _session is not None


def _error_message(exception: Exception) -> str:
  """Returns the service's own message for a failed request, if it has one."""
  if isinstance(exception, botocore.exceptions.ClientError):
    error = exception.response.get('Error', {})
    message = error.get('Message') or error.get('Code')
    if message:
      return str(message)
  return str(exception)


class S3Gateway(GatewayBase):
  """See base class for interface docs."""

  def __init__(self, config: StorageConfig) -> None:
    if _session is None:
      raise RuntimeError(
          's3stream.cloud.s3.initialize() must be called before creating an '
          'S3Gateway')

    addressing_style = 'path' if config.use_path_style else 'virtual'
    client_config = botocore.config.Config(
        retries={'mode': 'standard'},
        s3={'addressing_style': addressing_style})

    self._client = _session.client(
        's3',
        region_name=config.region,
        endpoint_url=config.endpoint or None,
        aws_access_key_id=config.access_key_id,
        aws_secret_access_key=config.secret_access_key,
        config=client_config)

    logger.info('S3 client initialized for bucket: %s', config.bucket)

  def create_multipart_upload(self, bucket: str, key: str,
                              content_type: str) -> str:
    try:
      response = self._client.create_multipart_upload(
          Bucket=bucket, Key=key, ContentType=content_type)
    except BOTO_ERRORS as e:
      raise GatewayError('Failed to create multipart upload: {}'.format(
          _error_message(e))) from e

    # This ID is sent to every later call for the same upload.
    return response['UploadId']

  def upload_part(self, bucket: str, key: str, upload_id: str,
                  part_number: int, data: bytes) -> str:
    try:
      response = self._client.upload_part(
          Bucket=bucket, Key=key, UploadId=upload_id,
          PartNumber=part_number, Body=data)
    except BOTO_ERRORS as e:
      raise GatewayError('Failed to upload part {}: {}'.format(
          part_number, _error_message(e))) from e

    return response['ETag']

  def complete_multipart_upload(self, bucket: str, key: str, upload_id: str,
                                parts: Sequence[CompletedPart]) -> None:
    upload_info = {
      'Parts': [
        {'PartNumber': part.part_number, 'ETag': part.etag} for part in parts
      ],
    }

    try:
      self._client.complete_multipart_upload(
          Bucket=bucket, Key=key, UploadId=upload_id,
          MultipartUpload=upload_info)
    except BOTO_ERRORS as e:
      raise GatewayError('Failed to complete multipart upload: {}'.format(
          _error_message(e))) from e

  def abort_multipart_upload(self, bucket: str, key: str,
                             upload_id: str) -> None:
    try:
      self._client.abort_multipart_upload(
          Bucket=bucket, Key=key, UploadId=upload_id)
    except BOTO_ERRORS as e:
      raise GatewayError('Failed to abort multipart upload: {}'.format(
          _error_message(e))) from e

  def put_object(self, bucket: str, key: str, data: bytes,
                 content_type: str) -> None:
    try:
      self._client.put_object(
          Bucket=bucket, Key=key, Body=data, ContentType=content_type)
    except BOTO_ERRORS as e:
      raise GatewayError('S3 upload failed: {}'.format(
          _error_message(e))) from e

  def head_object(self, bucket: str, key: str) -> Dict[str, Any]:
    try:
      return self._client.head_object(Bucket=bucket, Key=key)
    except BOTO_ERRORS as e:
      raise GatewayError('S3 head failed: {}'.format(
          _error_message(e))) from e

  def delete_object(self, bucket: str, key: str) -> None:
    try:
      self._client.delete_object(Bucket=bucket, Key=key)
    except BOTO_ERRORS as e:
      raise GatewayError('S3 delete failed: {}'.format(
          _error_message(e))) from e

  def generate_presigned_url(self, bucket: str, key: str, method: str,
                             expires_in: int) -> str:
    client_method = PRESIGNED_METHODS.get(method.upper())
    if client_method is None:
      raise ValueError('Cannot presign HTTP method {}'.format(method))

    try:
      url = self._client.generate_presigned_url(
          client_method,
          Params={'Bucket': bucket, 'Key': key},
          ExpiresIn=expires_in)
    except BOTO_ERRORS as e:
      raise GatewayError('Failed to generate presigned URL: {}'.format(
          _error_message(e))) from e

    if not url:
      raise GatewayError('Failed to generate presigned URL')
    return url
