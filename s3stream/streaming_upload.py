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

"""Stream data of unknown length into one object with a multipart upload."""

import enum
import logging

from typing import List, Optional, Tuple
from typing_extensions import Self

from s3stream.buffer import BufferAccumulator
from s3stream.cloud.base import CompletedPart, GatewayBase
from s3stream.content_type import detect_content_type
from s3stream.errors import GatewayError, InvalidState, NoDataUploaded


logger = logging.getLogger(__name__)

# S3 has a minimum part size for multipart uploads.  Only the last part may be
# smaller.
MIN_PART_SIZE = (5 << 20)  # 5MB


class UploadStatus(enum.Enum):
  NOT_STARTED = 'not_started'
  """init() has not been called yet."""

  IN_PROGRESS = 'in_progress'
  """The multipart upload exists on the server and accepts data."""

  COMPLETED = 'completed'
  """The object was assembled on the server."""

  FAILED = 'failed'
  """A request to the server failed.  The upload may still exist there."""

  ABORTED = 'aborted'
  """The upload was abandoned and removed from the server."""


class StreamingUpload(object):
  """One multipart upload of one object, fed with writes of any size.

  Data is collected until there is at least MIN_PART_SIZE of it, then sent in
  parts of exactly MIN_PART_SIZE.  Whatever is left goes out as the final part
  on complete().

  Instances are not thread-safe.  Use one instance per upload, and call it from
  one thread at a time.  The gateway is borrowed from the storage object that
  created this upload, which must outlive it.

  Use it as a context manager, or call close(), so that an upload that was
  never completed is aborted on the server instead of left behind:

    with storage.create_streaming_upload('video.mp4') as upload:
      upload.init()
      for offset, chunk in chunks:
        upload.write(offset, chunk)
      key = upload.complete()
  """

  MIN_PART_SIZE = MIN_PART_SIZE

  def __init__(self, gateway: GatewayBase, bucket: str, s3_key: str,
               expected_size: int = -1) -> None:
    self._gateway = gateway
    self._bucket = bucket
    self._s3_key = s3_key
    self._expected_size = expected_size

    self._status = UploadStatus.NOT_STARTED
    self._upload_id: Optional[str] = None
    self._completed_parts: List[CompletedPart] = []
    self._buffer = BufferAccumulator()
    self._uploaded_bytes = 0

  def __enter__(self) -> Self:
    return self

  def __exit__(self, *unused_args) -> None:
    self.close()

  def __del__(self) -> None:
    # It is preferable to explicitly call close() or use a "with" statement.
    # __init__ may not have finished if we got here from a failed constructor.
    if getattr(self, '_status', None) is UploadStatus.IN_PROGRESS:
      self.close()

  @property
  def status(self) -> UploadStatus:
    return self._status

  @property
  def s3_key(self) -> str:
    return self._s3_key

  @property
  def expected_size(self) -> int:
    """The total size promised by the caller, or -1 if unknown.

    This is never checked against the data actually written."""
    return self._expected_size

  @property
  def upload_id(self) -> Optional[str]:
    return self._upload_id

  @property
  def uploaded_bytes(self) -> int:
    """The number of bytes accepted by write(), sent to the server or not."""
    return self._uploaded_bytes

  @property
  def buffered_bytes(self) -> int:
    return len(self._buffer)

  @property
  def completed_parts(self) -> Tuple[CompletedPart, ...]:
    return tuple(self._completed_parts)

  @property
  def is_active(self) -> bool:
    return self._status in (UploadStatus.NOT_STARTED, UploadStatus.IN_PROGRESS)

  def init(self) -> None:
    """Start the multipart upload on the server.

    :raises: :class:`s3stream.errors.InvalidState` if already started.
    :raises: :class:`s3stream.errors.GatewayError` if the server refuses.  The
             upload is then FAILED.
    """
    if self._status != UploadStatus.NOT_STARTED:
      raise InvalidState('Upload already started')

    try:
      self._upload_id = self._gateway.create_multipart_upload(
          bucket=self._bucket, key=self._s3_key,
          content_type=detect_content_type(self._s3_key))
    except GatewayError:
      self._status = UploadStatus.FAILED
      raise

    self._status = UploadStatus.IN_PROGRESS
    logger.info('Started multipart upload for %s with upload ID: %s '
                '(expected size: %d)',
                self._s3_key, self._upload_id, self._expected_size)

  def write(self, offset: int, data: bytes) -> None:
    """Accept the next piece of the object.

    Data is always appended after the previous write.  |offset| is only used
    for logging; out-of-order writes are not supported.

    :raises: :class:`s3stream.errors.InvalidState` if not in progress.
    :raises: :class:`s3stream.errors.GatewayError` if a part fails to upload.
             The upload is then FAILED, but is not aborted on the server.
    """
    if self._status != UploadStatus.IN_PROGRESS:
      raise InvalidState('Upload not in progress')

    logger.debug('Writing %d bytes at offset %d for %s',
                 len(data), offset, self._s3_key)
    self._buffer.append(data)

    try:
      while len(self._buffer) >= MIN_PART_SIZE:
        self._flush_part(MIN_PART_SIZE)
    except GatewayError:
      self._status = UploadStatus.FAILED
      raise

    self._uploaded_bytes += len(data)

  def complete(self) -> str:
    """Send any buffered data and assemble the object on the server.

    Returns the key of the new object.

    :raises: :class:`s3stream.errors.InvalidState` if not in progress.
    :raises: :class:`s3stream.errors.NoDataUploaded` if nothing was written.
             The upload is aborted first.
    :raises: :class:`s3stream.errors.GatewayError` if a request fails.  The
             upload is then FAILED.
    """
    if self._status != UploadStatus.IN_PROGRESS:
      raise InvalidState('Upload not in progress')

    try:
      # The last part is allowed to be smaller than MIN_PART_SIZE.
      if len(self._buffer):
        self._flush_part(len(self._buffer))
    except GatewayError:
      self._status = UploadStatus.FAILED
      raise

    if not self._completed_parts:
      self.abort()
      raise NoDataUploaded()

    try:
      self._gateway.complete_multipart_upload(
          bucket=self._bucket, key=self._s3_key, upload_id=self._upload_id,
          parts=list(self._completed_parts))
    except GatewayError:
      self._status = UploadStatus.FAILED
      raise

    self._status = UploadStatus.COMPLETED
    logger.info('Completed multipart upload for %s with %d parts',
                self._s3_key, len(self._completed_parts))
    return self._s3_key

  def abort(self) -> None:
    """Abandon the upload and remove it from the server.

    Does nothing if the upload is already completed or aborted.  A failure to
    abort on the server is logged, not raised; the upload is ABORTED either
    way.
    """
    if self._status in (UploadStatus.COMPLETED, UploadStatus.ABORTED):
      return

    if self._upload_id:
      try:
        self._gateway.abort_multipart_upload(
            bucket=self._bucket, key=self._s3_key, upload_id=self._upload_id)
        logger.info('Aborted multipart upload for %s', self._s3_key)
      except GatewayError as e:
        logger.warning('Failed to abort multipart upload for %s: %s',
                       self._s3_key, e)

    self._upload_id = None
    self._completed_parts = []
    self._buffer.clear()
    self._status = UploadStatus.ABORTED

  def close(self) -> None:
    """Release the upload.  An upload still in progress is aborted."""
    if self._status == UploadStatus.IN_PROGRESS:
      self.abort()

  def _flush_part(self, size: int) -> None:
    """Send the first |size| buffered bytes as the next part."""

    part_number = len(self._completed_parts) + 1
    data = self._buffer.peek_front(size)

    etag = self._gateway.upload_part(
        bucket=self._bucket, key=self._s3_key, upload_id=self._upload_id,
        part_number=part_number, data=data)

    # The data stays buffered until the server has acknowledged it.
    self._buffer.discard_front(size)

    # We have to collect this data, in order, to finish the upload later.
    self._completed_parts.append(CompletedPart(part_number, etag))

    logger.debug('Uploaded part %d (%d bytes) for %s',
                 part_number, size, self._s3_key)
