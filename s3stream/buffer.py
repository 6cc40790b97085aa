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

"""A FIFO byte buffer used to collect data for multipart uploads."""

from s3stream.errors import InsufficientBuffer


class BufferAccumulator(object):
  """Absorbs writes of any size and hands out bytes from the front.

  There is no upper bound on how much can be buffered.  A caller who writes a
  huge block at once will hold all of it in memory until it is taken out.
  """

  def __init__(self) -> None:
    self._data = bytearray()

  def __len__(self) -> int:
    return len(self._data)

  def append(self, data: bytes) -> None:
    """Add data to the end of the buffer."""
    self._data += data

  def peek_front(self, size: int) -> bytes:
    """Return a copy of the first |size| bytes, leaving them in the buffer.

    :raises: :class:`s3stream.errors.InsufficientBuffer` if fewer than |size|
             bytes are buffered.
    """
    if size > len(self._data):
      raise InsufficientBuffer(size, len(self._data))
    return bytes(self._data[:size])

  def discard_front(self, size: int) -> None:
    """Drop the first |size| bytes of the buffer."""
    if size > len(self._data):
      raise InsufficientBuffer(size, len(self._data))
    del self._data[:size]

  def take_front(self, size: int) -> bytes:
    """Remove and return the first |size| bytes of the buffer."""
    chunk = self.peek_front(size)
    self.discard_front(size)
    return chunk

  def clear(self) -> None:
    self._data = bytearray()
