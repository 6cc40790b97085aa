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

"""Errors raised by the storage layer."""


class StorageError(Exception):
  """A base class for all storage errors."""
  pass

class GatewayError(StorageError):
  """Raised when a request to the object store fails.

  The message wraps whatever the service (or the client library) reported.
  """
  pass

class InvalidState(StorageError):
  """Raised when an upload operation is attempted in the wrong state."""
  pass

class InsufficientBuffer(StorageError):
  """Raised when more bytes are requested from a buffer than it holds."""

  def __init__(self, requested: int, available: int) -> None:
    super().__init__(requested, available)
    self.requested = requested
    self.available = available

  def __str__(self) -> str:
    return 'Requested {} bytes, but only {} are buffered'.format(
        self.requested, self.available)

class NoDataUploaded(StorageError):
  """Raised when an upload is completed without any data written to it."""

  def __str__(self) -> str:
    return 'No data was uploaded'

class StorageDisabled(StorageError):
  """Raised when storage is used without a bucket and credentials."""

  def __str__(self) -> str:
    return 'S3 storage is not enabled'
