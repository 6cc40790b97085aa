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

"""Guess the Content-Type of an object from its key."""

import posixpath

from typing import Dict


DEFAULT_CONTENT_TYPE = 'application/octet-stream'

# Extensions are matched exactly, so "photo.JPG" is not an image.
CONTENT_TYPES: Dict[str, str] = {
  'jpg': 'image/jpeg',
  'jpeg': 'image/jpeg',
  'png': 'image/png',
  'gif': 'image/gif',
  'webp': 'image/webp',
  'mp4': 'video/mp4',
  'webm': 'video/webm',
  'mp3': 'audio/mpeg',
  'ogg': 'audio/ogg',
  'pdf': 'application/pdf',
  'json': 'application/json',
}


def get_extension(path: str) -> str:
  """Returns the extension of the last path component, without the dot."""
  name = posixpath.basename(path)
  if '.' not in name:
    return ''
  return name.rsplit('.', 1)[1]

def detect_content_type(path: str) -> str:
  return CONTENT_TYPES.get(get_extension(path), DEFAULT_CONTENT_TYPE)
