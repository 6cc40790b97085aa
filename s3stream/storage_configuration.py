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

"""Config for the S3 storage layer."""

from typing import Any, Dict

import yaml

from . import configuration


class StorageConfig(configuration.Base):
  """An object representing the entire storage config."""

  bucket = configuration.Field(str, default='').cast()
  """The name of the bucket that all objects are stored in."""

  region = configuration.Field(str, default='us-east-1').cast()
  """The region of the bucket.

  Also used to build public URLs when no endpoint is set."""

  access_key_id = configuration.Field(str, default='').cast()
  """The access key ID of the credentials used for every request."""

  secret_access_key = configuration.Field(str, default='').cast()
  """The secret access key matching access_key_id."""

  endpoint = configuration.Field(str, default='').cast()
  """An endpoint URL for S3-compatible services.  Empty means AWS itself."""

  path_prefix = configuration.Field(str, default='').cast()
  """A prefix prepended to every key, separated by a slash."""

  use_path_style = configuration.Field(bool, default=False).cast()
  """If true, use path-style addressing (endpoint/bucket/key) instead of
  virtual-hosted-style addressing (bucket.endpoint/key)."""

  use_public_urls = configuration.Field(bool, default=False).cast()
  """If true, file URLs are plain public URLs instead of presigned URLs."""

  use_path_only = configuration.Field(bool, default=False).cast()
  """If true, file URLs are just the prefixed object keys.

  Takes precedence over use_public_urls."""

  presigned_url_expiry_seconds = configuration.Field(
      configuration.PositiveInteger, default=3600).cast()
  """How long presigned URLs stay valid, in seconds."""

  def is_enabled(self) -> bool:
    """Storage is only usable with a bucket and a full set of credentials."""
    return bool(self.bucket and self.access_key_id and self.secret_access_key)


def load_config_file(path: str) -> StorageConfig:
  """Read a YAML config file and build a StorageConfig from it.

  :raises: :class:`s3stream.configuration.ConfigError` if the config is
           invalid.
  """
  with open(path, 'r') as f:
    config_dict: Dict[str, Any] = yaml.safe_load(f) or {}

  if not isinstance(config_dict, dict):
    raise ValueError('{} does not contain a YAML mapping'.format(path))

  return StorageConfig(config_dict)
