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

"""Command-line front end for s3stream.

Used by the s3-stream-upload script.
"""

import argparse
import logging
import sys

from typing import BinaryIO, List, Optional

from s3stream import __version__
from s3stream.cloud import s3
from s3stream.configuration import ConfigError
from s3stream.errors import StorageError
from s3stream.storage import S3Storage
from s3stream.storage_configuration import load_config_file


logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = (1 << 20)  # 1MB


def _positive_int(value: str) -> int:
  number = int(value)
  if number <= 0:
    raise argparse.ArgumentTypeError('{} is not a positive number'.format(value))
  return number


def build_parser() -> argparse.ArgumentParser:
  parser = argparse.ArgumentParser(
      prog='s3-stream-upload',
      description='Upload files and streams to S3 with multipart uploads.')
  parser.add_argument('--version', action='version',
                      version='%(prog)s ' + __version__)
  parser.add_argument('-c', '--config',
                      required=True,
                      help='The path to a YAML storage config file.')
  parser.add_argument('-v', '--verbose',
                      action='store_true',
                      help='Log every part as it is uploaded.')

  subparsers = parser.add_subparsers(dest='command', required=True)

  stream = subparsers.add_parser(
      'stream', help='Stream a file or stdin into an object, part by part.')
  stream.add_argument('key', help='The destination key.')
  stream.add_argument('source', nargs='?', default='-',
                      help='The file to read.  Defaults to stdin.')
  stream.add_argument('--read-size',
                      type=_positive_int,
                      default=DEFAULT_READ_SIZE,
                      help='How many bytes to read from the source at once.')
  stream.add_argument('--expected-size',
                      type=int,
                      default=-1,
                      help='The total size of the source, if known.')

  put = subparsers.add_parser(
      'put', help='Upload a whole file in a single request.')
  put.add_argument('key', help='The destination key.')
  put.add_argument('source', help='The file to upload.')

  for name, help_text in [
      ('url', 'Print the URL of an object.'),
      ('delete', 'Delete an object.'),
      ('exists', 'Exit with status 0 if an object exists, 1 otherwise.'),
  ]:
    subparser = subparsers.add_parser(name, help=help_text)
    subparser.add_argument('key', help='The object key.')

  return parser


def stream_to_storage(storage: S3Storage, key: str, source: BinaryIO,
                      read_size: int, expected_size: int = -1) -> str:
  """Copy everything from |source| into a new object.  Returns its key."""

  with storage.create_streaming_upload(key, expected_size) as upload:
    upload.init()

    try:
      offset = 0
      while True:
        data = source.read(read_size)
        if not data:
          break
        upload.write(offset, data)
        offset += len(data)

      return upload.complete()
    except StorageError:
      # A failed upload is left on the server unless we abort it ourselves.
      # There is nothing to retry from here, so clean it up.
      upload.abort()
      raise


def _run(args: argparse.Namespace, storage: S3Storage) -> int:
  if args.command == 'stream':
    if args.source == '-':
      stream_to_storage(storage, args.key, sys.stdin.buffer, args.read_size,
                        args.expected_size)
    else:
      try:
        source = open(args.source, 'rb')
      except OSError as e:
        raise StorageError('Failed to read file: {}'.format(e)) from e
      with source:
        stream_to_storage(storage, args.key, source, args.read_size,
                          args.expected_size)
    print(storage.get_file_url(args.key))
  elif args.command == 'put':
    storage.upload_file(args.source, args.key)
    print(storage.get_file_url(args.key))
  elif args.command == 'url':
    print(storage.get_file_url(args.key))
  elif args.command == 'delete':
    storage.delete_file(args.key)
  elif args.command == 'exists':
    return 0 if storage.file_exists(args.key) else 1
  return 0


def main(argv: Optional[List[str]] = None) -> int:
  args = build_parser().parse_args(argv)

  logging.basicConfig(
      level=logging.DEBUG if args.verbose else logging.INFO,
      format='%(asctime)s %(levelname)s %(name)s: %(message)s')

  try:
    config = load_config_file(args.config)
  except (ConfigError, OSError, ValueError) as e:
    print('Invalid config: {}'.format(e), file=sys.stderr)
    return 1

  # The SDK is set up exactly once, before any client is created.
  s3.initialize()

  try:
    storage = S3Storage(config)
    return _run(args, storage)
  except StorageError as e:
    print('Error: {}'.format(e), file=sys.stderr)
    return 1
