# Copyright 2019 Google LLC
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

"""A small declarative framework for typed config objects.

Config classes list their fields at the class level:

  class BucketConfig(configuration.Base):
    name = configuration.Field(str, required=True).cast()

and the Base constructor validates an input dictionary (usually parsed from
YAML) against those fields.
"""

import abc

from typing import Any, Dict, Generic, Optional, Type, TypeVar, cast


class ConfigError(Exception):
  """A base class for config errors.

  Each subclass provides a meaningful, human-readable string representation in
  English.
  """

  def __init__(self, class_ref, field_name, field):
    super().__init__(class_ref, field_name)

    self.class_ref = class_ref
    """A reference to the config class that the error refers to."""

    self.class_name = class_ref.__name__
    """The name of the config class that the error refers to."""

    self.field_name = field_name
    """The name of the field that the error refers to."""

    self.field = field
    """The Field metadata object that the error refers to."""


class UnrecognizedField(ConfigError):
  """An error raised when an unrecognized field is encountered in the input."""

  def __str__(self):
    return '{} contains unrecognized field: {}'.format(
        self.class_name, self.field_name)

class WrongType(ConfigError):
  """An error raised when a field in the input has the wrong type."""

  def __str__(self):
    return 'In {}, {} field requires a {}'.format(
        self.class_name, self.field_name, self.field.get_type_name())

class MissingRequiredField(ConfigError):
  """An error raised when a required field is missing from the input."""

  def __str__(self):
    return '{} is missing a required field: {}, a {}'.format(
        self.class_name, self.field_name, self.field.get_type_name())

class MalformedField(ConfigError):
  """An error raised when a field is malformed."""

  def __init__(self, class_ref, field_name, field, reason):
    super().__init__(class_ref, field_name, field)
    self.reason = reason

  def __str__(self):
    return 'In {}, {} field is malformed: {}'.format(
        self.class_name, self.field_name, self.reason)


class ValidatingType(metaclass=abc.ABCMeta):
  """A base wrapper type that validates the input against a limited range.

  Subclasses must implement a static validate() method that takes a value and
  raises TypeError if the input type is wrong or ValueError if it fails
  validation, and a static name() method returning a human-readable name for
  the type.
  """

  @staticmethod
  @abc.abstractmethod
  def validate(value: Any) -> None:
    pass

  @staticmethod
  @abc.abstractmethod
  def name() -> str:
    pass


class PositiveInteger(ValidatingType, int):
  """A wrapper that can be used in Field() to require an integer above zero."""

  @staticmethod
  def name() -> str:
    return 'positive integer'

  @staticmethod
  def validate(value):
    # YAML gives us bools for "yes" and "true", and bool is a subclass of int.
    if type(value) is not int:
      raise TypeError()
    if value <= 0:
      raise ValueError('{} is not greater than zero'.format(value))


# For a Field with type=str, FieldType is str.
FieldType = TypeVar('FieldType')

class Field(Generic[FieldType]):
  """A container for metadata about individual config fields."""

  def __init__(self,
               type: Optional[Type[FieldType]],
               required: bool = False,
               default: Optional[FieldType] = None) -> None:
    """
    Args:
        type (class): The required type for values of this field.
        required (bool): True if this field is required on input.
        default: The default value if the field is not specified.
    """
    self.type: Optional[Type] = type
    self.required: bool = required
    self.default: Optional[FieldType] = default

  def get_type_name(self) -> str:
    """Get a human-readable string for the name of self.type."""

    if self.type is None:
      # Only used for UnrecognizedField errors.
      return 'None'
    if self.type is str:
      return 'string'
    if self.type is bool:
      return 'boolean (true or false)'
    if issubclass(self.type, ValidatingType):
      return self.type.name()
    return self.type.__name__

  def cast(self) -> FieldType:
    """Pretend to be the field's value type, for mypy's sake.

    At the class level, config fields are Field instances.  The Base
    constructor replaces them at the instance level with actual values.  This
    returns self unchanged, but typed as FieldType, so that mypy sees
    instance properties as values instead of Fields.
    """
    return cast(FieldType, self)


class Base(object):
  """A base class for config objects.

  This will handle all validation, type-checking, defaults, and extraction of
  values from an input dictionary.

  Subclasses must define class-level Field objects defining their fields.
  The base class does the rest.
  """

  def __init__(self, dictionary: Dict[str, Any]) -> None:
    """Ingests, type-checks, and validates the input dictionary."""

    config_fields = self.get_fields()

    for key, value in dictionary.items():
      field = config_fields.get(key)
      if not field:
        raise UnrecognizedField(self.__class__, key, Field(None))

      setattr(self, key, self._check_and_convert_type(field, key, value))

    for key, field in config_fields.items():
      if key in dictionary:
        continue
      if field.required:
        raise MissingRequiredField(self.__class__, key, field)
      setattr(self, key, field.default)

  @classmethod
  def get_fields(cls) -> Dict[str, Field]:
    """Collect all config fields for this type, including inherited ones."""

    config_fields: Dict[str, Field] = {}
    for klass in reversed(cls.__mro__):
      for key, field in vars(klass).items():
        if isinstance(field, Field):
          config_fields[key] = field
    return config_fields

  def _check_and_convert_type(self,
                              field: Field,
                              key: str,
                              value: Any) -> Any:
    """Check the type of |value| against |field| and convert it as necessary.

    Automatic type coercion is avoided.  We wouldn't want a string containing
    the word "False" coerced to boolean True.
    """

    assert field.type is not None, 'No type info for Field {}'.format(key)

    # Validating types must be checked before int, since they may also
    # inherit from int.
    if issubclass(field.type, ValidatingType):
      try:
        field.type.validate(value)
      except TypeError:
        raise WrongType(self.__class__, key, field) from None
      except ValueError as e:
        raise MalformedField(self.__class__, key, field, str(e)) from None
      return value

    # Bucket names and keys like "2024" or "true" come out of the YAML parser
    # as ints and bools.  Those are still valid strings.
    if field.type is str:
      if isinstance(value, (bool, float, int, str)):
        return str(value)
      raise WrongType(self.__class__, key, field)

    if field.type is int and isinstance(value, bool):
      raise WrongType(self.__class__, key, field)

    if not isinstance(value, field.type):
      raise WrongType(self.__class__, key, field)
    return value
