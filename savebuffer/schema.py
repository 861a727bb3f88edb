import enum
import json
import logging
import zlib

import numpy as np

from .lib import toabs

logger = logging.getLogger(__name__)

class Kind(enum.IntEnum):
  """Type tag of a field. Supplied by the catalog, never read from a save."""
  BOOL = 0
  BOOL_ARRAY = 1
  F32 = 2
  F32_ARRAY = 3
  S32 = 4
  S32_ARRAY = 5
  STRING = 6
  STRING256 = 7
  STRING256_ARRAY = 8
  STRING64 = 9
  STRING64_ARRAY = 10
  VECTOR2F = 11
  VECTOR2F_ARRAY = 12
  VECTOR3F = 13
  VECTOR3F_ARRAY = 14
  VECTOR4F = 15
  UNKNOWN = 16

  @classmethod
  def from_name(cls, name):
    """Converts a catalog type name like "s32_array" into a Kind."""
    if isinstance(name, Kind):
      return name
    return KIND_NAMES.get(name, Kind.UNKNOWN)

  @property
  def catalog_name(self):
    return CATALOG_NAMES[self]

  @property
  def is_string(self):
    return self in STRING_SIZES

  @property
  def string_size(self):
    """Maximum number of payload bytes a single string may occupy."""
    return STRING_SIZES[self]

  @property
  def components(self):
    """Number of floats per vector, or None if not a vector kind."""
    return COMPONENTS.get(self)

  def __str__(self):
    return self.catalog_name

KIND_NAMES = {
  "bool": Kind.BOOL,
  "bool_array": Kind.BOOL_ARRAY,
  "f32": Kind.F32,
  "f32_array": Kind.F32_ARRAY,
  "s32": Kind.S32,
  "s32_array": Kind.S32_ARRAY,
  "string": Kind.STRING,
  "string256": Kind.STRING256,
  "string256_array": Kind.STRING256_ARRAY,
  "string64": Kind.STRING64,
  "string64_array": Kind.STRING64_ARRAY,
  "vector2f": Kind.VECTOR2F,
  "vector2f_array": Kind.VECTOR2F_ARRAY,
  "vector3f": Kind.VECTOR3F,
  "vector3f_array": Kind.VECTOR3F_ARRAY,
  "vector4f": Kind.VECTOR4F,
}
CATALOG_NAMES = { kind: name for name, kind in KIND_NAMES.items() }
CATALOG_NAMES[Kind.UNKNOWN] = "unknown"

STRING_SIZES = {
  Kind.STRING: 32,
  Kind.STRING64: 64,
  Kind.STRING64_ARRAY: 64,
  Kind.STRING256: 256,
  Kind.STRING256_ARRAY: 256,
}

COMPONENTS = {
  Kind.VECTOR2F: 2,
  Kind.VECTOR2F_ARRAY: 2,
  Kind.VECTOR3F: 3,
  Kind.VECTOR3F_ARRAY: 3,
  Kind.VECTOR4F: 4,
}

# kind reported for checksums the catalog doesn't know about
DEFAULT_KIND = Kind.BOOL

def hash_of(name):
  """CRC-32 (ISO-HDLC) of the UTF-8 encoded field name."""
  if isinstance(name, str):
    name = name.encode("utf8")
  return zlib.crc32(name) & 0xFFFFFFFF

class Schema:
  """
  Immutable catalog of field names and their kinds.

  The catalog is stored as a table sorted by checksum so
  that kind_of is a binary search rather than a dictionary
  held in module state. Construct one per catalog and pass it
  to each SaveData that needs it.

  data: dict of name -> kind (a Kind or catalog type name
    such as "f32_array")
  """
  __slots__ = ( "_checksums", "_kinds", "_names" )

  def __init__(self, data=None):
    data = data or {}
    names = sorted(data.keys())

    checksums = np.fromiter(
      ( hash_of(name) for name in names ),
      count=len(names), dtype=np.uint32
    )
    kinds = np.fromiter(
      ( int(Kind.from_name(data[name])) for name in names ),
      count=len(names), dtype=np.uint8
    )
    order = np.argsort(checksums, kind="stable")

    self._checksums = checksums[order]
    self._kinds = kinds[order]
    self._names = tuple( names[i] for i in order )

    self._checksums.flags.writeable = False
    self._kinds.flags.writeable = False

    dupes = np.flatnonzero(self._checksums[1:] == self._checksums[:-1])
    for i in dupes:
      logger.warning(
        "Checksum collision in catalog: %s and %s both hash to %d",
        self._names[i], self._names[i+1], self._checksums[i]
      )

  @classmethod
  def from_checksums(cls, data):
    """
    Build a nameless catalog from checksum -> kind. Useful when only
    the hashes are known. name_of returns None for every entry.
    """
    schema = cls.__new__(cls)
    checksums = np.fromiter(
      ( int(k) for k in data.keys() ), count=len(data), dtype=np.uint32
    )
    kinds = np.fromiter(
      ( int(Kind.from_name(v)) for v in data.values() ),
      count=len(data), dtype=np.uint8
    )
    order = np.argsort(checksums, kind="stable")
    schema._checksums = checksums[order]
    schema._kinds = kinds[order]
    schema._names = ( None, ) * len(data)
    schema._checksums.flags.writeable = False
    schema._kinds.flags.writeable = False
    return schema

  @classmethod
  def from_json(cls, path):
    """Load a catalog file containing a JSON object of name -> type name."""
    path = toabs(path)
    with open(path, "rt", encoding="utf8") as f:
      data = json.load(f)

    if not isinstance(data, dict):
      raise TypeError(f"Schema file {path} must contain a JSON object. Got: {type(data)}")

    unknown = sorted(set( v for v in data.values() if v not in KIND_NAMES ))
    if unknown:
      logger.warning("Schema %s uses unrecognized kinds: %s", path, unknown)

    logger.debug("Loaded %d names from schema %s", len(data), path)
    return cls(data)

  hash_of = staticmethod(hash_of)

  def __len__(self):
    return len(self._checksums)

  def __iter__(self):
    yield from self.names()

  def __contains__(self, key):
    if isinstance(key, str):
      key = hash_of(key)
    return self.find_index_position(key) is not None

  def find_index_position(self, checksum):
    N = len(self._checksums)
    if N == 0 or not (0 <= checksum <= 0xFFFFFFFF):
      return None

    k = int(np.searchsorted(self._checksums, np.uint32(checksum)))
    if k < N and self._checksums[k] == checksum:
      return k

    return None

  def kind_of(self, checksum):
    pos = self.find_index_position(checksum)
    if pos is None:
      return DEFAULT_KIND
    return Kind(int(self._kinds[pos]))

  def name_of(self, checksum):
    pos = self.find_index_position(checksum)
    if pos is None:
      return None
    return self._names[pos]

  def names(self):
    """Catalogued names in alphabetical order."""
    return sorted( name for name in self._names if name is not None )

  def checksums(self):
    return self._checksums.tolist()

  def __repr__(self):
    return f"Schema({len(self)} fields)"
