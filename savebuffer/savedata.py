import io
import logging
import numbers

from .exceptions import IoFailure, MalformedError, SaveDataError, TruncatedError
from .lib import toabs, read_u32
from .offsetindex import OffsetIndex, HEADER_LENGTH, RECORD_LENGTH
from .schema import Schema
from . import codec

logger = logging.getLogger(__name__)

MARKER = 0xFFFF

class SaveData:
  """
  Represents a save file as a dictionary of named, typed fields.

  The buffer is kept verbatim. Reading a field decodes it on
  demand and writing a field overwrites its payload in place,
  so tobytes() is identical to the input except for the fields
  that were set.

  Not safe for concurrent use while a set is in progress.
  """
  __slots__ = (
    "buffer", "schema",
    "version", "marker", "reserved",
    "_index",
  )
  def __init__(self, data, schema=None):
    """
    data: bytes-like save contents or a binary file object
    schema: Schema mapping names to checksums and
      checksums to kinds. Without one, every field
      is read as a bool.
    """
    if isinstance(data, io.IOBase):
      data = data.read()

    if isinstance(data, (bytes, bytearray, memoryview)):
      self.buffer = bytearray(data)
    else:
      raise TypeError(
        f"data must be bytes, bytearray, memoryview, or a binary file. Got: {type(data)}"
      )

    self.schema = schema if schema is not None else Schema()

    if len(self.buffer) < HEADER_LENGTH:
      raise TruncatedError(
        f"Save data must be at least {HEADER_LENGTH} bytes. Got: {len(self.buffer)} bytes"
      )

    self.version = read_u32(self.buffer, 0)
    self.marker = read_u32(self.buffer, 4)
    self.reserved = read_u32(self.buffer, 8)

    if self.marker != MARKER:
      logger.warning("Unexpected header marker: 0x%X", self.marker)

    self._index = OffsetIndex(self.buffer)
    logger.debug(
      "Loaded save version %d: %d bytes, %d fields.",
      self.version, len(self.buffer), len(self._index)
    )

  @classmethod
  def read(cls, path, schema=None):
    path = toabs(path)
    try:
      with open(path, "rb") as f:
        data = f.read()
    except OSError as err:
      raise IoFailure(err.errno, f"Unable to read {path}: {err.strerror}") from err

    logger.debug("Read %d bytes from %s", len(data), path)
    return cls(data, schema=schema)

  def write(self, path):
    path = toabs(path)
    try:
      with open(path, "wb") as f:
        f.write(self.buffer)
    except OSError as err:
      raise IoFailure(err.errno, f"Unable to write {path}: {err.strerror}") from err

    logger.debug("Wrote %d bytes to %s", len(self.buffer), path)

  def tobytes(self):
    return bytes(self.buffer)

  @property
  def nbytes(self):
    return len(self.buffer)

  @property
  def header(self):
    """Get the header bytes."""
    return bytes(self.buffer[:HEADER_LENGTH])

  @property
  def index(self):
    return self._index

  def __len__(self):
    """Returns number of distinct checksums."""
    return len(self._index)

  def __iter__(self):
    yield from self.keys()

  def keys(self):
    """Checksums present in the save, in file order."""
    yield from sorted(self._index.keys(), key=self._index.get)

  def items(self):
    """
    Decode every field. A field that fails to decode is
    logged and yielded as None so the rest are still read.
    """
    for checksum in self.keys():
      try:
        value = self.get_by_checksum(checksum)
      except SaveDataError as err:
        logger.warning("Unable to decode %d: %s", checksum, err)
        value = None
      yield (checksum, value)

  def todict(self):
    return { checksum: val for checksum, val in self.items() }

  def checksum(self, key):
    """Resolve a field name or checksum to a checksum."""
    if isinstance(key, str):
      return self.schema.hash_of(key)
    elif isinstance(key, numbers.Integral) and not isinstance(key, bool):
      return int(key)
    raise TypeError(f"key must be a field name or a checksum. Got: {type(key)}")

  def offset(self, key):
    return self._index[self.checksum(key)]

  def kind(self, key):
    return self.schema.kind_of(self.checksum(key))

  def __contains__(self, key):
    return self.checksum(key) in self._index

  def get(self, key):
    return self.get_by_checksum(self.checksum(key))

  def get_by_checksum(self, checksum):
    offset = self._index[checksum]
    kind = self.schema.kind_of(checksum)
    return codec.decode(self.buffer, checksum, offset, kind)

  def __getitem__(self, key):
    return self.get(key)

  def set(self, key, value):
    self.set_by_checksum(self.checksum(key), value)

  def set_by_checksum(self, checksum, value):
    offset = self._index[checksum]
    kind = self.schema.kind_of(checksum)
    codec.encode(self.buffer, checksum, offset, kind, value)

  def __setitem__(self, key, value):
    self.set(key, value)

  def validate(self):
    if self.marker != MARKER:
      raise MalformedError(f"Header marker mismatch. Expected: 0x{MARKER:X} Got: 0x{self.marker:X}")

    self._index.validate(self.buffer)

    slack = (len(self.buffer) - HEADER_LENGTH) % RECORD_LENGTH
    if slack >= 4:
      raise TruncatedError(
        f"The last record is missing its payload. Trailing bytes: {slack}"
      )

    return True

  def __repr__(self):
    return f"SaveData(version={self.version}, nbytes={self.nbytes}, fields={len(self)})"
