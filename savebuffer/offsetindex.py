import logging

import numpy as np

from .exceptions import NotFound, MalformedError

logger = logging.getLogger(__name__)

HEADER_LENGTH = 12
RECORD_LENGTH = 8

class OffsetIndex:
  """Represents a read-only checksum->offset dictionary."""
  __slots__ = ( "_offsets", )

  def __init__(self, data):
    """
    data: dict (checksum -> offset) or a bytes-like save
      buffer to index.
    """
    if isinstance(data, dict):
      self._offsets = { int(k): int(v) for k, v in data.items() }
    elif isinstance(data, (bytes, bytearray, memoryview)):
      self._offsets = self.buf2dict(data)
    else:
      raise TypeError(
        f"data must be a dict or a bytes-like buffer. Got: {type(data)}"
      )

  @staticmethod
  def checksum_column(buf):
    """
    Returns a numpy view of the checksum word of every record.

    The stream ends at the last position that still holds a
    whole checksum word, so a final record may be missing some
    or all of its payload.
    """
    nbytes = len(buf) - HEADER_LENGTH
    if nbytes < 4:
      return np.zeros((0,), dtype="<u4")

    N = (nbytes - 4) // RECORD_LENGTH + 1
    return np.ndarray(
      shape=(N,), dtype="<u4", buffer=buf,
      offset=HEADER_LENGTH, strides=(RECORD_LENGTH,)
    )

  @staticmethod
  def buf2dict(buf):
    """
    Scan the record stream once. When a checksum occurs
    more than once, the earliest offset wins.
    """
    checksums = OffsetIndex.checksum_column(buf)
    labels, first = np.unique(checksums, return_index=True)
    offsets = HEADER_LENGTH + first.astype(np.int64) * RECORD_LENGTH

    slack = (len(buf) - HEADER_LENGTH) % RECORD_LENGTH
    if len(buf) > HEADER_LENGTH and slack:
      logger.warning("Ignoring %d trailing bytes after the last whole record.", slack)

    logger.debug(
      "Indexed %d records, %d distinct checksums.",
      len(checksums), len(labels)
    )
    return dict(zip(labels.tolist(), offsets.tolist()))

  def __len__(self):
    """Returns number of keys."""
    return len(self._offsets)

  def __iter__(self):
    yield from self.keys()

  def keys(self):
    yield from self._offsets.keys()

  def values(self):
    yield from self._offsets.values()

  def items(self):
    yield from self._offsets.items()

  def get(self, label, *args, **kwargs):
    if label in self._offsets:
      return self._offsets[label]

    try:
      return args[0]
    except IndexError:
      return kwargs.get("default")

  def __contains__(self, label):
    return label in self._offsets

  def __getitem__(self, label):
    try:
      return self._offsets[label]
    except KeyError:
      raise NotFound("{} was not found.".format(label))

  def todict(self):
    return dict(self._offsets)

  def validate(self, buf):
    """
    Confirm every offset is a record boundary inside buf
    which actually holds its checksum.
    """
    column = OffsetIndex.checksum_column(buf)
    labels, first = np.unique(column, return_index=True)
    first = dict(zip(labels.tolist(), first.tolist()))

    for label, offset in self.items():
      i, rem = divmod(offset - HEADER_LENGTH, RECORD_LENGTH)
      if offset < HEADER_LENGTH or rem != 0 or i >= len(column):
        raise MalformedError(f"Offset {offset} of {label} is not a record boundary.")
      if column[i] != label:
        raise MalformedError(
          f"Checksum mismatch at offset {offset}. Expected: {label} Got: {column[i]}"
        )
      if first[label] != i:
        raise MalformedError(f"Offset {offset} is not the first occurrence of {label}.")

    return True

  def __repr__(self):
    return str(self.todict())
