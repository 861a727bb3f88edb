"""
Decoding and in-place encoding of a single field.

A field is addressed by the offset of the first record of its run.
Fields never store their own length: a run is every consecutive
record that repeats the field's checksum, so both directions start
by scanning forward from the offset. Encoding only ever overwrites
the payload words of that run, never a checksum, so the buffer
length and the offset index stay valid after a write.
"""
import logging
import numbers

import numpy as np

from .exceptions import (
  LengthMismatch, MalformedError,
  TruncatedError, TypeMismatch, UnsupportedOperation
)
from .lib import (
  read_u32, read_i32, read_f32,
  write_u32, write_i32, write_f32, sip, F32
)
from .offsetindex import RECORD_LENGTH
from .schema import Kind

logger = logging.getLogger(__name__)

S32_MIN = -2**31
S32_MAX = 2**31 - 1

def run_length(buf, offset, checksum):
  """Number of consecutive records starting at offset that carry checksum."""
  n = 0
  while offset + 4 <= len(buf) and read_u32(buf, offset) == checksum:
    n += 1
    offset += RECORD_LENGTH
  return n

def run_payloads(buf, offset, checksum):
  """
  Returns an Nx2 uint32 view (checksum, payload) over the
  run starting at offset. The view is writable if buf is.
  """
  N = run_length(buf, offset, checksum)
  end = offset + N * RECORD_LENGTH
  if end > len(buf):
    raise TruncatedError(
      f"Run of {checksum} at offset {offset} is cut off. "
      f"Needs {end} bytes, buffer length: {len(buf)}"
    )
  if N == 0:
    return np.zeros((0, 2), dtype="<u4")
  records = np.frombuffer(buf, dtype="<u4", count=N * 2, offset=offset)
  return records.reshape((N, 2))

def read_string(buf, offset, checksum, size):
  """
  Decode one fixed size string beginning at offset.

  Consumes records while the checksum repeats until size
  payload bytes have been read. Every NUL byte is dropped,
  including ones in the middle of the run.

  Returns: (string or None if no string starts here, next offset)
  """
  if offset + RECORD_LENGTH > len(buf) or read_u32(buf, offset) != checksum:
    return None, offset

  out = bytearray()
  while (
    offset + RECORD_LENGTH <= len(buf)
    and read_u32(buf, offset) == checksum
    and len(out) < size
  ):
    out += buf[offset+4:offset+RECORD_LENGTH]
    offset += RECORD_LENGTH

  out = bytes(out).replace(b"\x00", b"")
  try:
    return out.decode("utf8"), offset
  except UnicodeDecodeError as err:
    raise MalformedError(f"String {checksum} is not valid UTF-8: {err}") from err

def decode_bool(buf, checksum, offset, kind):
  return read_u32(buf, offset + 4) != 0

def decode_s32(buf, checksum, offset, kind):
  return read_i32(buf, offset + 4)

def decode_f32(buf, checksum, offset, kind):
  return read_f32(buf, offset + 4)

def decode_bool_array(buf, checksum, offset, kind):
  return (run_payloads(buf, offset, checksum)[:,1] != 0).tolist()

def decode_s32_array(buf, checksum, offset, kind):
  return run_payloads(buf, offset, checksum)[:,1].view("<i4").tolist()

def decode_f32_array(buf, checksum, offset, kind):
  values = run_payloads(buf, offset, checksum)[:,1].view("<f4").tolist()
  if kind in (Kind.VECTOR2F_ARRAY, Kind.VECTOR3F_ARRAY):
    width = kind.components
    return [
      tuple(block) for block in sip(values, width) if len(block) == width
    ]
  return values

def decode_string(buf, checksum, offset, kind):
  value, _ = read_string(buf, offset, checksum, kind.string_size)
  if value is None:
    return ""
  return value

def decode_string_array(buf, checksum, offset, kind):
  out = []
  while True:
    value, offset = read_string(buf, offset, checksum, kind.string_size)
    if value is None:
      return out
    out.append(value)

def decode_unknown(buf, checksum, offset, kind):
  return None

DECODERS = {
  Kind.BOOL: decode_bool,
  Kind.BOOL_ARRAY: decode_bool_array,
  Kind.F32: decode_f32,
  Kind.F32_ARRAY: decode_f32_array,
  Kind.S32: decode_s32,
  Kind.S32_ARRAY: decode_s32_array,
  Kind.STRING: decode_string,
  Kind.STRING256: decode_string,
  Kind.STRING256_ARRAY: decode_string_array,
  Kind.STRING64: decode_string,
  Kind.STRING64_ARRAY: decode_string_array,
  Kind.VECTOR2F: decode_f32_array,
  Kind.VECTOR2F_ARRAY: decode_f32_array,
  Kind.VECTOR3F: decode_f32_array,
  Kind.VECTOR3F_ARRAY: decode_f32_array,
  Kind.VECTOR4F: decode_f32_array,
  Kind.UNKNOWN: decode_unknown,
}

def decode(buf, checksum, offset, kind):
  """
  Decode the field whose run begins at offset.

  Returns: bool, int, float, str, list, or None for Kind.UNKNOWN.
  Vector array kinds are returned as a list of tuples.
  """
  return DECODERS[kind](buf, checksum, offset, kind)

def as_bool(value):
  if not isinstance(value, (bool, np.bool_)):
    raise TypeMismatch(f"Expected a boolean. Got: {type(value)}")
  return int(bool(value))

def as_s32(value):
  if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Integral):
    raise TypeMismatch(f"Expected a 32-bit integer. Got: {type(value)}")
  value = int(value)
  if not (S32_MIN <= value <= S32_MAX):
    raise TypeMismatch(f"{value} does not fit in a signed 32-bit integer.")
  return value

def as_f32(value):
  if isinstance(value, (bool, np.bool_)) or not isinstance(value, numbers.Real):
    raise TypeMismatch(f"Expected a float. Got: {type(value)}")
  try:
    value = float(value)
    F32.pack(value)
  except OverflowError:
    raise TypeMismatch(f"{value} is out of range for a 32-bit float.")
  return value

def as_sequence(value, description):
  if isinstance(value, np.ndarray):
    value = value.tolist()
  if isinstance(value, (str, bytes, bytearray, dict)) or not isinstance(value, (list, tuple)):
    raise TypeMismatch(f"Expected {description}. Got: {type(value)}")
  return value

def check_length(expected, got, description):
  if expected != got:
    raise LengthMismatch(
      f"Expected {description} of length {expected}, got length {got}."
    )

def encode_bool(buf, checksum, offset, kind, value):
  write_u32(buf, offset + 4, as_bool(value))

def encode_s32(buf, checksum, offset, kind, value):
  write_i32(buf, offset + 4, as_s32(value))

def encode_f32(buf, checksum, offset, kind, value):
  write_f32(buf, offset + 4, as_f32(value))

def write_payloads(buf, checksum, offset, payloads, description):
  records = run_payloads(buf, offset, checksum)
  check_length(len(records), len(payloads), description)
  records[:,1] = payloads

def encode_bool_array(buf, checksum, offset, kind, value):
  value = as_sequence(value, "[bool]")
  payloads = np.array([ as_bool(v) for v in value ], dtype="<u4")
  write_payloads(buf, checksum, offset, payloads, "[bool]")

def encode_s32_array(buf, checksum, offset, kind, value):
  value = as_sequence(value, "[s32]")
  payloads = np.array([ as_s32(v) for v in value ], dtype="<i4")
  write_payloads(buf, checksum, offset, payloads.view("<u4"), "[s32]")

def encode_f32_array(buf, checksum, offset, kind, value):
  width = kind.components
  if kind in (Kind.VECTOR2F_ARRAY, Kind.VECTOR3F_ARRAY):
    description = f"[[f32; {width}]]"
    value = as_sequence(value, description)
    if all( isinstance(v, numbers.Real) for v in value ):
      # flat floats, checked only against the run length
      flat = value
    else:
      flat = []
      for vec in value:
        vec = as_sequence(vec, f"[f32; {width}]")
        check_length(width, len(vec), f"[f32; {width}]")
        flat.extend(vec)
  else:
    description = "[f32]" if width is None else f"[f32; {width}]"
    flat = as_sequence(value, description)
    if width is not None:
      check_length(width, len(flat), description)

  payloads = np.array([ as_f32(v) for v in flat ], dtype="<f4")
  write_payloads(buf, checksum, offset, payloads.view("<u4"), description)

def encode_string(buf, checksum, offset, kind, value):
  raise UnsupportedOperation(f"Writing {kind} fields is not supported.")

def encode_unknown(buf, checksum, offset, kind, value):
  raise UnsupportedOperation(f"Cannot write {checksum}: its kind is unknown.")

ENCODERS = {
  Kind.BOOL: encode_bool,
  Kind.BOOL_ARRAY: encode_bool_array,
  Kind.F32: encode_f32,
  Kind.F32_ARRAY: encode_f32_array,
  Kind.S32: encode_s32,
  Kind.S32_ARRAY: encode_s32_array,
  Kind.STRING: encode_string,
  Kind.STRING256: encode_string,
  Kind.STRING256_ARRAY: encode_string,
  Kind.STRING64: encode_string,
  Kind.STRING64_ARRAY: encode_string,
  Kind.VECTOR2F: encode_f32_array,
  Kind.VECTOR2F_ARRAY: encode_f32_array,
  Kind.VECTOR3F: encode_f32_array,
  Kind.VECTOR3F_ARRAY: encode_f32_array,
  Kind.VECTOR4F: encode_f32_array,
  Kind.UNKNOWN: encode_unknown,
}

def encode(buf, checksum, offset, kind, value):
  """
  Overwrite the field whose run begins at offset with value.

  buf must be writable (e.g. a bytearray). The value is fully
  validated against the run before any byte changes, so on
  error buf is left exactly as it was.
  """
  ENCODERS[kind](buf, checksum, offset, kind, value)
  logger.debug("Wrote %s field %d at offset %d.", kind, checksum, offset)
