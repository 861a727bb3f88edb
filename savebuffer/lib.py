import os.path
import struct

from .exceptions import TruncatedError

COLORS = {
  'RESET': "\033[m",
  'YELLOW': "\033[1;93m",
  'RED': '\033[1;91m',
  'GREEN': '\033[1;92m',
}

U32 = struct.Struct("<I")
I32 = struct.Struct("<i")
F32 = struct.Struct("<f")

def green(text):
  return colorize('green', text)

def yellow(text):
  return colorize('yellow', text)

def red(text):
  return colorize('red', text)

def colorize(color, text):
  color = color.upper()
  return COLORS[color] + text + COLORS['RESET']

def toabs(path):
  path = os.path.expanduser(path)
  return os.path.abspath(path)

def check_bounds(buf, offset, width=4):
  """
  Offsets are derived from file content so they are 
  never trusted. Raises TruncatedError if the word at
  offset would not fit entirely inside buf.
  """
  if offset < 0 or offset + width > len(buf):
    raise TruncatedError(
      f"Cannot access {width} bytes at offset {offset}. Buffer length: {len(buf)}"
    )

def read_u32(buf, offset):
  check_bounds(buf, offset)
  return U32.unpack_from(buf, offset)[0]

def read_i32(buf, offset):
  check_bounds(buf, offset)
  return I32.unpack_from(buf, offset)[0]

def read_f32(buf, offset):
  check_bounds(buf, offset)
  return F32.unpack_from(buf, offset)[0]

def write_u32(buf, offset, value):
  check_bounds(buf, offset)
  U32.pack_into(buf, offset, value)

def write_i32(buf, offset, value):
  check_bounds(buf, offset)
  I32.pack_into(buf, offset, value)

def write_f32(buf, offset, value):
  check_bounds(buf, offset)
  F32.pack_into(buf, offset, value)

def sip(iterable, block_size):
  """Sips a fixed size from the iterable."""
  ct = 0
  block = []
  for x in iterable:
    ct += 1
    block.append(x)
    if ct == block_size:
      yield block
      ct = 0
      block = []

  if len(block) > 0:
    yield block
