"""
Typed, in-place access to flat record-stream save files.

A save file is a 12 byte header followed by 8 byte records, each a
CRC-32 checksum of a field name and a 32-bit payload. Nothing in the
file says how long a field is: arrays and strings are runs of records
that repeat the same checksum. SaveData indexes the first occurrence
of every checksum and, given a Schema that says what kind each field
is, decodes fields on demand and writes them back in place without
changing the size of the file.

Simple Example:

  from savebuffer import SaveData, Schema

  schema = Schema({ "GodTree_Finish": "bool", "PlayerPos": "vector3f" })
  sav = SaveData.read("game_data.sav", schema=schema)

  print(sav["GodTree_Finish"])
  >>> False

  sav["GodTree_Finish"] = True
  sav.write("game_data.sav")
"""

from .savedata import SaveData, MARKER
from .offsetindex import OffsetIndex, HEADER_LENGTH, RECORD_LENGTH
from .schema import Kind, Schema, hash_of
from .exceptions import *
