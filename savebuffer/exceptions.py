class SaveDataError(Exception):
  """
  Base class for every error raised by savebuffer.
  """
  pass

class NotFound(SaveDataError, KeyError):
  """
  The checksum does not occur anywhere in the record stream.
  """
  pass

class TypeMismatch(SaveDataError, TypeError):
  """
  The value written does not match the scalar type of the field's kind.
  """
  pass

class LengthMismatch(SaveDataError, ValueError):
  """
  Raised when a sequence's element count differs from the length of
  the run it would be written into.
  """
  pass

class UnsupportedOperation(SaveDataError, ValueError):
  """
  Raised when attempting to write a kind which cannot be 
  encoded in place (strings and unknown kinds).
  """
  pass

class MalformedError(SaveDataError, ValueError):
  """
  The buffer cannot be parsed as save data.
  """
  pass

class TruncatedError(MalformedError):
  """
  A read or write would run past the end of the buffer.
  """
  pass

class IoFailure(SaveDataError, OSError):
  """
  Reading or writing a save file failed.
  """
  pass
