import construct as c


class SerdeError(c.ConstructError):
    """Base class for everything raised by the serialization helpers."""

    def __init__(self, message="", path=None, position=None):
        super().__init__(message, path=path)
        # Byte offset (binary) or character offset (JSON) where it went wrong
        self.position = position


class EncodeError(SerdeError):
    pass


class DecodeError(SerdeError):
    pass


class UsizeRangeError(EncodeError, ValueError):
    """Value does not fit in the narrow on-wire integer."""

    def __init__(self, value, path=None):
        super().__init__(f"{value!r} does not fit in an unsigned 32-bit integer", path=path)
        self.value = value


class DuplicateKeyError(DecodeError):
    """A pair list for a unique-key map repeats a key."""

    def __init__(self, key, index, path=None):
        super().__init__(f"duplicate map key {key!r} at pair {index}", path=path)
        self.key = key
        self.index = index
