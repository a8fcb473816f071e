"""
CRC64 checksum used by JaCoCo to identify class files.

The execution data refers to classes by this id, so a class is only matched
if its bytes are identical to the ones that were loaded during the run.
"""

POLY64REV = 0xD800000000000000

JAVA_8_MAJOR_VERSION = 52
JAVA_9_MAJOR_VERSION = 53


def _build_lookup_table():
    table = []
    for i in range(256):
        value = i
        for _ in range(8):
            if value & 1:
                value = (value >> 1) ^ POLY64REV
            else:
                value >>= 1
        table.append(value)
    return table


LOOKUP_TABLE = _build_lookup_table()


def _update(checksum: int, data: bytes) -> int:
    for byte in data:
        checksum = (checksum >> 8) ^ LOOKUP_TABLE[(checksum ^ byte) & 0xFF]
    return checksum


def checksum(data: bytes) -> int:
    """CRC64 of the given bytes as an unsigned 64-bit value."""
    return _update(0, data)


def class_id(data: bytes) -> int:
    """
    Id of a class file as computed by the coverage agent.

    Java 9 class files are hashed as if they carried the Java 8 major
    version, matching the agent's early Java 9 support.
    """
    if len(data) > 7 and data[6] == 0x00 and data[7] == JAVA_9_MAJOR_VERSION:
        value = _update(0, data[:7])
        value = _update(value, bytes([JAVA_8_MAJOR_VERSION]))
        return _update(value, data[8:])
    return checksum(data)
