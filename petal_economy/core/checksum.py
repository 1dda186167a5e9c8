"""CRC-8 (polynomial 0x07, init 0x00) used to guard redemption codes against typos."""

from __future__ import annotations

CRC8_POLYNOMIAL = 0x07


def _build_table() -> tuple[int, ...]:
    table: list[int] = []
    for byte in range(256):
        crc = byte
        for _ in range(8):
            if crc & 0x80:
                crc = ((crc << 1) ^ CRC8_POLYNOMIAL) & 0xFF
            else:
                crc = (crc << 1) & 0xFF
        table.append(crc)
    return tuple(table)


CRC8_TABLE = _build_table()


def crc8(data: bytes) -> int:
    crc = 0x00
    for byte in data:
        crc = CRC8_TABLE[crc ^ byte]
    return crc


def checksum(data: str) -> str:
    """Returns the checksum of the UTF-8 bytes of `data` as two uppercase hex digits."""
    return f"{crc8(data.encode('utf-8')):02X}"


def verify(data: str, claimed: str) -> bool:
    return checksum(data) == claimed.upper()
