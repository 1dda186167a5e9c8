from __future__ import annotations

import secrets
from dataclasses import dataclass

from petal_economy.core.checksum import checksum, verify

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CHECKSUM_LENGTH = 2


@dataclass(frozen=True, slots=True)
class GeneratedCode:
    code: str
    checksum: str


def generate_code(prefix: str = "", total_length: int = 8) -> GeneratedCode:
    """Builds `prefix + random + checksum`; `total_length` excludes the checksum."""
    if any(char not in ALPHABET for char in prefix):
        raise ValueError("prefix must use uppercase letters and digits only")
    random_length = total_length - len(prefix)
    if random_length < 0:
        raise ValueError("total_length must not be shorter than prefix")
    base_code = prefix + "".join(secrets.choice(ALPHABET) for _ in range(random_length))
    code_checksum = checksum(base_code)
    return GeneratedCode(code=base_code + code_checksum, checksum=code_checksum)


def validate_code(code: str) -> bool:
    if len(code) < CHECKSUM_LENGTH + 1:
        return False
    return verify(code[:-CHECKSUM_LENGTH], code[-CHECKSUM_LENGTH:])


def normalize_code(raw_code: str) -> str:
    return raw_code.strip().upper()
