"""Helper utilities shared across analyzer components."""

from .checksum import load_checksums, save_checksums, sha256_of_file, verify_checksums
from .json_extract import parse_json_object, safe_float

__all__ = [
    "load_checksums",
    "parse_json_object",
    "safe_float",
    "save_checksums",
    "sha256_of_file",
    "verify_checksums",
]
