from .ids import new_file_id, new_gist_id, new_uuid
from .lang import PLAIN_TEXT, guess_language
from .time import (
    is_fresh,
    normalize_dt,
    normalize_stamp,
    now_stamp,
    now_utc,
    parse_rfc3339,
    to_rfc3339,
)

__all__ = [
    "new_uuid",
    "new_gist_id",
    "new_file_id",
    "PLAIN_TEXT",
    "guess_language",
    "now_utc",
    "now_stamp",
    "parse_rfc3339",
    "to_rfc3339",
    "normalize_stamp",
    "normalize_dt",
    "is_fresh",
]
