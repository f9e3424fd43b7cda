import json
import re
import uuid
from datetime import datetime

from app.lib.logger import logger


def is_json(data):
    try:
        json.loads(data)
        return True
    except (TypeError, json.JSONDecodeError):
        return False


def load_json(data, default=None):
    """Decode a JSON text column, falling back to ``default`` for empty or broken values."""
    if data is None or data == "":
        return default
    if not isinstance(data, str):
        return data
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        logger.warning(f"Invalid JSON column value: {data[:100]}")
        return default


def dump_json(data):
    if data is None:
        return None
    return json.dumps(data, ensure_ascii=False, default=str)


def generate_order_id(tag="order"):
    raw_id = f"{tag}_{uuid.uuid4().hex[:16]}"
    return re.sub(r"[^a-zA-Z0-9_-]", "", raw_id)


def to_minor_units(amount):
    return int(round(float(amount or 0) * 100))


def from_minor_units(amount):
    return round(float(amount or 0) / 100, 2)


def parse_date(date_str):
    """
    Parse date string to datetime object.
    Accepts the usual API formats and falls back to dateutil.

    :param date_str: date string
    :return: datetime object or None
    """
    if not date_str:
        return None

    date_formats = [
        "%Y-%m-%d %H:%M:%S",  # 2024-03-21 14:30:00
        "%Y-%m-%d %H:%M",  # 2024-03-21 14:30
        "%Y-%m-%d",  # 2024-03-21
        "%d/%m/%Y %H:%M:%S",  # 21/03/2024 14:30:00
        "%d/%m/%Y",  # 21/03/2024
        "%Y-%m-%dT%H:%M:%SZ",  # 2024-03-21T14:30:00Z
        "%Y-%m-%dT%H:%M:%S.%fZ",  # 2024-03-21T14:30:00.123Z
    ]

    for date_format in date_formats:
        try:
            return datetime.strptime(date_str, date_format)
        except ValueError:
            continue

    try:
        from dateutil import parser

        return parser.parse(date_str)
    except (ValueError, OverflowError):
        logger.error(f"Cannot parse date: {date_str}")
        return None
