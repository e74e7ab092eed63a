"""YAML serialization of the persisted bookmark collection."""

from typing import List

import yaml
from pydantic import ValidationError

from ..models.bookmark import Bookmark


class YAMLError(Exception):
    """YAML processing error."""

    pass


def serialize_bookmarks(bookmarks: List[Bookmark]) -> bytes:
    """Serialize a bookmark collection to a UTF-8 YAML sequence.

    Args:
        bookmarks: Bookmarks in persisted order

    Returns:
        Encoded YAML document

    Raises:
        YAMLError: If serialization fails
    """
    try:
        data = [bookmark.model_dump(mode="json") for bookmark in bookmarks]

        yaml_str = yaml.safe_dump(
            data,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )

        return yaml_str.encode("utf-8")

    except Exception as e:
        raise YAMLError(f"Failed to serialize bookmarks: {e}") from e


def deserialize_bookmarks(raw: bytes) -> List[Bookmark]:
    """Deserialize a bookmark collection from YAML bytes.

    An empty document is an empty collection.

    Args:
        raw: Encoded YAML document

    Returns:
        Bookmarks in persisted order

    Raises:
        YAMLError: If the document is not a valid bookmark sequence
    """
    try:
        data = yaml.safe_load(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise YAMLError(f"Collection is not valid UTF-8: {e}") from e
    except yaml.YAMLError as e:
        raise YAMLError(f"Invalid YAML format: {e}") from e

    if data is None:
        return []

    if not isinstance(data, list):
        raise YAMLError(f"Expected a sequence of bookmarks, got {type(data).__name__}")

    try:
        return [Bookmark(**item) for item in data]
    except (TypeError, ValidationError) as e:
        raise YAMLError(f"Failed to deserialize bookmark: {e}") from e
