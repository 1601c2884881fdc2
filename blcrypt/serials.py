"""
Locate item serials inside a loaded save document and write edits back.

Paths use dotted keys and bracketed list indices, e.g. ``player.inventory.weapons[0]``.
They are only meaningful for the tree they were produced from.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Dict, List, Mapping, Union

from .document import TaggedScalar
from .items import CONFIDENCE_NONE, DecodedItem, decode_item_serial, encode_item_serial
from .main import blcrypt

DECODED_ITEMS_KEY = "_DECODED_ITEMS"

_PATH_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


def _is_serial(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(blcrypt.SERIAL_MARKER)


def _visit(value: Any, path: str, found: Dict[str, DecodedItem]) -> None:
    match value:
        case str() if _is_serial(value):
            decoded = decode_item_serial(str(value))
            if decoded.confidence != CONFIDENCE_NONE:
                found[path] = decoded
        case dict() | list():
            _walk(value, path, found)
        case _:
            pass


def _walk(node: Any, path: str, found: Dict[str, DecodedItem]) -> None:
    match node:
        case dict():
            for key, value in node.items():
                _visit(value, f"{path}.{key}" if path else str(key), found)
        case list():
            for index, value in enumerate(node):
                _visit(value, f"{path}[{index}]", found)
        case _:
            pass


def find_serials(tree: Any) -> Dict[str, DecodedItem]:
    found: Dict[str, DecodedItem] = {}
    if isinstance(tree, dict) and DECODED_ITEMS_KEY in tree:
        # the section repeats every original_serial; list the document's own copies only
        tree = {key: value for key, value in tree.items() if key != DECODED_ITEMS_KEY}
    _walk(tree, "", found)
    return found


def split_path(path: str) -> List[Union[str, int]]:
    segments: List[Union[str, int]] = []
    for key, index in _PATH_TOKEN.findall(path):
        segments.append(int(index) if index else key)
    if not segments:
        raise ValueError(f"Empty document path {path!r}")
    return segments


def _dict_key(container: Mapping, segment: str) -> Any:
    if segment in container:
        return segment
    # non-string keys (ints, bools) were rendered with str() when the path was built
    for key in container:
        if str(key) == segment:
            return key
    raise KeyError(segment)


def _step(container: Any, segment: Union[str, int]) -> Any:
    if isinstance(segment, int):
        return segment
    return _dict_key(container, segment)


def set_path_value(tree: Any, path: str, value: str) -> None:
    segments = split_path(path)
    current = tree
    for segment in segments[:-1]:
        current = current[_step(current, segment)]
    last = _step(current, segments[-1])
    existing = current[last]
    if isinstance(existing, TaggedScalar):
        value = existing.retag(value)
    current[last] = value


def apply_serial_edits(tree: Any, edits: Mapping[str, DecodedItem]) -> Any:
    for path, item in edits.items():
        set_path_value(tree, path, encode_item_serial(item))
    return tree


def insert_decoded_items(tree: Dict[str, Any], decoded: Mapping[str, DecodedItem]) -> Dict[str, Any]:
    if not isinstance(tree, dict):
        raise TypeError(f"Document root must be a mapping, not {type(tree).__name__}")
    result = copy.copy(tree)
    result[DECODED_ITEMS_KEY] = {path: item.to_record() for path, item in decoded.items()}
    return result


def extract_and_encode_serials(tree: Dict[str, Any]) -> Dict[str, Any]:
    result = copy.copy(tree)
    if not isinstance(result, dict):
        return result
    section = result.pop(DECODED_ITEMS_KEY, None)
    if not section:
        return result
    edits = {path: DecodedItem.from_record(record) for path, record in section.items()}
    return apply_serial_edits(result, edits)
