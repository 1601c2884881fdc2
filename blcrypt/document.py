"""YAML load/dump for save documents, keeping the game's custom ``!tags`` intact."""

from __future__ import annotations

import re
from typing import Any

import yaml


class TaggedScalar(str):
    def __new__(cls, value: str, tag: str):
        obj = super().__new__(cls, value)
        obj.tag = tag
        return obj

    def retag(self, value: str) -> "TaggedScalar":
        return TaggedScalar(value, self.tag)


class TaggedSequence(list):
    def __init__(self, items=(), tag: str = "!"):
        super().__init__(items)
        self.tag = tag


class TaggedMapping(dict):
    def __init__(self, items=(), tag: str = "!"):
        super().__init__(items)
        self.tag = tag


class SaveLoader(yaml.SafeLoader):
    pass


class SaveDumper(yaml.SafeDumper):
    def ignore_aliases(self, data: Any) -> bool:
        return True


def _construct_tagged(loader: SaveLoader, tag_suffix: str, node: yaml.Node):
    tag = "!" + tag_suffix
    if isinstance(node, yaml.ScalarNode):
        return TaggedScalar(loader.construct_scalar(node), tag)
    if isinstance(node, yaml.SequenceNode):
        return TaggedSequence(loader.construct_sequence(node, deep=True), tag)
    return TaggedMapping(loader.construct_mapping(node, deep=True), tag)


# YAML 1.1 forms (yes/off booleans, leading-zero octal, base-60, "_" separators) stay plain
# strings so untouched save values are written back exactly as read.
_BOOL_TAG = "tag:yaml.org,2002:bool"
_INT_TAG = "tag:yaml.org,2002:int"
_FLOAT_TAG = "tag:yaml.org,2002:float"

_CORE_RESOLVERS = (
    (_BOOL_TAG, re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"), list("tTfF")),
    (_INT_TAG, re.compile(r"^(?:[-+]?(?:0|[1-9][0-9]*)|0x[0-9a-fA-F]+|0o[0-7]+)$"), list("-+0123456789")),
    (
        _FLOAT_TAG,
        re.compile(
            r"^(?:[-+]?(?:(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?|[0-9]+[eE][-+]?[0-9]+)"
            r"|[-+]?\.(?:inf|Inf|INF)|\.(?:nan|NaN|NAN))$"
        ),
        list("-+0123456789."),
    ),
)


def _use_core_resolvers(cls) -> None:
    replaced = {tag for tag, _regexp, _first in _CORE_RESOLVERS}
    cls.yaml_implicit_resolvers = {
        first: [(tag, regexp) for tag, regexp in entries if tag not in replaced]
        for first, entries in yaml.SafeLoader.yaml_implicit_resolvers.items()
    }
    for tag, regexp, first in _CORE_RESOLVERS:
        cls.add_implicit_resolver(tag, regexp, first)


# the dumper has to agree with the loader, otherwise "yes" would be emitted quoted
_use_core_resolvers(SaveLoader)
_use_core_resolvers(SaveDumper)

SaveLoader.add_multi_constructor("!", _construct_tagged)
SaveDumper.add_representer(
    TaggedScalar, lambda dumper, data: dumper.represent_scalar(data.tag, str(data))
)
SaveDumper.add_representer(
    TaggedSequence, lambda dumper, data: dumper.represent_sequence(data.tag, list(data))
)
SaveDumper.add_representer(
    TaggedMapping, lambda dumper, data: dumper.represent_mapping(data.tag, dict(data))
)


def load_yaml(text: str) -> Any:
    return yaml.load(text, Loader=SaveLoader)


def dump_yaml(tree: Any) -> str:
    return yaml.dump(
        tree,
        Dumper=SaveDumper,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
