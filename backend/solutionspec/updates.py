"""
Suffix-keyed document updates.

Updates arrive as a flat mapping of dotted paths to values. The key suffix
selects the operation:

    {"skills_push": {"id": "returns-ops", "role": "worker"}}
    {"grants_delete": "ecom.session_token"}
    {"handoffs_update": {"id": "support-to-returns", "mechanism": "internal-message"}}
    {"tools_rename": {"from": "lookup", "to": "lookup_client"}}
    {"identity.default_actor_type": "customer"}
    {"tools[0].status": "ready"}

Each update is parsed into a command object. Array commands return a new
list and never modify the one they were given. Items are matched by ``id``,
then ``key``, then ``name``. An indexed key sets a field on one existing
item. Protected arrays can only change through the suffixed or indexed
operations; a direct set on one is logged and ignored.
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .config import ValidatorConfig

logger = logging.getLogger(__name__)


MATCH_FIELDS = ("id", "key", "name")

SUFFIX_PUSH = "_push"
SUFFIX_DELETE = "_delete"
SUFFIX_UPDATE = "_update"
SUFFIX_RENAME = "_rename"

_INDEXED_KEY = re.compile(r"^(.+)\[(\d+)\]\.(.+)$")


def item_identity(item: Any) -> Optional[Tuple[str, Any]]:
    """First of id/key/name present on a mapping item, as ``(field, value)``."""
    if isinstance(item, Mapping):
        for name in MATCH_FIELDS:
            if item.get(name) is not None:
                return name, item[name]
    return None


def find_index(items: Sequence[Any], target: Any) -> Optional[int]:
    """
    Index of the item ``target`` refers to.

    ``target`` may be a mapping (matched on its own id/key/name) or a bare
    identifier, which is tried against id, then key, then name. Scalar items
    match by equality.
    """
    identity = item_identity(target)
    if identity is not None:
        name, value = identity
        for i, item in enumerate(items):
            if isinstance(item, Mapping) and item.get(name) == value:
                return i
        return None

    for name in MATCH_FIELDS:
        for i, item in enumerate(items):
            if isinstance(item, Mapping) and item.get(name) == target:
                return i
    for i, item in enumerate(items):
        if not isinstance(item, Mapping) and item == target:
            return i
    return None


def _merged(existing: Any, patch: Any) -> Any:
    if isinstance(existing, Mapping) and isinstance(patch, Mapping):
        return {**existing, **patch}
    return patch


@dataclass(frozen=True)
class Push:
    """Insert ``item``, or merge it into the item it matches."""

    path: str
    item: Any

    def apply_to(self, items: Sequence[Any]) -> List[Any]:
        result = list(items)
        index = find_index(result, self.item)
        if index is None:
            result.append(copy.deepcopy(self.item))
        else:
            result[index] = _merged(result[index], copy.deepcopy(self.item))
        return result


@dataclass(frozen=True)
class Delete:
    """Remove the item matching ``target``."""

    path: str
    target: Any

    def apply_to(self, items: Sequence[Any]) -> List[Any]:
        index = find_index(items, self.target)
        if index is None:
            return list(items)
        return [item for i, item in enumerate(items) if i != index]


@dataclass(frozen=True)
class Update:
    """Merge ``patch`` into the item it matches; never inserts."""

    path: str
    patch: Mapping[str, Any]

    def apply_to(self, items: Sequence[Any]) -> List[Any]:
        result = list(items)
        index = find_index(result, self.patch)
        if index is not None:
            result[index] = _merged(result[index], copy.deepcopy(dict(self.patch)))
        return result


@dataclass(frozen=True)
class Rename:
    """Rename the item whose ``name`` is ``old`` to ``new``."""

    path: str
    old: str
    new: str

    def apply_to(self, items: Sequence[Any]) -> List[Any]:
        result = list(items)
        for i, item in enumerate(result):
            if isinstance(item, Mapping) and item.get("name") == self.old:
                result[i] = {**item, "name": self.new}
                break
        return result


@dataclass(frozen=True)
class SetItem:
    """Set ``field`` on the item at ``index``; out-of-range indexes are ignored."""

    path: str
    index: int
    field: str
    value: Any

    def apply_to(self, items: Sequence[Any]) -> List[Any]:
        result = list(items)
        if self.index < len(result) and isinstance(result[self.index], dict):
            item = copy.deepcopy(result[self.index])
            set_path(item, self.field, copy.deepcopy(self.value))
            result[self.index] = item
        return result


@dataclass(frozen=True)
class SetValue:
    """Set the value at a dotted path."""

    path: str
    value: Any


ArrayCommand = Union[Push, Delete, Update, Rename, SetItem]
UpdateCommand = Union[Push, Delete, Update, Rename, SetItem, SetValue]


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else [value]


def parse_updates(updates: Mapping[str, Any]) -> List[UpdateCommand]:
    """
    Turn an update mapping into commands, in mapping order.

    A list value under a suffixed key yields one command per element. A key
    of the form ``path[index].field`` yields a SetItem.

    Args:
        updates: Dotted-path keys, optionally suffixed, to values.

    Returns:
        List of update commands.

    Raises:
        ValueError: If a ``_rename`` value lacks ``from`` or ``to``, or an
            ``_update`` value is not a mapping.
    """
    commands: List[UpdateCommand] = []

    for key, value in updates.items():
        if key.endswith(SUFFIX_PUSH):
            path = key[: -len(SUFFIX_PUSH)]
            commands.extend(Push(path, item) for item in _as_list(value))
        elif key.endswith(SUFFIX_DELETE):
            path = key[: -len(SUFFIX_DELETE)]
            commands.extend(Delete(path, target) for target in _as_list(value))
        elif key.endswith(SUFFIX_UPDATE):
            path = key[: -len(SUFFIX_UPDATE)]
            for patch in _as_list(value):
                if not isinstance(patch, Mapping):
                    raise ValueError(f"{key}: expected a mapping, got {type(patch).__name__}")
                commands.append(Update(path, patch))
        elif key.endswith(SUFFIX_RENAME):
            path = key[: -len(SUFFIX_RENAME)]
            for rename in _as_list(value):
                if not isinstance(rename, Mapping) or "from" not in rename or "to" not in rename:
                    raise ValueError(f"{key}: expected {{from, to}}")
                commands.append(Rename(path, rename["from"], rename["to"]))
        else:
            indexed = _INDEXED_KEY.match(key)
            if indexed:
                path, index, field = indexed.groups()
                commands.append(SetItem(path, int(index), field, value))
            else:
                commands.append(SetValue(key, value))

    return commands


def get_path(document: Mapping[str, Any], path: str) -> Any:
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def set_path(document: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = document
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def apply_updates(
    document: Mapping[str, Any],
    updates: Union[Mapping[str, Any], Iterable[UpdateCommand]],
    protected_arrays: Optional[Sequence[str]] = None,
    config: Optional[ValidatorConfig] = None,
    logger: Optional[logging.Logger] = None,
) -> Dict[str, Any]:
    """
    Apply updates to a copy of ``document``.

    Args:
        document: Skill or solution document. Never modified.
        updates: Update mapping or already parsed commands.
        protected_arrays: Dotted paths closed to direct sets; defaults to
            ``config.protected_arrays``.
        config: Optional validator configuration.
        logger: Logger for ignored updates.

    Returns:
        The updated copy.
    """
    log = logger or logging.getLogger(__name__)
    if protected_arrays is None:
        protected_arrays = (config or ValidatorConfig()).protected_arrays
    protected = set(protected_arrays)
    commands = parse_updates(updates) if isinstance(updates, Mapping) else list(updates)

    result = copy.deepcopy(dict(document))

    for command in commands:
        if isinstance(command, SetValue):
            if command.path in protected:
                log.warning(
                    "Ignoring direct set of protected array %r; use %s_push, %s_delete, "
                    "%s_update or %s_rename",
                    command.path, command.path, command.path, command.path, command.path,
                )
                continue
            set_path(result, command.path, copy.deepcopy(command.value))
            continue

        current = get_path(result, command.path)
        if current is None:
            if not isinstance(command, Push):
                continue
            current = []
        elif not isinstance(current, list):
            log.warning("Ignoring %s on %r: not an array", type(command).__name__, command.path)
            continue
        set_path(result, command.path, command.apply_to(current))

    return result
