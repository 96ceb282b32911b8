"""
Error tree utilities.

Turns a caught exception into a generic key/value tree, normalizes the tree
into a chain of ErrorRecord nodes and walks that chain to the root cause.

Every step iterates over the cause chain with an explicit loop, so very deep
chains never grow the call stack. The depth guard (MAX_CAUSE_DEPTH) bounds
the work done for malformed or adversarial input.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic_core import to_jsonable_python

from errorwatch.core.errors import MalformedInputError, SerializationError


logger = logging.getLogger(__name__)

MAX_CAUSE_DEPTH = 1000

# The interchange format reserves this character in keys
RESERVED_MARKER = "@"

TYPE_KEY = "type"
MESSAGE_KEY = "message"
CAUSE_KEY = "cause"
ORIGIN_KEY = "originatingComponent"

_TREE_KEYS = frozenset({TYPE_KEY, MESSAGE_KEY, CAUSE_KEY, ORIGIN_KEY})


class ErrorRecord(BaseModel):
    """One node of a normalized cause chain."""

    model_config = ConfigDict(frozen=True)

    type_name: str = ""
    message: str = ""
    origin: str | None = None
    cause: ErrorRecord | None = None


class RootCause(BaseModel):
    """Deepest node of a cause chain plus the last origin seen on the way down."""

    type_name: str = ""
    message: str = ""
    origin_location: str | None = None
    depth: int = 0


# =============================================================================
# Exception -> tree
# =============================================================================


def exception_to_tree(
    exc: BaseException, *, max_depth: int = MAX_CAUSE_DEPTH
) -> dict[str, Any]:
    """
    Serialize an exception and its cause chain into a nested dict.

    Each node carries ``type``, ``message``, ``originatingComponent`` (when one
    can be found), the exception's public attributes and, unless it is the
    root cause, a nested ``cause`` node.

    Args:
        exc: The exception to serialize
        max_depth: Maximum number of exceptions accepted in the chain

    Returns:
        The tree for the outermost exception

    Raises:
        MalformedInputError: If the chain holds more than max_depth exceptions
        SerializationError: If exc is not an exception at all
    """
    if not isinstance(exc, BaseException):
        raise SerializationError(f"Expected an exception, got {type(exc).__name__}")

    chain = _collect_chain(exc, max_depth)

    tree: dict[str, Any] | None = None
    for node_exc in reversed(chain):
        node = _serialize_node(node_exc)
        if tree is not None:
            node[CAUSE_KEY] = tree
        tree = node

    return tree


def _collect_chain(exc: BaseException, max_depth: int) -> list[BaseException]:
    chain: list[BaseException] = []
    seen: set[int] = set()
    current: BaseException | None = exc

    # A repeated exception object ends the chain
    while current is not None and id(current) not in seen:
        if len(chain) >= max_depth:
            raise MalformedInputError(max_depth)
        seen.add(id(current))
        chain.append(current)
        current = _next_cause(current)

    return chain


def _next_cause(exc: BaseException) -> BaseException | None:
    """Explicit ``raise ... from`` wins over implicit context."""
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def _serialize_node(exc: BaseException) -> dict[str, Any]:
    """
    Convert a single exception to a flat tree node.

    A field that cannot be read is left out (or set to None for the message)
    so the rest of the node and the chain below it survive. The node goes
    through a JSON round trip; keys carrying the reserved marker are stripped
    of it while parsing.
    """
    fields: dict[str, Any] = {}
    for key, value in _public_attributes(exc):
        if key.startswith("_") or key.replace(RESERVED_MARKER, "") in _TREE_KEYS:
            continue
        try:
            fields[key] = _jsonable(value)
        except Exception:
            logger.debug(
                "Dropping unreadable attribute %r of %s", key, type(exc), exc_info=True
            )

    fields[TYPE_KEY] = _type_name(exc)
    try:
        fields[MESSAGE_KEY] = _message_of(exc)
    except Exception:
        logger.debug("Could not render message of %s", type(exc), exc_info=True)
        fields[MESSAGE_KEY] = None
    try:
        origin = _origin_of(exc)
    except Exception:
        logger.debug("Could not find origin of %s", type(exc), exc_info=True)
        origin = None
    if origin:
        fields[ORIGIN_KEY] = origin

    try:
        serialized = json.dumps(fields, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        # Keep only the core string fields
        logger.debug("Dropping attributes of %s", type(exc), exc_info=True)
        core = {
            key: fields[key]
            for key in (TYPE_KEY, MESSAGE_KEY, ORIGIN_KEY)
            if key in fields
        }
        serialized = json.dumps(core, ensure_ascii=False)
    return json.loads(serialized, object_pairs_hook=_strip_reserved_marker)


def _public_attributes(exc: BaseException) -> list[tuple[str, Any]]:
    try:
        return list(vars(exc).items())
    except TypeError:
        return []


def _jsonable(value: Any) -> Any:
    try:
        return to_jsonable_python(value, fallback=repr)
    except ValueError:
        # Circular references and other values pydantic refuses
        return repr(value)


def _strip_reserved_marker(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    """Drop the reserved marker from keys; an unmarked key keeps its value."""
    node: dict[str, Any] = {}
    marked: list[tuple[str, Any]] = []
    for key, value in pairs:
        if RESERVED_MARKER in key:
            marked.append((key.replace(RESERVED_MARKER, ""), value))
        else:
            node[key] = value

    for key, value in marked:
        node.setdefault(key, value)

    return node


def _type_name(exc: BaseException) -> str:
    cls = type(exc)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def _message_of(exc: BaseException) -> str | None:
    if len(exc.args) == 1 and exc.args[0] is None:
        return None
    return str(exc)


def _origin_of(exc: BaseException) -> str | None:
    """
    Find the component an exception came from.

    An explicit ``component`` attribute wins; otherwise the innermost frame of
    the traceback is used as ``module.function``.
    """
    component = getattr(exc, "component", None)
    if component:
        return str(component)

    tb = exc.__traceback__
    if tb is None:
        return None
    while tb.tb_next is not None:
        tb = tb.tb_next

    frame = tb.tb_frame
    module = frame.f_globals.get("__name__", "")
    function = frame.f_code.co_qualname
    return f"{module}.{function}" if module else function


# =============================================================================
# Tree -> ErrorRecord -> RootCause
# =============================================================================


def normalize(tree: Any, *, max_depth: int = MAX_CAUSE_DEPTH) -> ErrorRecord:
    """
    Convert a generic error tree into an ErrorRecord chain.

    Missing or non-string type/message fields become strings (empty when
    absent). A ``cause`` that is not a mapping ends the chain. A tree that is
    not a mapping at all yields a single empty record.

    Raises:
        MalformedInputError: If the chain holds more than max_depth nodes
    """
    nodes: list[Mapping[str, Any]] = []
    current = tree
    while isinstance(current, Mapping):
        if len(nodes) >= max_depth:
            raise MalformedInputError(max_depth)
        nodes.append(current)
        current = current.get(CAUSE_KEY)

    if not nodes:
        logger.debug("Error tree is not a mapping (%s); using empty record", type(tree))
        return ErrorRecord()

    record: ErrorRecord | None = None
    for node in reversed(nodes):
        record = ErrorRecord(
            type_name=_as_text(node.get(TYPE_KEY)),
            message=_as_text(node.get(MESSAGE_KEY)),
            origin=_as_text(node.get(ORIGIN_KEY)) or None,
            cause=record,
        )

    return record


def find_root_cause(
    record: ErrorRecord, *, max_depth: int = MAX_CAUSE_DEPTH
) -> RootCause:
    """
    Walk an ErrorRecord chain down to its root cause.

    The origin location is overwritten at every node that has one, so the
    result holds the deepest origin found. When the root itself has none, the
    value from the nearest node above it persists.

    Raises:
        MalformedInputError: If the chain holds more than max_depth nodes
    """
    last_origin: str | None = None
    current = record
    depth = 0

    while True:
        if current.origin:
            last_origin = current.origin
        if current.cause is None:
            break
        depth += 1
        if depth >= max_depth:
            raise MalformedInputError(max_depth)
        current = current.cause

    return RootCause(
        type_name=current.type_name,
        message=current.message,
        origin_location=last_origin,
        depth=depth,
    )


def extract_root_cause(
    exc: BaseException, *, max_depth: int = MAX_CAUSE_DEPTH
) -> RootCause:
    """Serialize, normalize and walk an exception in one call."""
    tree = exception_to_tree(exc, max_depth=max_depth)
    return find_root_cause(normalize(tree, max_depth=max_depth), max_depth=max_depth)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)
