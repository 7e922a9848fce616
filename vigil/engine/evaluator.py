"""
Script Evaluation

Evaluates watcher condition and transform scripts against a search payload.

Scripts are trusted input: they are authored by whoever may write watcher
definitions, and run with the interpreter's normal builtins. The payload is
bound as ``payload`` and supports attribute access, so
``payload.hits.total > 0`` and ``payload["hits"]["total"] > 0`` are
equivalent. Transforms work by mutating ``payload`` in place.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Protocol

from vigil.engine.errors import ScriptEvaluationError

PAYLOAD_NAME = "payload"
SCRIPT_CACHE_SIZE = 512


class AttrDict(dict):
    """
    Dict whose keys can also be read and written as attributes.

    Keys win over dict methods on attribute access, so a percentiles
    aggregation's ``values`` reads as data. Call such methods through
    ``dict`` (e.g. ``dict.values(payload)``) when a key shadows them.
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        for key, value in dict.items(self):
            super().__setitem__(key, wrap(value))

    def __getattribute__(self, name: str) -> Any:
        if not name.startswith("__") and dict.__contains__(self, name):
            return dict.__getitem__(self, name)
        return super().__getattribute__(name)

    def __getattr__(self, name: str) -> Any:
        raise AttributeError(name)

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setitem__(self, key: Any, value: Any) -> None:
        super().__setitem__(key, wrap(value))


def wrap(value: Any) -> Any:
    """Recursively convert dicts (also inside lists) to AttrDicts."""
    if isinstance(value, AttrDict):
        return value
    if isinstance(value, dict):
        return AttrDict(value)
    if isinstance(value, list):
        return [wrap(item) for item in value]
    return value


@lru_cache(maxsize=SCRIPT_CACHE_SIZE)
def compile_script(expression: str) -> tuple[Any, bool]:
    """Compile script text, as an expression if possible; returns (code, is_expression)."""
    try:
        return compile(expression, "<watcher script>", "eval"), True
    except SyntaxError:
        return compile(expression, "<watcher script>", "exec"), False


class ScriptEvaluator(Protocol):
    """Anything able to evaluate a script against named bindings."""

    def evaluate(self, expression: str, bindings: dict[str, Any]) -> Any:
        ...


class PythonScriptEvaluator:
    """
    Evaluates scripts as Python source.

    The text is compiled as an expression first; if it is not one (e.g. an
    assignment in a transform), it is executed as statements and None is
    returned. Compiled code is shared through a bounded cache keyed by script
    text.
    """

    def evaluate(self, expression: str, bindings: dict[str, Any]) -> Any:
        """
        Evaluate a script.

        Args:
            expression: Script text
            bindings: Names visible to the script

        Returns:
            The expression value, or None for statement scripts

        Raises:
            ScriptEvaluationError: If the script fails to compile or run
        """
        namespace = dict(bindings)
        try:
            code, is_expression = compile_script(expression)
            if is_expression:
                return eval(code, namespace)  # noqa: S307
            exec(code, namespace)  # noqa: S102
            return None
        except Exception as e:
            raise ScriptEvaluationError(expression, e) from e


def evaluate_condition(
    evaluator: ScriptEvaluator,
    expression: str,
    payload: AttrDict,
) -> bool:
    """Evaluate a condition script; truthiness of the result decides."""
    return bool(evaluator.evaluate(expression, {PAYLOAD_NAME: payload}))


def apply_transform(
    evaluator: ScriptEvaluator,
    expression: str,
    payload: AttrDict,
) -> AttrDict:
    """
    Run a transform script against the payload.

    The script mutates ``payload`` in place; the same object is returned.
    """
    evaluator.evaluate(expression, {PAYLOAD_NAME: payload})
    return payload
