"""
Include / exclude / priority rules.

Every rule exposes ``match(name)``. Strings are treated as regular
expressions searched anywhere in the logical name, lists combine with OR.
"""
import fnmatch
import re
from typing import Any, Callable, Iterable, List, Pattern, Union

from ..errors import ConfigurationError
from ..protocols import IRule


class PatternRule:
    """Regular expression rule (search semantics)."""

    def __init__(self, pattern: Union[str, Pattern]):
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def match(self, name: str) -> bool:
        return self.pattern.search(name) is not None

    def __repr__(self):
        return f"PatternRule({self.pattern.pattern!r})"


class GlobRule:
    """Shell-style glob matched against the whole logical name."""

    def __init__(self, pattern: str):
        self.pattern = pattern

    def match(self, name: str) -> bool:
        return fnmatch.fnmatchcase(name, self.pattern)

    def __repr__(self):
        return f"GlobRule({self.pattern!r})"


class CallableRule:
    def __init__(self, fn: Callable[[str], Any]):
        self.fn = fn

    def match(self, name: str) -> bool:
        return bool(self.fn(name))


class AnyRule:
    """Matches when any of the wrapped rules matches."""

    def __init__(self, rules: Iterable[Any]):
        self.rules: List[IRule] = [as_rule(rule) for rule in rules]

    def match(self, name: str) -> bool:
        return any(rule.match(name) for rule in self.rules)

    def __repr__(self):
        return f"AnyRule({self.rules!r})"


def as_rule(value: Any) -> IRule:
    """Coerce a configured include/exclude/priority value into a rule."""
    if isinstance(value, (PatternRule, GlobRule, CallableRule, AnyRule)):
        return value
    if isinstance(value, (str, re.Pattern)):
        return PatternRule(value)
    if isinstance(value, (list, tuple)):
        return AnyRule(value)
    if isinstance(value, IRule):
        return value
    if callable(value):
        return CallableRule(value)
    raise ConfigurationError(f"Invalid include / exclude rule: {value!r}")
