"""
Kubernetes label selector parsing and evaluation.

Supports the equality- and set-based grammar accepted by kubectl:

    app=web            app==web           tier!=cache
    env in (prod,qa)   env notin (dev)    release            !canary

Requirements are joined by commas and must all hold. ``!=`` and ``notin``
also match pods that do not carry the key at all, like the API server does.
"""

import enum
import re
from dataclasses import dataclass
from typing import List, Mapping, Tuple

from .exceptions import InvalidSelectorError

_KEY_RE = re.compile(r"^([A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?/)?[A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?$")
_VALUE_RE = re.compile(r"^([A-Za-z0-9]([-A-Za-z0-9_.]*[A-Za-z0-9])?)?$")
_SET_RE = re.compile(r"^(?P<key>\S+)\s+(?P<op>in|notin)\s*\((?P<values>[^()]*)\)$")


class Operator(str, enum.Enum):
    EQUALS = "="
    NOT_EQUALS = "!="
    IN = "in"
    NOT_IN = "notin"
    EXISTS = "exists"
    DOES_NOT_EXIST = "!"


@dataclass(frozen=True)
class Requirement:
    key: str
    operator: Operator
    values: Tuple[str, ...] = ()

    def matches(self, labels: Mapping[str, str]) -> bool:
        if self.operator is Operator.EXISTS:
            return self.key in labels
        if self.operator is Operator.DOES_NOT_EXIST:
            return self.key not in labels
        if self.operator in (Operator.EQUALS, Operator.IN):
            return self.key in labels and labels[self.key] in self.values
        # NOT_EQUALS / NOT_IN
        return self.key not in labels or labels[self.key] not in self.values

    def __str__(self) -> str:
        if self.operator is Operator.EXISTS:
            return self.key
        if self.operator is Operator.DOES_NOT_EXIST:
            return f"!{self.key}"
        if self.operator in (Operator.EQUALS, Operator.NOT_EQUALS):
            return f"{self.key}{self.operator.value}{self.values[0]}"
        return f"{self.key} {self.operator.value} ({','.join(self.values)})"


@dataclass(frozen=True)
class LabelSelector:
    """A parsed label selector; no requirements means everything matches."""

    requirements: Tuple[Requirement, ...] = ()

    @classmethod
    def parse(cls, expression: str) -> "LabelSelector":
        requirements = [_parse_requirement(term) for term in _split_terms(expression)]
        return cls(tuple(requirements))

    def empty(self) -> bool:
        return not self.requirements

    def matches(self, labels: Mapping[str, str]) -> bool:
        labels = labels or {}
        return all(r.matches(labels) for r in self.requirements)

    def __str__(self) -> str:
        return ",".join(str(r) for r in self.requirements)


def _split_terms(expression: str) -> List[str]:
    """Split on top-level commas, leaving the commas inside ``( )`` alone."""
    terms, depth, current = [], 0, []
    for ch in expression:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise InvalidSelectorError(f"unbalanced ')' in selector {expression!r}")
        if ch == "," and depth == 0:
            terms.append("".join(current))
            current = []
            continue
        current.append(ch)
    if depth != 0:
        raise InvalidSelectorError(f"unbalanced '(' in selector {expression!r}")
    terms.append("".join(current))

    stripped = [t.strip() for t in terms]
    if stripped == [""]:
        return []
    if any(not t for t in stripped):
        raise InvalidSelectorError(f"empty requirement in selector {expression!r}")
    return stripped


def _check_key(key: str, term: str) -> str:
    if not _KEY_RE.match(key):
        raise InvalidSelectorError(f"invalid label key {key!r} in {term!r}")
    return key


def _check_value(value: str, term: str) -> str:
    if len(value) > 63 or not _VALUE_RE.match(value):
        raise InvalidSelectorError(f"invalid label value {value!r} in {term!r}")
    return value


def _parse_requirement(term: str) -> Requirement:
    m = _SET_RE.match(term)
    if m:
        key = _check_key(m.group("key"), term)
        values = tuple(_check_value(v.strip(), term) for v in m.group("values").split(","))
        if values == ("",):
            raise InvalidSelectorError(f"empty value set in {term!r}")
        op = Operator.IN if m.group("op") == "in" else Operator.NOT_IN
        return Requirement(key, op, tuple(sorted(set(values))))

    for token, op in (("!=", Operator.NOT_EQUALS), ("==", Operator.EQUALS), ("=", Operator.EQUALS)):
        if token in term:
            key, _, value = term.partition(token)
            return Requirement(_check_key(key.strip(), term), op, (_check_value(value.strip(), term),))

    if term.startswith("!"):
        return Requirement(_check_key(term[1:].strip(), term), Operator.DOES_NOT_EXIST)

    return Requirement(_check_key(term, term), Operator.EXISTS)
