"""
Package versions and version constraints

A version is either a semantic version ("1.2.3", "2.0.0-rc.1") or a branch
version prefixed with "~" ("~master"). Constraints follow the dub syntax
(">=1.0.0 <2.0.0", "~>1.2", "~master", "*").
"""

import re
from functools import total_ordering
from typing import List, Tuple, Union

import semver

from .errors import InvalidFormatError


BRANCH_PREFIX = "~"
MASTER_BRANCH = "~master"

_CLAUSE_RE = re.compile(r"(==|!=|>=|<=|>|<)?\s*([^\s<>=!]+)")


def _parse_semver(text: str, lenient: bool = False) -> semver.Version:
    try:
        return semver.Version.parse(text, optional_minor_and_patch=lenient)
    except (TypeError, ValueError) as e:
        raise InvalidFormatError(f"Invalid version: {text!r}", version=text) from e


@total_ordering
class Version:
    """A concrete package version"""

    def __init__(self, text: str):
        text = str(text).strip()
        if not text or text == BRANCH_PREFIX:
            raise InvalidFormatError(f"Invalid version: {text!r}", version=text)

        self.text = text
        if text.startswith(BRANCH_PREFIX):
            self._semver = None
        else:
            self._semver = _parse_semver(text)

    @classmethod
    def master(cls) -> 'Version':
        return cls(MASTER_BRANCH)

    @classmethod
    def coerce(cls, value: Union['Version', str]) -> 'Version':
        """Return value as a Version, parsing strings"""
        if isinstance(value, cls):
            return value
        return cls(value)

    @property
    def is_branch(self) -> bool:
        return self._semver is None

    @property
    def is_master(self) -> bool:
        return self.text == MASTER_BRANCH

    @property
    def semver(self) -> semver.Version:
        if self._semver is None:
            raise InvalidFormatError(f"Branch version {self.text} has no numeric form", version=self.text)
        return self._semver

    def compare(self, other: 'Version') -> int:
        """
        Three-way comparison

        Numbered versions sort above branch versions, ~master sorts above
        every other branch and the remaining branches sort by name.
        """
        if self.is_branch or other.is_branch:
            if self.text == other.text:
                return 0
            if not self.is_branch:
                return 1
            if not other.is_branch:
                return -1
            if self.is_master:
                return 1
            if other.is_master:
                return -1
            return -1 if self.text < other.text else 1
        return self._semver.compare(other._semver)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            try:
                other = Version(other)
            except InvalidFormatError:
                return False
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other: 'Version') -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self) -> int:
        if self.is_branch:
            return hash(self.text)
        return hash(self._semver.to_tuple()[:4])

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Version({self.text!r})"


class Dependency:
    """A version constraint, e.g. ">=1.0.0 <2.0.0"""

    def __init__(self, version_spec: str = "*"):
        self.version_spec = str(version_spec).strip()
        self._any = False
        self._branch = None
        self._clauses: List[Tuple[str, semver.Version]] = []
        self._parse(self.version_spec)

    def _parse(self, spec: str) -> None:
        if spec == "*":
            self._any = True
        elif spec.startswith("~>"):
            self._parse_approximate(spec[2:].strip())
        elif spec.startswith(BRANCH_PREFIX):
            if len(spec) == 1:
                raise InvalidFormatError(f"Invalid version spec: {spec!r}")
            self._branch = spec
        elif spec.startswith("^"):
            lower = _parse_semver(spec[1:].strip(), lenient=True)
            self._clauses = [(">=", lower), ("<", lower.bump_major())]
        else:
            consumed = 0
            for match in _CLAUSE_RE.finditer(spec):
                op, text = match.group(1) or "==", match.group(2)
                self._clauses.append((op, _parse_semver(text, lenient=True)))
                consumed += len(match.group(1) or "") + len(text)
            if not self._clauses or consumed != len(re.sub(r"\s", "", spec)):
                raise InvalidFormatError(f"Invalid version spec: {spec!r}")

    def _parse_approximate(self, text: str) -> None:
        lower = _parse_semver(text, lenient=True)
        components = re.split(r"[-+]", text, maxsplit=1)[0].split(".")
        if len(components) >= 3:
            upper = lower.bump_minor()
        else:
            upper = lower.bump_major()
        self._clauses = [(">=", lower), ("<", upper)]

    @property
    def is_branch(self) -> bool:
        return self._branch is not None

    def matches(self, version: Union[Version, str]) -> bool:
        """Check if a version satisfies this constraint"""
        version = Version.coerce(version)
        if version.is_branch:
            return self._any or version.text == self._branch
        if self._branch is not None:
            return False
        if self._any:
            return True
        return all(_check(op, version.semver.compare(bound)) for op, bound in self._clauses)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dependency):
            return NotImplemented
        return self.version_spec == other.version_spec

    def __hash__(self) -> int:
        return hash(self.version_spec)

    def __str__(self) -> str:
        return self.version_spec

    def __repr__(self) -> str:
        return f"Dependency({self.version_spec!r})"


def _check(op: str, cmp: int) -> bool:
    if op == "==":
        return cmp == 0
    if op == "!=":
        return cmp != 0
    if op == ">=":
        return cmp >= 0
    if op == ">":
        return cmp > 0
    if op == "<=":
        return cmp <= 0
    return cmp < 0
