"""Sort lattice used to type functors and constants."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


class Sort:
    """A named type with any number of parent sorts."""

    def __init__(self, name: str, parents: list[Sort] | None = None) -> None:
        self.name = name
        self.parents: list[Sort] = list(parents or [])

    def is_a(self, other: Sort) -> bool:
        """True when this sort equals ``other`` or descends from it."""
        if self is other or self.name == other.name:
            return True
        return any(parent.is_a(other) for parent in self.parents)

    def is_a_string(self, name: str) -> bool:
        if self.name == name:
            return True
        return any(parent.is_a_string(name) for parent in self.parents)

    def subsumes(self, other: Sort) -> bool:
        return other.is_a(self)

    def get_ancestors(self) -> list[Sort]:
        """Return all strict ancestors, nearest first, without duplicates."""
        ancestors: list[Sort] = []
        frontier = list(self.parents)
        while frontier:
            sort = frontier.pop(0)
            if any(existing.name == sort.name for existing in ancestors):
                continue
            ancestors.append(sort)
            frontier.extend(sort.parents)
        return ancestors

    def __repr__(self) -> str:
        return f"Sort({self.name!r})"


class Ontology:
    """Registry of sorts by name."""

    def __init__(self) -> None:
        self._sorts: dict[str, Sort] = {}

    def get_sort(self, name: str) -> Sort | None:
        return self._sorts.get(name)

    def new_sort(self, name: str, parents: list[Sort] | None = None) -> Sort:
        """Create a sort, or extend the parents of an existing one."""
        sort = self._sorts.get(name)
        if sort is None:
            sort = Sort(name, parents)
            self._sorts[name] = sort
            return sort
        for parent in parents or []:
            if all(existing.name != parent.name for existing in sort.parents):
                sort.parents.append(parent)
        return sort

    def all_sorts(self) -> list[Sort]:
        return [self._sorts[name] for name in sorted(self._sorts)]

    def __contains__(self, name: str) -> bool:
        return name in self._sorts

    @classmethod
    def from_mapping(cls, mapping: dict[str, Any]) -> Ontology:
        """Build an ontology from ``{sort_name: [parent_names]}``.

        Parents may be declared after their children; a parent that is never
        declared is an error.
        """
        ontology = cls()
        declared: dict[str, list[str]] = {}
        for name, parents in mapping.items():
            if parents is None:
                parents = []
            if isinstance(parents, str):
                parents = [parents]
            declared[str(name)] = [str(p) for p in parents]

        visiting: set[str] = set()

        def build(name: str) -> Sort:
            existing = ontology.get_sort(name)
            if existing is not None:
                return existing
            if name not in declared:
                raise ValueError(f"Undeclared parent sort: {name}")
            if name in visiting:
                raise ValueError(f"Cycle in sort lattice at: {name}")
            visiting.add(name)
            parents = [build(parent) for parent in declared[name]]
            visiting.discard(name)
            return ontology.new_sort(name, parents)

        for name in declared:
            build(name)
        return ontology

    @classmethod
    def from_yaml(cls, path: Path) -> Ontology:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Ontology file must contain a mapping: {path}")
        sorts = data.get("sorts", data)
        if not isinstance(sorts, dict):
            raise ValueError(f"Ontology 'sorts' must be a mapping: {path}")
        return cls.from_mapping(sorts)
