"""First-order terms, attributes and variable bindings."""

from __future__ import annotations

from logic.sorts import Sort


class TermAttribute:
    """Base class of everything that can appear as a term argument."""

    sort: Sort

    def to_string_internal(
        self, variables: list[VariableTermAttribute], names: list[str]
    ) -> str:
        raise NotImplementedError

    def to_string(self) -> str:
        return self.to_string_internal([], [])

    def __str__(self) -> str:
        return self.to_string()


class ConstantTermAttribute(TermAttribute):
    """An immutable constant such as ``'bob'[#id]``."""

    def __init__(self, value: str, sort: Sort) -> None:
        self.value = value
        self.sort = sort

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConstantTermAttribute):
            return NotImplemented
        return self.value == other.value and self.sort.name == other.sort.name

    def __hash__(self) -> int:
        return hash((self.value, self.sort.name))

    def to_string_internal(
        self, variables: list[VariableTermAttribute], names: list[str]
    ) -> str:
        escaped = self.value.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'[{self.sort.name}]"

    def __repr__(self) -> str:
        return f"ConstantTermAttribute({self.value!r}, {self.sort.name!r})"


class VariableTermAttribute(TermAttribute):
    """A logic variable; two variables are the same only if they are the same object."""

    def __init__(self, sort: Sort, name: str | None = None) -> None:
        self.sort = sort
        self.name = name

    def to_string_internal(
        self, variables: list[VariableTermAttribute], names: list[str]
    ) -> str:
        for idx, var in enumerate(variables):
            if var is self:
                return names[idx]
        name = self.name
        if not name or not name[0].isupper() or name in names:
            counter = len(variables)
            name = f"V{counter}"
            while name in names:
                counter += 1
                name = f"V{counter}"
        variables.append(self)
        names.append(name)
        return f"{name}:[{self.sort.name}]"

    def __repr__(self) -> str:
        return f"VariableTermAttribute({self.sort.name!r}, {self.name!r})"


class TermTermAttribute(TermAttribute):
    """Wraps a nested term so it can be used as an argument."""

    def __init__(self, term: Term) -> None:
        self.term = term
        self.sort = term.functor

    def to_string_internal(
        self, variables: list[VariableTermAttribute], names: list[str]
    ) -> str:
        return self.term.to_string_internal(variables, names)

    def __repr__(self) -> str:
        return f"TermTermAttribute({self.term.to_string()!r})"


class Bindings:
    """Ordered variable substitution."""

    def __init__(self, pairs: list[tuple[VariableTermAttribute, TermAttribute]] | None = None) -> None:
        self.l: list[tuple[VariableTermAttribute, TermAttribute]] = list(pairs or [])

    def copy(self) -> Bindings:
        return Bindings(self.l)

    def add(self, variable: VariableTermAttribute, value: TermAttribute) -> None:
        self.l.append((variable, value))

    def get_value(self, variable: VariableTermAttribute) -> TermAttribute | None:
        for var, value in self.l:
            if var is variable:
                return value
        return None

    def get_value_by_name(self, name: str) -> TermAttribute | None:
        for var, value in self.l:
            if var.name == name:
                return self.resolve(value)
        return None

    def resolve(self, attribute: TermAttribute) -> TermAttribute:
        """Follow variable chains and substitute inside nested terms."""
        seen: set[int] = set()
        while isinstance(attribute, VariableTermAttribute):
            if id(attribute) in seen:
                break
            seen.add(id(attribute))
            value = self.get_value(attribute)
            if value is None:
                return attribute
            attribute = value
        if isinstance(attribute, TermTermAttribute):
            return TermTermAttribute(attribute.term.apply_bindings(self))
        return attribute

    def _walk(self, attribute: TermAttribute) -> TermAttribute:
        while isinstance(attribute, VariableTermAttribute):
            value = self.get_value(attribute)
            if value is None or value is attribute:
                return attribute
            attribute = value
        return attribute

    def __len__(self) -> int:
        return len(self.l)

    def __str__(self) -> str:
        variables: list[VariableTermAttribute] = []
        names: list[str] = []
        parts = [
            f"{var.to_string_internal(variables, names)} = {value.to_string_internal(variables, names)}"
            for var, value in self.l
        ]
        return "[" + ", ".join(parts) + "]"


def _sorts_compatible(a: Sort, b: Sort) -> bool:
    return a.is_a(b) or b.is_a(a)


def _occurs(variable: VariableTermAttribute, attribute: TermAttribute, bindings: Bindings) -> bool:
    attribute = bindings._walk(attribute)
    if attribute is variable:
        return True
    if isinstance(attribute, TermTermAttribute):
        return any(_occurs(variable, att, bindings) for att in attribute.term.attributes)
    return False


def _unify_attributes(
    a1: TermAttribute, a2: TermAttribute, occurs_check: bool, bindings: Bindings
) -> bool:
    a1 = bindings._walk(a1)
    a2 = bindings._walk(a2)
    if a1 is a2:
        return True
    if isinstance(a1, VariableTermAttribute) or isinstance(a2, VariableTermAttribute):
        variable, value = (a1, a2) if isinstance(a1, VariableTermAttribute) else (a2, a1)
        if not _sorts_compatible(variable.sort, value.sort):
            return False
        if occurs_check and _occurs(variable, value, bindings):
            return False
        bindings.add(variable, value)
        return True
    if isinstance(a1, ConstantTermAttribute) and isinstance(a2, ConstantTermAttribute):
        return a1.value == a2.value and _sorts_compatible(a1.sort, a2.sort)
    if isinstance(a1, TermTermAttribute) and isinstance(a2, TermTermAttribute):
        return _unify_terms(a1.term, a2.term, occurs_check, bindings)
    return False


def _unify_terms(t1: Term, t2: Term, occurs_check: bool, bindings: Bindings) -> bool:
    if len(t1.attributes) != len(t2.attributes):
        return False
    if not _sorts_compatible(t1.functor, t2.functor):
        return False
    return all(
        _unify_attributes(a1, a2, occurs_check, bindings)
        for a1, a2 in zip(t1.attributes, t2.attributes)
    )


def _subsumes_attributes(general: TermAttribute, specific: TermAttribute, bindings: Bindings) -> bool:
    if isinstance(general, VariableTermAttribute):
        bound = bindings.get_value(general)
        if bound is not None:
            return attributes_equal_no_bindings(bound, specific)
        if not specific.sort.is_a(general.sort):
            return False
        bindings.add(general, specific)
        return True
    if isinstance(general, ConstantTermAttribute):
        return (
            isinstance(specific, ConstantTermAttribute)
            and general.value == specific.value
            and specific.sort.is_a(general.sort)
        )
    if isinstance(general, TermTermAttribute) and isinstance(specific, TermTermAttribute):
        return _subsumes_terms(general.term, specific.term, bindings)
    return False


def _subsumes_terms(general: Term, specific: Term, bindings: Bindings) -> bool:
    if len(general.attributes) != len(specific.attributes):
        return False
    if not specific.functor.is_a(general.functor):
        return False
    return all(
        _subsumes_attributes(g, s, bindings)
        for g, s in zip(general.attributes, specific.attributes)
    )


def _equal_attributes(
    a1: TermAttribute,
    a2: TermAttribute,
    mapping: dict[int, VariableTermAttribute],
    reverse: dict[int, VariableTermAttribute],
) -> bool:
    if isinstance(a1, VariableTermAttribute) and isinstance(a2, VariableTermAttribute):
        if a1.sort.name != a2.sort.name:
            return False
        mapped = mapping.get(id(a1))
        mapped_back = reverse.get(id(a2))
        if mapped is None and mapped_back is None:
            mapping[id(a1)] = a2
            reverse[id(a2)] = a1
            return True
        return mapped is a2 and mapped_back is a1
    if isinstance(a1, ConstantTermAttribute) and isinstance(a2, ConstantTermAttribute):
        return a1 == a2
    if isinstance(a1, TermTermAttribute) and isinstance(a2, TermTermAttribute):
        return _equal_terms(a1.term, a2.term, mapping, reverse)
    return False


def _equal_terms(
    t1: Term,
    t2: Term,
    mapping: dict[int, VariableTermAttribute],
    reverse: dict[int, VariableTermAttribute],
) -> bool:
    if t1.functor.name != t2.functor.name or len(t1.attributes) != len(t2.attributes):
        return False
    return all(
        _equal_attributes(a1, a2, mapping, reverse) for a1, a2 in zip(t1.attributes, t2.attributes)
    )


def attributes_equal_no_bindings(a1: TermAttribute, a2: TermAttribute) -> bool:
    """Structural equality up to variable renaming."""
    return _equal_attributes(a1, a2, {}, {})


def unify_attribute(
    a1: TermAttribute, a2: TermAttribute, occurs_check: bool, bindings: Bindings
) -> bool:
    """Attribute-level :meth:`Term.unify`; ``bindings`` only grows on success."""
    trial = bindings.copy()
    if not _unify_attributes(a1, a2, occurs_check, trial):
        return False
    bindings.l[:] = trial.l
    return True


def clone_attribute(
    attribute: TermAttribute, mapping: dict[int, VariableTermAttribute]
) -> TermAttribute:
    if isinstance(attribute, VariableTermAttribute):
        fresh = mapping.get(id(attribute))
        if fresh is None:
            fresh = VariableTermAttribute(attribute.sort, attribute.name)
            mapping[id(attribute)] = fresh
        return fresh
    if isinstance(attribute, TermTermAttribute):
        return TermTermAttribute(attribute.term.clone(mapping))
    return attribute


class Term:
    """A functor applied to a list of attributes."""

    def __init__(self, functor: Sort, attributes: list[TermAttribute] | None = None) -> None:
        self.functor = functor
        self.attributes: list[TermAttribute] = list(attributes or [])

    def add_attribute(self, attribute: TermAttribute) -> None:
        self.attributes.append(attribute)

    def unify(self, other: Term, occurs_check: bool, bindings: Bindings) -> bool:
        """Unify with ``other``; ``bindings`` is only extended when unification succeeds."""
        trial = bindings.copy()
        if not _unify_terms(self, other, occurs_check, trial):
            return False
        bindings.l[:] = trial.l
        return True

    def subsumes(self, other: Term, occurs_check: bool, bindings: Bindings) -> bool:
        """True when ``other`` is an instance of this term (only our variables get bound)."""
        _ = occurs_check
        trial = bindings.copy()
        if not _subsumes_terms(self, other, trial):
            return False
        bindings.l[:] = trial.l
        return True

    def apply_bindings(self, bindings: Bindings) -> Term:
        if not bindings.l:
            return self
        return Term(self.functor, [bindings.resolve(att) for att in self.attributes])

    def clone(self, mapping: dict[int, VariableTermAttribute] | None = None) -> Term:
        if mapping is None:
            mapping = {}
        return Term(self.functor, [clone_attribute(att, mapping) for att in self.attributes])

    def equals_no_bindings(self, other: Term) -> bool:
        return _equal_terms(self, other, {}, {})

    def get_all_variables(self) -> list[VariableTermAttribute]:
        found: list[VariableTermAttribute] = []
        for att in self.attributes:
            if isinstance(att, VariableTermAttribute):
                if all(v is not att for v in found):
                    found.append(att)
            elif isinstance(att, TermTermAttribute):
                for var in att.term.get_all_variables():
                    if all(v is not var for v in found):
                        found.append(var)
        return found

    def to_string_internal(
        self, variables: list[VariableTermAttribute], names: list[str]
    ) -> str:
        args = ",".join(att.to_string_internal(variables, names) for att in self.attributes)
        return f"{self.functor.name}({args})"

    def to_string(self) -> str:
        return self.to_string_internal([], [])

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Term({self.to_string()!r})"


def elements_in_list(attribute: TermAttribute, list_functor: str) -> list[TermAttribute]:
    """Flatten a right-nested list such as ``#and(a, #and(b, c))``."""
    elements: list[TermAttribute] = []
    while (
        isinstance(attribute, TermTermAttribute)
        and attribute.term.functor.name == list_functor
        and attribute.term.attributes
    ):
        elements.append(attribute.term.attributes[0])
        if len(attribute.term.attributes) < 2:
            return elements
        attribute = attribute.term.attributes[1]
    elements.append(attribute)
    return elements


def terms_in_list(term: Term, list_functor: str) -> list[Term]:
    """Like :func:`elements_in_list` but only keeps nested terms."""
    return [
        att.term
        for att in elements_in_list(TermTermAttribute(term), list_functor)
        if isinstance(att, TermTermAttribute)
    ]


def list_to_term(elements: list[TermAttribute], list_sort: Sort) -> TermAttribute:
    """Inverse of :func:`elements_in_list`."""
    if len(elements) == 1:
        return elements[0]
    result = elements[-1]
    for element in reversed(elements[:-1]):
        result = TermTermAttribute(Term(list_sort, [element, result]))
    return result


def _identical_attributes(a1: TermAttribute, a2: TermAttribute) -> bool:
    if isinstance(a1, VariableTermAttribute) or isinstance(a2, VariableTermAttribute):
        return a1 is a2
    if isinstance(a1, ConstantTermAttribute) and isinstance(a2, ConstantTermAttribute):
        return a1 == a2
    if isinstance(a1, TermTermAttribute) and isinstance(a2, TermTermAttribute):
        return terms_identical(a1.term, a2.term)
    return False


def terms_identical(t1: Term, t2: Term) -> bool:
    """Structural equality where variables must be the very same objects."""
    if t1.functor.name != t2.functor.name or len(t1.attributes) != len(t2.attributes):
        return False
    return all(_identical_attributes(a1, a2) for a1, a2 in zip(t1.attributes, t2.attributes))
