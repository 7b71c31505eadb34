"""Sort lattice, term syntax and unification tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from logic import (
    Bindings,
    ConstantTermAttribute,
    Ontology,
    Sentence,
    TermParseError,
    elements_in_list,
    parse_attribute,
    parse_term,
)

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def build_ontology() -> Ontology:
    return Ontology.from_yaml(CONFIG_DIR / "ontology.yaml")


def test_sort_lattice_ancestors_and_is_a() -> None:
    o = build_ontology()
    question = o.get_sort("perf.q.predicate")
    assert question is not None
    assert question.is_a_string("perf.question")
    assert question.is_a_string("performative")
    assert not question.is_a_string("perf.request")
    assert [s.name for s in question.get_ancestors()] == ["perf.question", "performative", "any"]

    # Multiple parents: both branches are visible.
    at = o.get_sort("space.at")
    assert at is not None
    assert at.is_a_string("relation")
    assert at.is_a_string("#stateSort")


def test_ontology_rejects_undeclared_parent_and_cycles() -> None:
    with pytest.raises(ValueError):
        Ontology.from_mapping({"a": ["missing"]})
    with pytest.raises(ValueError):
        Ontology.from_mapping({"a": ["b"], "b": ["a"]})

    # Children may be declared before their parents.
    o = Ontology.from_mapping({"child": ["parent"], "parent": []})
    child = o.get_sort("child")
    assert child is not None and child.is_a_string("parent")


def test_parse_and_print_round_trip() -> None:
    o = build_ontology()
    text = "verb.have('self'[#id],X:[#id])"
    term = parse_term(text, o)
    assert term.to_string() == text
    assert term.functor.name == "verb.have"
    assert isinstance(term.attributes[0], ConstantTermAttribute)

    # Shared variable names denote the same variable.
    shared = parse_term("verb.see(X, verb.have(X, 'key1'[#id]))", o)
    assert len(shared.get_all_variables()) == 1


def test_constants_with_quotes_are_escaped() -> None:
    o = build_ontology()
    constant = ConstantTermAttribute("it's", o.get_sort("symbol"))
    printed = constant.to_string()
    assert printed == "'it\\'s'[symbol]"
    parsed = parse_attribute(printed, o)
    assert isinstance(parsed, ConstantTermAttribute)
    assert parsed.value == "it's"


def test_parse_errors() -> None:
    o = build_ontology()
    with pytest.raises(TermParseError):
        parse_term("no.such.sort('a'[#id])", o)
    with pytest.raises(TermParseError):
        parse_term("verb.have('a'[#id]) trailing", o)
    with pytest.raises(TermParseError):
        parse_term("verb.have('unterminated", o)


def test_unify_binds_both_sides() -> None:
    o = build_ontology()
    t1 = parse_term("verb.have(X, 'key1'[#id])", o)
    t2 = parse_term("verb.have('bob'[#id], Y)", o)
    bindings = Bindings()
    assert t1.unify(t2, True, bindings)
    assert t1.apply_bindings(bindings).to_string() == "verb.have('bob'[#id],'key1'[#id])"
    assert t2.apply_bindings(bindings).to_string() == "verb.have('bob'[#id],'key1'[#id])"


def test_failed_unification_leaves_bindings_untouched() -> None:
    o = build_ontology()
    t1 = parse_term("verb.have(X:[number], 'key1'[#id])", o)
    t2 = parse_term("verb.have('bob'[#id], 'key1'[#id])", o)
    bindings = Bindings()
    assert not t1.unify(t2, True, bindings)
    assert len(bindings) == 0


def test_occurs_check() -> None:
    o = build_ontology()
    t1 = parse_term("verb.see(X, X)", o)
    t2 = parse_term("verb.see(Y, verb.have(Y, 'a'[#id]))", o)
    assert not t1.unify(t2, True, Bindings())
    assert t1.unify(t2, False, Bindings())


def test_functor_sorts_unify_along_the_lattice() -> None:
    o = build_ontology()
    general = parse_term("verb.have(X, 'key1'[#id])", o)
    specific = parse_term("verb.own('bob'[#id], 'key1'[#id])", o)
    assert general.unify(specific, True, Bindings())
    assert general.subsumes(specific, True, Bindings())
    assert not specific.subsumes(general, True, Bindings())


def test_equals_no_bindings_is_up_to_renaming() -> None:
    o = build_ontology()
    a = parse_term("verb.see(X, Y)", o)
    b = parse_term("verb.see(A, B)", o)
    c = parse_term("verb.see(A, A)", o)
    assert a.equals_no_bindings(b)
    assert not a.equals_no_bindings(c)


def test_conjunction_helpers() -> None:
    o = build_ontology()
    conjunction = parse_term(
        "#and(verb.have('a'[#id],'b'[#id]), #not(verb.see('a'[#id],'b'[#id])))", o
    )
    negated = Sentence.negated_conjunction(conjunction)
    assert negated.to_string() == "~verb.have('a'[#id],'b'[#id]);verb.see('a'[#id],'b'[#id])"

    units = Sentence.from_conjunction(conjunction)
    assert [s.to_string() for s in units] == [
        "verb.have('a'[#id],'b'[#id])",
        "~verb.see('a'[#id],'b'[#id])",
    ]

    listeners = parse_attribute("#and('bob'[#id], #and('alice'[#id], 'eve'[#id]))", o)
    values = [e.value for e in elements_in_list(listeners, "#and") if isinstance(e, ConstantTermAttribute)]
    assert values == ["bob", "alice", "eve"]
