"""Turning an answer to one of our questions into facts worth remembering.

Each helper returns the list of terms to memorize, an empty list when the
answer is acceptable but carries nothing new, or None when the answer does
not fit the question (the caller then re-asks).
"""

from __future__ import annotations

from logic.sorts import Ontology
from logic.terms import (
    Bindings,
    ConstantTermAttribute,
    Term,
    TermAttribute,
    TermTermAttribute,
    VariableTermAttribute,
    elements_in_list,
    unify_attribute,
)


def _strip_proper_noun(answer: TermAttribute) -> TermAttribute:
    if isinstance(answer, TermTermAttribute) and answer.term.functor.name == "proper-noun":
        if answer.term.attributes:
            return answer.term.attributes[0]
    return answer


def _bind_answer(
    query_variable: TermAttribute, query_term: TermAttribute, answer: TermAttribute
) -> list[Term] | None:
    if isinstance(answer, VariableTermAttribute):
        if answer.sort.name == "unknown":
            return []
        return None
    bindings = Bindings()
    # A constant fills the queried variable; anything else must match the whole query.
    if isinstance(answer, ConstantTermAttribute):
        if not unify_attribute(query_variable, answer, True, bindings):
            return None
    elif not unify_attribute(query_term, answer, True, bindings):
        return None
    resolved = bindings.resolve(query_term)
    if not isinstance(resolved, TermTermAttribute):
        return None
    return [resolved.term]


def sentence_to_memorize_from_predicate_question(
    predicate_question: Term, answer: bool, ontology: Ontology
) -> list[Term] | None:
    if len(predicate_question.attributes) < 2:
        return []
    query = predicate_question.attributes[1]
    if not isinstance(query, TermTermAttribute):
        return []
    # Variables mean a hidden query, which a plain yes/no cannot settle.
    if query.term.get_all_variables():
        return []
    conjuncts = elements_in_list(query, "#and")
    if answer:
        return [c.term for c in conjuncts if isinstance(c, TermTermAttribute)]

    not_sort = ontology.get_sort("#not")
    and_sort = ontology.get_sort("#and")
    if not_sort is None or and_sort is None:
        return None
    to_memorize = Term(not_sort, [conjuncts[0]])
    for conjunct in conjuncts[1:]:
        to_memorize = Term(and_sort, [
            TermTermAttribute(to_memorize),
            TermTermAttribute(Term(not_sort, [conjunct])),
        ])
    return [to_memorize]


def sentence_to_memorize_from_predicate_question_with_inform_answer(
    predicate_question: Term, answer_performative: Term
) -> list[Term] | None:
    if len(answer_performative.attributes) < 2 or len(predicate_question.attributes) < 2:
        return None
    answer = _strip_proper_noun(answer_performative.attributes[1])
    query = predicate_question.attributes[1]
    if not isinstance(query, TermTermAttribute):
        return []
    conjuncts = elements_in_list(query, "#and")
    if not isinstance(conjuncts[0], TermTermAttribute):
        return []
    main = conjuncts[0].term
    if main.functor.name not in ("verb.remember", "verb.know"):
        return None

    # "Do you know who X is?" hides a query inside the verb.
    if len(main.attributes) < 2 or not isinstance(main.attributes[1], TermTermAttribute):
        return None
    inner = elements_in_list(main.attributes[1], "#and")
    if len(inner) != 2:
        return None
    query_marker, query_term = inner
    if not isinstance(query_marker, TermTermAttribute) or not isinstance(query_term, TermTermAttribute):
        return None
    if query_marker.term.functor.name != "#query" or not query_marker.term.attributes:
        return None
    return _bind_answer(query_marker.term.attributes[0], query_term, answer)


def sentence_to_memorize_from_query_question(
    query_performative: Term, answer_performative: Term
) -> list[Term] | None:
    if len(query_performative.attributes) < 3 or len(answer_performative.attributes) < 2:
        return None
    query_variable = query_performative.attributes[1]
    query_term = query_performative.attributes[2]
    answer = _strip_proper_noun(answer_performative.attributes[1])
    return _bind_answer(query_variable, query_term, answer)
