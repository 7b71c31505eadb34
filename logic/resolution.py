"""Interruptible set-of-support resolution.

All search state lives on the object so that a proof can be advanced one
expansion at a time, interleaved with the rest of the simulation.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from logic.sentences import Sentence
from logic.terms import Bindings, Term, TermAttribute, VariableTermAttribute, terms_identical

logger = logging.getLogger("npc.resolution")

DEFAULT_MAX_DEPTH = 8
DEFAULT_MAX_STEPS = 2000


@dataclass
class ResolutionResult:
    """One refutation of the target, with bindings for the target's variables."""

    bindings: Bindings
    depth: int = 0


@dataclass
class _Node:
    sentence: Sentence
    answer: list[TermAttribute]
    depth: int = 0
    key: str = field(default="", repr=False)


class InterruptibleResolution:
    """Refutes ``target`` (the negated goal) against ``kb`` plus ``additional``."""

    def __init__(
        self,
        kb: list[Sentence],
        additional: list[Sentence],
        target: list[Sentence],
        occurs_check: bool = True,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        self.target = list(target)
        self.occurs_check = occurs_check
        self.max_depth = max_depth
        self.max_steps = max_steps
        self.side_clauses: list[Sentence] = list(kb) + list(additional) + self.target
        self.target_variables: list[VariableTermAttribute] = []
        for sentence in self.target:
            for var in sentence.get_all_variables():
                if all(v is not var for v in self.target_variables):
                    self.target_variables.append(var)
        self.end_results: list[ResolutionResult] = []
        self.steps = 0
        self._result_keys: set[str] = set()
        self._seen: set[str] = set()
        self._open: deque[_Node] = deque()
        for sentence in self.target:
            self._push(_Node(sentence, list(self.target_variables), 0))

    # ── public API ───────────────────────────────────────────────────

    def step(self) -> bool:
        """Expand one clause; True once an answer exists or the search is over."""
        if self.end_results or self.exhausted():
            return True
        self._expand(self._open.popleft())
        return bool(self.end_results) or self.exhausted()

    def step_accumulating_results(self) -> bool:
        """Expand one clause; True only once the whole search space is done."""
        if self.exhausted():
            return True
        self._expand(self._open.popleft())
        return self.exhausted()

    def exhausted(self) -> bool:
        return not self._open or self.steps >= self.max_steps

    # ── internals ────────────────────────────────────────────────────

    def _push(self, node: _Node) -> None:
        variables: list[VariableTermAttribute] = []
        names: list[str] = []
        node.key = node.sentence.to_string_internal(variables, names) + " | " + ",".join(
            a.to_string_internal(variables, names) for a in node.answer
        )
        if node.key in self._seen:
            return
        self._seen.add(node.key)
        self._open.append(node)

    def _expand(self, node: _Node) -> None:
        self.steps += 1
        for i, (literal, sign) in enumerate(zip(node.sentence.terms, node.sentence.signs)):
            for side in self.side_clauses:
                renamed = side.clone({})
                for j, (other, other_sign) in enumerate(zip(renamed.terms, renamed.signs)):
                    if sign == other_sign:
                        continue
                    bindings = Bindings()
                    if not literal.unify(other, self.occurs_check, bindings):
                        continue
                    self._resolvent(node, i, renamed, j, bindings)

    def _resolvent(
        self, node: _Node, i: int, side: Sentence, j: int, bindings: Bindings
    ) -> None:
        terms: list[Term] = []
        signs: list[bool] = []
        for k, (term, sign) in enumerate(zip(node.sentence.terms, node.sentence.signs)):
            if k != i:
                _add_literal(terms, signs, term.apply_bindings(bindings), sign)
        for k, (term, sign) in enumerate(zip(side.terms, side.signs)):
            if k != j:
                _add_literal(terms, signs, term.apply_bindings(bindings), sign)
        answer = [bindings.resolve(a) for a in node.answer]
        depth = node.depth + 1
        if not terms:
            self._record_result(answer, depth)
            return
        if depth >= self.max_depth:
            return
        self._push(_Node(Sentence(terms, signs), answer, depth))

    def _record_result(self, answer: list[TermAttribute], depth: int) -> None:
        variables: list[VariableTermAttribute] = []
        names: list[str] = []
        key = ",".join(a.to_string_internal(variables, names) for a in answer)
        if key in self._result_keys:
            return
        self._result_keys.add(key)
        result = Bindings(
            [(var, value) for var, value in zip(self.target_variables, answer) if value is not var]
        )
        logger.debug("Resolution result at depth %d: %s", depth, result)
        self.end_results.append(ResolutionResult(bindings=result, depth=depth))


def _add_literal(terms: list[Term], signs: list[bool], term: Term, sign: bool) -> None:
    for existing, existing_sign in zip(terms, signs):
        if existing_sign == sign and terms_identical(existing, term):
            return
    terms.append(term)
    signs.append(sign)
