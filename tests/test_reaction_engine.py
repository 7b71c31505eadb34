"""Reactions to perceived speech, end to end through RuleBasedAI."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

from cognition.parse_errors import ParseError, ParseErrorKind
from core.rule_based_ai import RuleBasedAI
from core.settings import AISettings
from dialogue.nl_context import PerformativeRef
from executor.intention_record import IntentionRecord
from logic import ConstantTermAttribute, Ontology, Sentence, Term, TermTermAttribute, parse_term
from memory.entries import Provenance
from tools.action_registry import build_default_registry
from tools.base_action import ActionResult
from tools.talk_action import TALK_EVENT

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def build_ai(*extra_capabilities: Any, **settings: Any) -> RuleBasedAI:
    ontology = Ontology.from_yaml(CONFIG_DIR / "ontology.yaml")
    registry = build_default_registry(config={})
    for capability in extra_capabilities:
        registry.register(capability)
    return RuleBasedAI(ontology, AISettings(**settings), registry)


def hear(ai: RuleBasedAI, speaker: str, performative: str) -> Term:
    """Perceive ``speaker`` saying ``performative`` at the current time."""
    u = ai.utterances
    perf = parse_term(performative, ai.o)
    ai.perceive(
        u.term(
            "action.talk",
            ConstantTermAttribute(str(ai.clock.now()), u.sort("number")),
            u.id(speaker),
            u.symbol(perf.to_string()),
            perf,
        )
    )
    return perf


def pending_speech(ai: RuleBasedAI) -> list[str]:
    spoken: list[str] = []
    for record in ai.executor.intentions:
        if record.action.functor.name == "action.talk":
            payload = record.action.attributes[1]
            assert isinstance(payload, TermTermAttribute)
            spoken.append(payload.term.to_string())
    return spoken


def record_speech(ai: RuleBasedAI) -> list[str]:
    texts: list[str] = []
    ai.event_bus.subscribe(TALK_EVENT, lambda payload: texts.append(payload["text"]))
    return texts


def run(ai: RuleBasedAI, start: int, end: int) -> None:
    for t in range(start, end + 1):
        ai.update(t)


def ask(ai: RuleBasedAI, question: str) -> Term:
    """Make the character ask ``question`` and deliver it."""
    perf = parse_term(question, ai.o)
    ai.executor.add_intention(IntentionRecord(ai.utterances.talk(perf)))
    ai.update(ai.clock.now() + 1)
    ai.clock.advance()
    return perf


P = "verb.have('self'[#id],'key1'[#id])"
BOB_HAS_KEY = "verb.have('bob'[#id],'key1'[#id])"


def test_greeting_is_returned_once() -> None:
    ai = build_ai()
    hear(ai, "bob", "perf.greet('self'[#id])")

    assert pending_speech(ai) == ["perf.greet('bob'[#id])"]
    record = ai.executor.intentions[0]
    assert isinstance(record.requester, ConstantTermAttribute) and record.requester.value == "bob"
    assert record.requesting_performative == PerformativeRef("bob", 0)

    ai.update(1)
    context = ai.dialogue.find_context("bob")
    assert context is not None
    assert [cp.speaker for cp in context.performatives] == ["bob", "self"]
    assert context.in_conversation


def test_own_speech_is_not_reacted_to() -> None:
    ai = build_ai()
    ai.executor.add_intention(IntentionRecord(ai.utterances.say("perf.greet", "bob")))
    ai.update(1)
    assert ai.executor.intentions == []
    # The utterance is remembered as a talk fact.
    talk = parse_term("action.talk(T,'self'[#id],X,Y)", ai.o)
    assert ai.memory.no_inference_query(talk) is not None


def test_predicate_question_becomes_answer_intention() -> None:
    ai = build_ai()
    hear(ai, "bob", f"perf.q.predicate('self'[#id],{P})")

    assert len(ai.executor.intentions) == 1
    action = ai.executor.intentions[0].action
    assert action.to_string() == f"action.answer.predicate('self'[#id],'bob'[#id],{P})"


def test_predicate_question_is_answered_yes_no_or_unknown() -> None:
    for setup, expected in (
        ("fact", "yes"),
        ("negation", "no"),
        ("nothing", "unknown"),
    ):
        ai = build_ai()
        fact = parse_term(P, ai.o)
        if setup == "fact":
            ai.memory.add_long_term_term(fact, Provenance.BACKGROUND)
        elif setup == "negation":
            ai.memory.add_long_term_rule(Sentence([fact], [False]), Provenance.BACKGROUND)
        texts = record_speech(ai)

        hear(ai, "bob", f"perf.q.predicate('self'[#id],{P})")
        run(ai, 1, 6)

        assert texts == [f"perf.inform.answer('bob'[#id],'{expected}'[symbol])"]


def test_how_question_reports_the_method() -> None:
    ai = build_ai()
    ai.memory.add_long_term_term(
        parse_term("relation.howto(action.give('bob'[#id],'key1'[#id],'self'[#id]),verb.open('self'[#id],'door1'[#id]))", ai.o),
        Provenance.BACKGROUND,
    )
    texts = record_speech(ai)

    hear(ai, "bob", "perf.q.how('self'[#id],relation.howto(HOW,verb.open('self'[#id],'door1'[#id])))")
    run(ai, 1, 5)

    assert texts == [
        "perf.inform.answer('bob'[#id],action.give('bob'[#id],'key1'[#id],'self'[#id]))"
    ]


def test_inform_is_memorized_and_acknowledged() -> None:
    ai = build_ai()
    texts = record_speech(ai)
    hear(ai, "bob", f"perf.inform('self'[#id],#and({BOB_HAS_KEY},#not(verb.see('bob'[#id],'door1'[#id]))))")
    ai.update(1)

    kb = [s.to_string() for s in ai.memory.knowledge_base()]
    assert BOB_HAS_KEY in kb
    assert "~verb.see('bob'[#id],'door1'[#id])" in kb
    assert texts == ["perf.ack.ok('bob'[#id])"]


def test_yes_answer_to_our_question_is_memorized() -> None:
    ai = build_ai()
    ask(ai, f"perf.q.predicate('bob'[#id],{BOB_HAS_KEY})")
    context = ai.dialogue.find_context("bob")
    assert context is not None and context.expecting_answer

    hear(ai, "bob", "perf.inform('self'[#id],'yes'[symbol])")
    assert not context.expecting_answer
    assert [r.action.functor.name for r in ai.executor.intentions] == ["action.memorize"]

    ai.update(ai.clock.now())
    assert BOB_HAS_KEY in [s.to_string() for s in ai.memory.knowledge_base()]


def test_no_answer_to_conjunctive_question_stores_negations() -> None:
    ai = build_ai()
    ask(ai, f"perf.q.predicate('bob'[#id],#and({BOB_HAS_KEY},verb.see('bob'[#id],'door1'[#id])))")
    hear(ai, "bob", "perf.inform('self'[#id],'no'[symbol])")
    ai.update(ai.clock.now())

    kb = [s.to_string() for s in ai.memory.knowledge_base()]
    assert f"~{BOB_HAS_KEY}" in kb
    assert "~verb.see('bob'[#id],'door1'[#id])" in kb


def test_unknown_answer_just_closes_the_question() -> None:
    ai = build_ai()
    ask(ai, f"perf.q.predicate('bob'[#id],{BOB_HAS_KEY})")
    hear(ai, "bob", "perf.inform('self'[#id],'unknown'[symbol])")

    context = ai.dialogue.find_context("bob")
    assert context is not None and not context.expecting_answer
    assert ai.executor.intentions == []


def test_invalid_answer_is_rejected_and_question_reasked() -> None:
    ai = build_ai()
    question = ask(ai, f"perf.q.predicate('bob'[#id],{BOB_HAS_KEY})")
    hear(ai, "bob", "perf.inform('self'[#id],'maybe'[symbol])")

    assert [r.action.functor.name for r in ai.executor.intentions] == [
        "action.memorize",
        "action.talk",
        "action.talk",
    ]
    assert ai.executor.intentions[0].requester is None
    assert pending_speech(ai) == ["perf.ack.invalidanswer('bob'[#id])", question.to_string()]

    ai.update(ai.clock.now())
    context = ai.dialogue.find_context("bob")
    assert context is not None and context.expecting_answer


def test_unrelated_reply_while_waiting_for_answer_is_rejected() -> None:
    ai = build_ai()
    question = ask(ai, f"perf.q.predicate('bob'[#id],{BOB_HAS_KEY})")
    hear(ai, "bob", "perf.greet('self'[#id])")
    assert pending_speech(ai) == ["perf.ack.invalidanswer('bob'[#id])", question.to_string()]


def test_question_while_waiting_for_answer_is_still_answered() -> None:
    ai = build_ai()
    ask(ai, f"perf.q.predicate('bob'[#id],{BOB_HAS_KEY})")
    hear(ai, "bob", "perf.q.howareyou('self'[#id])")
    assert pending_speech(ai) == ["perf.inform.answer('bob'[#id],'fine'[symbol])"]


def test_query_answer_fills_the_query_variable() -> None:
    ai = build_ai()
    ask(ai, "perf.q.query('bob'[#id],X:[#id],space.at(X:[#id],'room1'[#id]))")
    hear(ai, "bob", "perf.inform('self'[#id],'alice'[#id])")
    ai.update(ai.clock.now())

    assert "space.at('alice'[#id],'room1'[#id])" in [s.to_string() for s in ai.memory.knowledge_base()]


def test_denied_request_is_acknowledged() -> None:
    ai = build_ai()
    ask(ai, "perf.request.action('bob'[#id],action.give('bob'[#id],'key1'[#id],'self'[#id]))")
    context = ai.dialogue.find_context("bob")
    assert context is not None and context.expecting_confirmation

    hear(ai, "bob", "perf.ack.denyrequest('self'[#id])")
    assert not context.expecting_confirmation
    assert pending_speech(ai) == ["perf.ack.ok('bob'[#id])"]


def test_more_results_pages_through_answers() -> None:
    ai = build_ai(max_answers_at_once=2)
    hear(ai, "bob", "perf.greet('self'[#id])")
    ai.update(1)
    context = ai.dialogue.find_context("bob")
    assert context is not None
    context.last_enumerated_question_answered = parse_term("perf.q.query('self'[#id],X,space.at(X,'room1'[#id]))", ai.o)
    context.last_enumerated_question_answers = [
        ConstantTermAttribute(name, ai.utterances.sort("#id")) for name in ("a", "b", "c", "d", "e")
    ]

    pages: list[list[str]] = []
    for t in range(2, 6):
        ai.clock.set(t)
        hear(ai, "bob", "perf.moreresults('self'[#id])")
        pages.append(pending_speech(ai))
        ai.update(t)

    assert pages == [
        ["perf.inform.answer('bob'[#id],#and('b'[#id],#and('a'[#id],'etcetera'[etcetera])))"],
        ["perf.inform.answer('bob'[#id],#and('d'[#id],#and('c'[#id],'etcetera'[etcetera])))"],
        ["perf.inform.answer('bob'[#id],'e'[#id])"],
        ["perf.inform.answer('bob'[#id],'no-matches-found'[symbol])"],
    ]
    assert context.last_enumerated_question_next_answer_index == 5
    assert context.expecting_thank_you


def test_more_results_without_previous_query() -> None:
    ai = build_ai()
    hear(ai, "bob", "perf.moreresults('self'[#id])")
    assert pending_speech(ai) == ["perf.inform('bob'[#id],#not(verb.understand('self'[#id])))"]


def test_request_with_preconditions_runs_after_proof() -> None:
    door = MagicMock()
    door.name = "open_door"
    door.enabled = True
    door.needs_continuous_execution = False
    door.can_handle.side_effect = lambda term, ai: term.functor.name == "action.open"
    door.execute.return_value = ActionResult.completed()
    ai = build_ai(door)
    ai.memory.add_long_term_term(parse_term(P, ai.o), Provenance.BACKGROUND)

    hear(ai, "bob", f"perf.request.action('self'[#id],action.open('self'[#id],'door1'[#id]),{P})")
    assert ai.executor.intentions == []
    assert len(ai.inference.inference_processes) == 1
    assert ai.inference.inference_processes[0].triggered_by_speaker == "bob"

    run(ai, 1, 4)

    door.execute.assert_called_once()
    record = door.execute.call_args.args[0]
    assert record.action.to_string() == "action.open('self'[#id],'door1'[#id])"
    assert isinstance(record.requester, ConstantTermAttribute) and record.requester.value == "bob"
    assert record.requesting_performative == PerformativeRef("bob", 0)
    assert record in ai.executor.intentions_caused_by_request


def test_request_with_unmet_preconditions_is_denied() -> None:
    door = MagicMock()
    door.name = "open_door"
    door.enabled = True
    door.can_handle.side_effect = lambda term, ai: term.functor.name == "action.open"
    ai = build_ai(door)
    texts = record_speech(ai)

    hear(ai, "bob", f"perf.request.action('self'[#id],action.open('self'[#id],'door1'[#id]),{P})")
    run(ai, 1, 4)

    door.execute.assert_not_called()
    assert texts == ["perf.ack.denyrequest('bob'[#id])"]


def test_request_without_capability_is_denied() -> None:
    ai = build_ai()
    hear(ai, "bob", "perf.request.action('self'[#id],action.open('self'[#id],'door1'[#id]))")
    assert pending_speech(ai) == ["perf.ack.denyrequest('bob'[#id])"]


def test_call_attention_is_confirmed_for_players_only() -> None:
    ai = build_ai(player_ids=["player"])
    hear(ai, "player", "perf.callattention('self'[#id])")
    assert pending_speech(ai) == ["perf.inform.answer('player'[#id],'yes'[symbol])"]

    other = build_ai(player_ids=["player"])
    hear(other, "bob", "perf.callattention('self'[#id])")
    assert other.executor.intentions == []


def test_farewell_and_thanks() -> None:
    ai = build_ai()
    hear(ai, "bob", "perf.thankyou('self'[#id])")
    assert ai.executor.intentions == []

    hear(ai, "bob", "perf.farewell('self'[#id])")
    assert pending_speech(ai) == ["perf.farewell('bob'[#id])"]
    context = ai.dialogue.find_context("bob")
    assert context is not None and not context.in_conversation


def test_unaddressed_speech_is_ignored_until_in_conversation() -> None:
    ai = build_ai()
    hear(ai, "bob", "perf.q.howareyou(L)")
    assert ai.executor.intentions == []

    ai.clock.set(1)
    hear(ai, "bob", "perf.greet('self'[#id])")
    ai.update(1)
    ai.clock.set(2)
    hear(ai, "bob", "perf.q.howareyou(L)")
    assert pending_speech(ai) == ["perf.inform.answer('bob'[#id],'fine'[symbol])"]
    context = ai.dialogue.find_context("bob")
    assert context is not None
    assert context.performatives[-1].performative.to_string() == "perf.q.howareyou('self'[#id])"


def test_unknown_performative_is_dropped() -> None:
    ai = build_ai()
    hear(ai, "bob", "perf.ack.invalidanswer('self'[#id])")
    assert ai.executor.intentions == []


def test_parse_errors_are_explained_to_the_speaker() -> None:
    ai = build_ai()
    ai.react_to_parse_error("bob", ParseError(ParseErrorKind.GRAMMATICAL))
    assert ai.executor.intentions == []

    hear(ai, "bob", "perf.greet('self'[#id])")
    ai.update(1)
    key = ai.utterances.id("key1")
    ai.react_to_parse_error("bob", ParseError(ParseErrorKind.NO_REFERENTS, subject=key))
    ai.react_to_parse_error("bob", ParseError(ParseErrorKind.UNRECOGNIZED_TOKEN, token="xyzzy"))
    ai.react_to_parse_error("bob", ParseError(ParseErrorKind.SEMANTIC))

    assert pending_speech(ai) == [
        "perf.inform.parseerror('bob'[#id],#not(verb.see('self'[#id],'key1'[#id])))",
        "perf.inform.parseerror('bob'[#id],#not(verb.understand('self'[#id],'xyzzy'[symbol])))",
        "perf.inform.parseerror('bob'[#id],#not(verb.understand('self'[#id],#and(S:[sentence],the(S,V1:[singular])))))",
    ]


def test_query_question_lists_answers_and_keeps_the_rest_for_more_results() -> None:
    ai = build_ai(max_answers_at_once=2)
    for name in ("a", "b", "c"):
        ai.memory.add_long_term_term(
            parse_term(f"space.at('{name}'[#id],'room1'[#id])", ai.o), Provenance.BACKGROUND
        )
    texts = record_speech(ai)

    hear(ai, "bob", "perf.q.query('self'[#id],X:[#id],space.at(X:[#id],'room1'[#id]))")
    run(ai, 1, 6)

    context = ai.dialogue.find_context("bob")
    assert context is not None
    answers = [a.to_string() for a in context.last_enumerated_question_answers]
    assert sorted(answers) == ["'a'[#id]", "'b'[#id]", "'c'[#id]"]
    assert context.last_enumerated_question_next_answer_index == 2
    assert texts == [
        f"perf.inform.answer('bob'[#id],#and({answers[1]},#and({answers[0]},'etcetera'[etcetera])))"
    ]
    assert context.expecting_thank_you

    ai.clock.set(7)
    hear(ai, "bob", "perf.moreresults('self'[#id])")
    ai.update(7)
    assert texts[1] == f"perf.inform.answer('bob'[#id],{answers[2]})"
    assert context.last_enumerated_question_next_answer_index == 3


def test_query_question_without_matches_is_unknown() -> None:
    ai = build_ai()
    texts = record_speech(ai)
    hear(ai, "bob", "perf.q.query('self'[#id],X:[#id],space.at(X:[#id],'room1'[#id]))")
    run(ai, 1, 6)

    assert texts == ["perf.inform.answer('bob'[#id],'unknown'[symbol])"]
    context = ai.dialogue.find_context("bob")
    assert context is not None and context.last_enumerated_question_answered is None


def test_ok_settles_a_pending_request() -> None:
    ai = build_ai()
    ask(ai, "perf.request.action('bob'[#id],action.give('bob'[#id],'key1'[#id],'self'[#id]))")
    context = ai.dialogue.find_context("bob")
    assert context is not None and context.expecting_confirmation

    hear(ai, "bob", "perf.ack.ok('self'[#id])")
    assert not context.expecting_confirmation
    assert ai.executor.intentions == []


def test_answer_to_a_pending_request_settles_it() -> None:
    for answer, expected in (("no", ["perf.ack.ok('bob'[#id])"]), ("yes", [])):
        ai = build_ai()
        ask(ai, "perf.request.action('bob'[#id],action.give('bob'[#id],'key1'[#id],'self'[#id]))")
        context = ai.dialogue.find_context("bob")
        assert context is not None and context.expecting_confirmation

        hear(ai, "bob", f"perf.inform.answer('self'[#id],'{answer}'[symbol])")
        assert not context.expecting_confirmation
        assert pending_speech(ai) == expected
