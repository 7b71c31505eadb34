"""Belief memory tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from core.event_bus import EventBus
from core.settings import AISettings
from core.sim_clock import SimClock, from_date
from logic import ConstantTermAttribute, Ontology, Sentence, parse_term
from memory.belief_memory import INTENTION_TERM_PERCEIVED, TERM_ADDED, BeliefMemory
from memory.entries import Provenance

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


def build_memory(**settings: Any) -> tuple[BeliefMemory, EventBus]:
    ontology = Ontology.from_yaml(CONFIG_DIR / "ontology.yaml")
    bus = EventBus()
    memory = BeliefMemory(ontology, SimClock(), AISettings(**settings), bus)
    return memory, bus


def test_talk_and_location_terms_are_promoted_to_long_term() -> None:
    memory, _ = build_memory()
    o = memory.o
    talk = parse_term("action.talk('0'[number],'bob'[#id],'hi'[symbol],perf.greet('self'[#id]))", o)
    at = parse_term("space.at('bob'[#id],'room1'[#id])", o)
    seen = parse_term("verb.see('self'[#id],'bob'[#id])", o)

    for term in (talk, at, seen):
        memory.add_short_term_term(term, Provenance.PERCEPTION)

    assert len(memory.long_term_memory) == 2
    assert len(memory.short_term_memory) == 1
    assert memory.short_term_memory.contains(seen) is not None


def test_short_term_terms_decay_and_refresh() -> None:
    memory, _ = build_memory(perception_memory_time=2)
    seen = parse_term("verb.see('self'[#id],'bob'[#id])", memory.o)
    assert memory.add_short_term_term(seen, Provenance.PERCEPTION)

    memory.activation_update()
    # Seeing it again refreshes rather than duplicates.
    assert not memory.add_short_term_term(seen, Provenance.PERCEPTION)
    assert len(memory.short_term_memory) == 1

    for _ in range(2):
        memory.activation_update()
    assert len(memory.short_term_memory) == 1
    memory.activation_update()
    assert len(memory.short_term_memory) == 0


def test_state_terms_supersede_and_keep_history() -> None:
    memory, _ = build_memory()
    o = memory.o
    memory.clock.set(10)
    memory.add_long_term_term(parse_term("space.at('bob'[#id],'room1'[#id])", o), Provenance.PERCEPTION)
    memory.clock.set(20)
    memory.add_long_term_term(parse_term("space.at('bob'[#id],'room2'[#id])", o), Provenance.PERCEPTION)

    current = [e.sentence.to_string() for e in memory.long_term_memory]
    assert current == ["space.at('bob'[#id],'room2'[#id])"]
    previous = memory.long_term_memory.plain_previous_sentence_list
    assert len(previous) == 1
    assert previous[0].time == 10
    assert previous[0].time_end == 20
    assert memory.long_term_memory.plain_sentence_list[0].previous is previous[0]

    assert len(memory.knowledge_base()) == 1
    assert len(memory.knowledge_base(include_past=True)) == 2

    # Same value again is a duplicate, not a new state.
    assert not memory.add_long_term_term(parse_term("space.at('bob'[#id],'room2'[#id])", o), Provenance.PERCEPTION)


def test_short_term_state_terms_move_to_previous_list() -> None:
    memory, _ = build_memory()
    o = memory.o
    memory.add_short_term_term(parse_term("property.age('bob'[#id],'30'[time.year])", o), Provenance.PERCEPTION)
    memory.add_short_term_term(parse_term("property.age('bob'[#id],'31'[time.year])", o), Provenance.PERCEPTION)
    assert [e.term.to_string() for e in memory.short_term_memory] == ["property.age('bob'[#id],'31'[time.year])"]
    assert len(memory.short_term_memory.plain_previous_term_list) == 1


def test_new_terms_are_broadcast_once() -> None:
    memory, bus = build_memory()
    events: list[dict[str, Any]] = []
    bus.subscribe(TERM_ADDED, events.append)
    fact = parse_term("verb.have('self'[#id],'key1'[#id])", memory.o)

    assert memory.add_long_term_term(fact, Provenance.MEMORIZE)
    assert not memory.add_long_term_term(fact, Provenance.MEMORIZE)
    assert len(events) == 1
    assert events[0]["long_term"] is True
    assert events[0]["provenance"] == Provenance.MEMORIZE


def test_intention_terms_are_not_stored() -> None:
    memory, bus = build_memory()
    perceived: list[dict[str, Any]] = []
    bus.subscribe(INTENTION_TERM_PERCEIVED, perceived.append)
    intention = parse_term("intention(action.give('self'[#id],'key1'[#id],'bob'[#id]),'bob'[#id])", memory.o)

    memory.add_short_term_term(intention, Provenance.PERCEPTION)

    assert len(perceived) == 1
    assert len(memory.short_term_memory) == 0
    assert len(memory.long_term_memory) == 0


def test_perception_filter_drops_clock_terms() -> None:
    memory, _ = build_memory()
    memory.add_term_to_perception(parse_term("time.current('5'[number])", memory.o))
    memory.add_term_to_perception(parse_term("verb.see('self'[#id],'bob'[#id])", memory.o))
    assert len(memory.perception_buffer) == 2
    assert len(memory.short_term_memory) == 1
    memory.clear_perception()
    assert memory.perception_buffer == []


def test_direct_queries_and_removal() -> None:
    memory, _ = build_memory()
    o = memory.o
    memory.add_long_term_term(parse_term("verb.have('self'[#id],'key1'[#id])", o), Provenance.BACKGROUND)
    memory.add_short_term_term(parse_term("verb.see('self'[#id],'bob'[#id])", o), Provenance.PERCEPTION)

    value = memory.no_inference_query_value(parse_term("verb.see('self'[#id],X)", o), "X")
    assert isinstance(value, ConstantTermAttribute) and value.value == "bob"
    assert memory.no_inference_query(parse_term("verb.have('self'[#id],X)", o)) is not None
    assert memory.no_inference_query(parse_term("verb.have('bob'[#id],X)", o)) is None

    assert memory.remove_long_term_term_matching_with(parse_term("verb.have('self'[#id],X)", o))
    assert len(memory.long_term_memory) == 0
    assert not memory.remove_long_term_term_matching_with(parse_term("verb.have('self'[#id],X)", o))


def test_long_term_rules_keep_their_signs() -> None:
    memory, _ = build_memory()
    rule = Sentence([parse_term("verb.have('self'[#id],'key2'[#id])", memory.o)], [False])
    assert memory.add_long_term_rule(rule, Provenance.MEMORIZE)
    assert not memory.add_long_term_rule(rule, Provenance.MEMORIZE)
    assert memory.knowledge_base()[0].to_string() == "~verb.have('self'[#id],'key2'[#id])"


def test_most_specific_renderable_matches() -> None:
    memory, _ = build_memory()
    o = memory.o
    memory.renderable = lambda sort: sort.name == "verb.have"
    memory.add_long_term_term(parse_term("verb.own('bob'[#id],'key1'[#id])", o), Provenance.BACKGROUND)
    memory.add_long_term_term(parse_term("verb.have('bob'[#id],X)", o), Provenance.BACKGROUND)

    matches = memory.most_specific_matches_that_can_be_rendered(parse_term("verb.have('bob'[#id],Y)", o))
    assert [m.to_string() for m in matches] == ["verb.have('bob'[#id],'key1'[#id])"]


def test_recalculate_character_ages() -> None:
    memory, _ = build_memory()
    o = memory.o
    memory.clock.set(from_date(1990, 6, 15))
    memory.add_long_term_term(parse_term("property.born('bob'[#id])", o), Provenance.BACKGROUND)

    memory.clock.set(from_date(2020, 6, 14))
    memory.recalculate_character_ages()
    ages = [e.sentence.to_string() for e in memory.long_term_memory if "property.age" in e.sentence.to_string()]
    assert ages == ["property.age('bob'[#id],'29'[time.year])"]

    memory.clock.set(from_date(2020, 6, 15))
    memory.recalculate_character_ages()
    ages = [e.sentence.to_string() for e in memory.long_term_memory if "property.age" in e.sentence.to_string()]
    assert ages == ["property.age('bob'[#id],'30'[time.year])"]


def test_recalculated_age_keeps_the_birth_provenance_and_time() -> None:
    memory, _ = build_memory()
    o = memory.o
    born_at = from_date(1990, 6, 15)
    memory.clock.set(born_at)
    memory.add_long_term_term(parse_term("property.born('bob'[#id])", o), Provenance.MEMORIZE)

    memory.clock.set(from_date(2020, 7, 1))
    memory.recalculate_character_ages()

    ages = [e for e in memory.long_term_memory if e.sentence.terms[0].functor.name == "property.age"]
    assert len(ages) == 1
    assert ages[0].provenance == Provenance.MEMORIZE
    assert ages[0].time == born_at


def test_superseded_short_term_terms_fade_out() -> None:
    memory, _ = build_memory(perception_memory_time=2)
    o = memory.o
    memory.add_short_term_term(parse_term("property.age('bob'[#id],'30'[time.year])", o), Provenance.PERCEPTION)
    memory.add_short_term_term(parse_term("property.age('bob'[#id],'31'[time.year])", o), Provenance.PERCEPTION)
    assert len(memory.short_term_memory.plain_previous_term_list) == 1

    for _ in range(3):
        memory.activation_update()

    assert memory.short_term_memory.plain_previous_term_list == []
