"""Intention and cause records."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass

from dialogue.nl_context import PerformativeRef
from logic.parser import parse_attribute, parse_term
from logic.sorts import Ontology
from logic.terms import Term, TermAttribute, VariableTermAttribute


@dataclass
class CauseRecord:
    """Why an intention exists; ``cause`` links further back in the causal chain."""

    term: Term
    cause: CauseRecord | None
    timestamp: int

    def save_to_xml(self, parent: ET.Element) -> ET.Element:
        xml = ET.SubElement(parent, "CauseRecord", {
            "term": self.term.to_string(),
            "timeStamp": str(self.timestamp),
        })
        if self.cause is not None:
            self.cause.save_to_xml(xml)
        return xml

    @classmethod
    def from_xml(cls, xml: ET.Element, ontology: Ontology) -> CauseRecord:
        nested = xml.find("CauseRecord")
        cause = cls.from_xml(nested, ontology) if nested is not None else None
        return cls(
            term=parse_term(xml.attrib["term"], ontology),
            cause=cause,
            timestamp=int(xml.attrib["timeStamp"]),
        )


@dataclass
class IntentionRecord:
    """A pending action, who asked for it, and the utterance that asked."""

    action: Term
    requester: TermAttribute | None = None
    requesting_performative: PerformativeRef | None = None
    cause: CauseRecord | None = None
    timestamp: int = 0

    def save_to_xml(self, parent: ET.Element) -> ET.Element:
        variables: list[VariableTermAttribute] = []
        names: list[str] = []
        attributes = {"action": self.action.to_string_internal(variables, names)}
        if self.requester is not None:
            attributes["requester"] = self.requester.to_string_internal(variables, names)
        if self.requesting_performative is not None:
            attributes["requestingPerformativeSpeaker"] = self.requesting_performative.speaker
            attributes["requestingPerformative"] = str(self.requesting_performative.index)
        attributes["timeStamp"] = str(self.timestamp)
        xml = ET.SubElement(parent, "IntentionRecord", attributes)
        if self.cause is not None:
            self.cause.save_to_xml(xml)
        return xml

    @classmethod
    def from_xml(cls, xml: ET.Element, ontology: Ontology) -> IntentionRecord:
        """Raises KeyError or ValueError on malformed input."""
        variables: list[VariableTermAttribute] = []
        names: list[str] = []
        action = parse_term(xml.attrib["action"], ontology, names, variables)
        requester = None
        if "requester" in xml.attrib:
            requester = parse_attribute(xml.attrib["requester"], ontology, names, variables)
        ref = None
        if "requestingPerformativeSpeaker" in xml.attrib:
            ref = PerformativeRef(
                speaker=xml.attrib["requestingPerformativeSpeaker"],
                index=int(xml.attrib["requestingPerformative"]),
            )
        cause_xml = xml.find("CauseRecord")
        cause = CauseRecord.from_xml(cause_xml, ontology) if cause_xml is not None else None
        return cls(
            action=action,
            requester=requester,
            requesting_performative=ref,
            cause=cause,
            timestamp=int(xml.attrib["timeStamp"]),
        )
