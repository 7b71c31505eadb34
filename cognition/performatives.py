"""Speech acts a character knows how to react to."""

from __future__ import annotations

from enum import Enum


class PerformativeKind(str, Enum):
    CALL_ATTENTION = "perf.callattention"
    GREET = "perf.greet"
    FAREWELL = "perf.farewell"
    THANK_YOU = "perf.thankyou"
    YOU_ARE_WELCOME = "perf.youarewelcome"
    HOW_ARE_YOU = "perf.q.howareyou"
    ACK_OK = "perf.ack.ok"
    ACK_CONTRADICT = "perf.ack.contradict"
    ACK_DENY_REQUEST = "perf.ack.denyrequest"
    INFORM = "perf.inform"
    INFORM_ANSWER = "perf.inform.answer"
    Q_PREDICATE = "perf.q.predicate"
    Q_PREDICATE_NEGATED = "perf.q.predicate-negated"
    Q_WHEREIS = "perf.q.whereis"
    Q_WHERETO = "perf.q.whereto"
    Q_WHOIS_NAME = "perf.q.whois.name"
    Q_WHOIS_NONAME = "perf.q.whois.noname"
    Q_WHATIS_NAME = "perf.q.whatis.name"
    Q_WHATIS_NONAME = "perf.q.whatis.noname"
    Q_QUERY = "perf.q.query"
    Q_QUERY_FOLLOWUP = "perf.q.query-followup"
    Q_HOWMANY = "perf.q.howmany"
    Q_WHEN = "perf.q.when"
    Q_WHY = "perf.q.why"
    Q_HOW = "perf.q.how"
    REQUEST_ACTION = "perf.request.action"
    Q_ACTION = "perf.q.action"
    MORE_RESULTS = "perf.moreresults"

    @classmethod
    def from_functor(cls, name: str) -> PerformativeKind | None:
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def answer_action(self) -> str:
        """``perf.q.whereis`` is answered by ``action.answer.whereis``."""
        if not self.value.startswith("perf.q."):
            raise ValueError(f"{self.value} is not a question")
        return "action.answer." + self.value[len("perf.q."):]


# How the question is forwarded to the answering action.
ANSWER_WITH_FIRST_ARGUMENT = frozenset({
    PerformativeKind.Q_PREDICATE,
    PerformativeKind.Q_PREDICATE_NEGATED,
    PerformativeKind.Q_WHATIS_NAME,
    PerformativeKind.Q_WHATIS_NONAME,
    PerformativeKind.Q_QUERY_FOLLOWUP,
})
ANSWER_WITH_ALL_ARGUMENTS = frozenset({
    PerformativeKind.Q_WHEREIS,
    PerformativeKind.Q_WHERETO,
    PerformativeKind.Q_WHOIS_NAME,
    PerformativeKind.Q_WHOIS_NONAME,
    PerformativeKind.Q_WHEN,
    PerformativeKind.Q_WHY,
    PerformativeKind.Q_HOW,
})
ANSWER_WITH_PERFORMATIVE = frozenset({
    PerformativeKind.Q_QUERY,
    PerformativeKind.Q_HOWMANY,
})
