"""Replies to utterances the language front-end could not parse."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from cognition.utterances import UtteranceBuilder
from logic.terms import Term, TermAttribute, VariableTermAttribute


class ParseErrorKind(str, Enum):
    SEMANTIC = "semantic"
    NO_REFERENTS = "no_referents"
    CANNOT_DISAMBIGUATE = "cannot_disambiguate"
    DEREF = "deref"
    UNRECOGNIZED_TOKEN = "unrecognized_token"
    GRAMMATICAL = "grammatical"


@dataclass
class ParseError:
    """What went wrong, plus the expression or token it went wrong on."""

    kind: ParseErrorKind
    subject: TermAttribute | None = None
    token: str | None = None


def _that_sentence(u: UtteranceBuilder) -> Term:
    # #and(S:[sentence], the(S, [singular]))
    sentence = VariableTermAttribute(u.sort("sentence"), "S")
    return u.term(
        "#and",
        sentence,
        u.term("the", sentence, VariableTermAttribute(u.sort("singular"))),
    )


def parse_error_reply(error: ParseError, u: UtteranceBuilder, listener: str) -> Term:
    """The ``perf.inform.parseerror`` performative explaining ``error`` to ``listener``."""
    me = u.me()
    if error.kind == ParseErrorKind.SEMANTIC:
        content = u.term("verb.understand", me, _that_sentence(u))
    elif error.kind == ParseErrorKind.GRAMMATICAL:
        content = u.term("verb.can", me, u.term("verb.parse", me, _that_sentence(u)))
    elif error.kind == ParseErrorKind.UNRECOGNIZED_TOKEN:
        content = u.term("verb.understand", me, u.symbol(error.token or ""))
    elif error.subject is None:
        content = u.term("verb.understand", me, _that_sentence(u))
    elif error.kind == ParseErrorKind.NO_REFERENTS:
        content = u.term("verb.see", me, error.subject)
    elif error.kind == ParseErrorKind.CANNOT_DISAMBIGUATE:
        content = u.term("verb.can", me, u.term("verb.disambiguate", me, error.subject))
    else:
        content = u.term("verb.understand", me, error.subject)
    return u.perf("perf.inform.parseerror", listener, u.term("#not", content))
