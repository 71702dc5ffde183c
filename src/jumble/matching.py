"""Tiered name matching: exact, then case-insensitive, then unique substring.

Each matcher returns the names it accepts. The first matcher that
accepts exactly one name decides; one that accepts several is an
ambiguous match. Later tiers never override an earlier decision, so a
caller can always reach a name by typing it exactly.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from jumble.errors import AmbiguousMatchError, NotFoundError

Matcher = Callable[[str, list[str]], list[str]]


def exact(query: str, names: list[str]) -> list[str]:
    return [n for n in names if n == query]


def case_insensitive(query: str, names: list[str]) -> list[str]:
    q = query.casefold()
    return [n for n in names if n.casefold() == q]


def substring(query: str, names: list[str]) -> list[str]:
    q = query.casefold()
    return [n for n in names if q in n.casefold()]


DEFAULT_MATCHERS: tuple[Matcher, ...] = (exact, case_insensitive, substring)


def match_name(
    query: str,
    names: Iterable[str],
    what: str = "name",
    matchers: tuple[Matcher, ...] = DEFAULT_MATCHERS,
) -> str:
    """Resolve *query* to one of *names*.

    Raises NotFoundError (listing *names*) when no tier matches, and
    AmbiguousMatchError (listing the candidates) when a tier matches more
    than one name.
    """
    pool = sorted(names)
    if query:
        for matcher in matchers:
            hits = matcher(query, pool)
            if len(hits) == 1:
                return hits[0]
            if len(hits) > 1:
                raise AmbiguousMatchError(what, query, hits)
    raise NotFoundError(
        f"{what.capitalize()} '{query}' not found."
        + (f" Available: {', '.join(pool)}" if pool else ""),
        available=pool,
    )
