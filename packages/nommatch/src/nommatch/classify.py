"""Query shape classification."""

from __future__ import annotations

from nommatch.types import QueryKind, TokenSet


def classify(tokens: TokenSet) -> QueryKind:
    """Label a tokenized query as SIMPLE, TECHNICAL or MIXED.

    SIMPLE has no structured tokens at all. TECHNICAL carries an article
    code and at most a minimal material description: one material word, or
    fewer material words than structured (article, size, brand) tokens.
    Everything else is MIXED.
    """
    if not tokens.structured:
        return QueryKind.SIMPLE
    if tokens.article:
        material_count = len(tokens.material)
        if material_count <= 1 or material_count < len(tokens.structured):
            return QueryKind.TECHNICAL
    return QueryKind.MIXED
