"""Context assembler: merge direct + semantic evidence, dedup, bound the size.

Pipeline:
  1. Start from every direct item (exact, auditable) in gathering order.
  2. Append semantic items whose dedup key is not already present.
  3. Truncate to ``max_items``, preserving order — semantic overflow is
     dropped before any direct item is.
"""

from __future__ import annotations

from sidekick.rag.evidence import EvidenceItem

MAX_CONTEXT_ITEMS = 20


def merge(
    direct: list[EvidenceItem],
    semantic: list[EvidenceItem],
    max_items: int = MAX_CONTEXT_ITEMS,
) -> list[EvidenceItem]:
    """Return the bounded, deduplicated evidence list passed to the model.

    Direct items are authoritative and always kept. A semantic item is kept
    only when it has no dedup key or its key is not yet in the list, so no
    semantic match ever repeats an entity the direct lookups already cover.
    """
    if max_items < 1:
        raise ValueError(f"max_items must be >= 1, got {max_items}")

    merged = list(direct)
    seen = {item.dedup_key for item in merged} - {None}
    for item in semantic:
        key = item.dedup_key
        if key is not None:
            if key in seen:
                continue
            seen.add(key)
        merged.append(item)
    return merged[:max_items]
