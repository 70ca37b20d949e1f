"""Result merging for queries that span several indices.

Merging happens at the document level: the caller gets one globally ranked
list rather than per-index lists glued together. Duplicate suppression by
collapse key is left to each index; no cross-index collapse pass is made.
"""

import heapq
from itertools import islice
from typing import Iterable, List, Sequence

from libs.index_store.base import ScoredDocument


def merge_ranked(
    result_lists: Iterable[Sequence[ScoredDocument]],
    limit: int
) -> List[ScoredDocument]:
    """Merge per-index result lists into one list ordered by descending score.

    Parameters
    - result_lists: Lists already sorted by descending score, in index order
    - limit: Maximum size of the merged list, applied after merging

    Equal scores keep input order: earlier lists first, then each list's own
    rank. A single highly relevant index may fill the whole result.
    """
    if limit <= 0:
        return []
    merged = heapq.merge(*result_lists, key=lambda doc: -doc.score)
    return list(islice(merged, limit))
