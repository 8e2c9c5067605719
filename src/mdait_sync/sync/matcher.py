"""Match source units to target units.

Matching runs in two phases:

1. **Anchors** -- a source unit is paired with the first unmatched target
   whose recorded ``from`` equals the source's recorded marker hash.  Sources
   left unanchored then try the fingerprint of their current content, which
   is what a resolved conflict records as ``from`` while the source marker
   still holds the stale hash.  This follows lineage regardless of position.
2. **Positional fallback** -- anchors split both sequences into aligned
   intervals.  Inside each interval remaining source units are paired by
   position with target units that have *no* ``from`` at all.  A target
   that already descends from some other source is never re-attached by
   position and becomes an orphan instead.

Anchors that are out of order (reordered units) still pair up, but only
the longest in-order chain of anchors bounds the intervals.  The result
follows target document order, with new source units placed at the end of
their interval.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Sequence

from mdait_sync.markdown.fingerprint import Fingerprinter
from mdait_sync.markdown.marker import NEED_VERIFY_DELETION, Marker
from mdait_sync.markdown.unit import Unit

from .models import UnitPair

logger = logging.getLogger(__name__)

_default_fingerprinter = Fingerprinter()


def _source_keys(unit: Unit, fingerprinter: Fingerprinter) -> tuple[str, str]:
    """Recorded marker hash (or computed if absent) and the computed hash."""
    computed = unit.fingerprint(fingerprinter)
    return unit.recorded_hash() or computed, computed


def _increasing_anchors(
    anchors: list[tuple[int, int]],
) -> list[tuple[int, int]]:
    """Longest chain of anchors ordered on both sides (earliest on ties)."""
    if not anchors:
        return []
    lengths = [1] * len(anchors)
    previous = [-1] * len(anchors)
    for i, (_, target_i) in enumerate(anchors):
        for j in range(i):
            if anchors[j][1] < target_i and lengths[j] + 1 > lengths[i]:
                lengths[i] = lengths[j] + 1
                previous[i] = j
    best = max(range(len(anchors)), key=lengths.__getitem__)
    chain: list[tuple[int, int]] = []
    while best != -1:
        chain.append(anchors[best])
        best = previous[best]
    chain.reverse()
    return chain


def match_units(
    source_units: Sequence[Unit],
    target_units: Sequence[Unit],
    fingerprinter: Fingerprinter | None = None,
) -> list[UnitPair]:
    """Pair *source_units* with *target_units*.

    Returns:
        Pairs in document order. ``UnitPair(source, None)`` is a new source
        unit, ``UnitPair(None, target)`` an orphaned target unit (with or
        without lineage).
    """
    fp = fingerprinter or _default_fingerprinter
    target_from = [t.source_hash() for t in target_units]

    # Phase 1: lineage anchors
    keys = [_source_keys(source, fp) for source in source_units]
    anchors: dict[int, int] = {}
    claimed: set[int] = set()
    for which in (0, 1):
        for s_idx in range(len(source_units)):
            if s_idx in anchors:
                continue
            key = keys[s_idx][which]
            for t_idx, lineage in enumerate(target_from):
                if t_idx in claimed or not lineage:
                    continue
                if lineage == key:
                    anchors[s_idx] = t_idx
                    claimed.add(t_idx)
                    break

    bounds = _increasing_anchors(sorted(anchors.items()))
    source_of_target = {t: s for s, t in anchors.items()}

    # Phase 2: positional matching inside each interval
    pairs: list[UnitPair] = []
    prev_s, prev_t = -1, -1
    for bound_s, bound_t in [*bounds, (len(source_units), len(target_units))]:
        pending = deque(
            s for s in range(prev_s + 1, bound_s) if s not in anchors
        )
        for t_idx in range(prev_t + 1, bound_t):
            target = target_units[t_idx]
            if t_idx in source_of_target:
                pairs.append(UnitPair(source_units[source_of_target[t_idx]], target))
            elif target_from[t_idx]:
                pairs.append(UnitPair(None, target))
            elif pending:
                pairs.append(UnitPair(source_units[pending.popleft()], target))
            else:
                pairs.append(UnitPair(None, target))
        for s_idx in pending:
            pairs.append(UnitPair(source_units[s_idx], None))
        if bound_s < len(source_units):
            pairs.append(UnitPair(source_units[bound_s], target_units[bound_t]))
        prev_s, prev_t = bound_s, bound_t

    logger.debug(
        "Matched %d source / %d target units: %d anchors, %d pairs",
        len(source_units),
        len(target_units),
        len(anchors),
        len(pairs),
    )
    return pairs


def build_synced_targets(
    pairs: Sequence[UnitPair],
    auto_delete: bool = True,
    fingerprinter: Fingerprinter | None = None,
) -> list[Unit]:
    """Turn *pairs* into the synced target unit list.

    - matched pair: the target unit as is
    - new source unit: a copy of the source flagged ``need:translate`` with
      ``from`` set to the source fingerprint
    - orphaned target: dropped when *auto_delete*, otherwise kept with its
      hash refreshed and ``need:verify-deletion``
    """
    fp = fingerprinter or _default_fingerprinter
    targets: list[Unit] = []
    for pair in pairs:
        if pair.is_matched:
            targets.append(pair.target)
        elif pair.is_new_source:
            targets.append(
                Unit.translation_stub(pair.source, pair.source.fingerprint(fp))
            )
        elif pair.is_orphan_target:
            if auto_delete:
                logger.debug("Dropping orphaned target unit %r", pair.target.title)
                continue
            marker = (pair.target.marker or Marker()).with_hash(
                pair.target.fingerprint(fp)
            )
            targets.append(pair.target.with_marker(marker.with_need(NEED_VERIFY_DELETION)))
    return targets
