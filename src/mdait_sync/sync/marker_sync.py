"""Marker state machine.

Given the current fingerprints of a matched pair and the markers recorded
at the last sync, compute the new markers and classify the change:

==================  ==========================================================
new                 no usable target marker: ``hash=tgt, from=src, need=translate``
none                ``from == src`` and ``hash == tgt``
source-changed      ``from != src``, ``hash == tgt``: ``from=src``,
                    ``need=revise@<old from>`` (``translate`` without prior from)
target-changed      ``hash != tgt``, ``from == src``: ``hash=tgt``, need untouched
conflict            both differ: ``need=solve-conflict`` on both sides, hash
                    and from stay as they are until someone resolves it
==================  ==========================================================

All functions are pure: markers and front matter are never mutated in
place.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from mdait_sync.markdown.fingerprint import Fingerprinter
from mdait_sync.markdown.front_matter import (
    SYNC_LEVEL_KEY,
    FrontMatter,
    front_matter_fingerprint,
    get_front_matter_marker,
    set_front_matter_marker,
    translation_keys,
)
from mdait_sync.markdown.marker import (
    NEED_SOLVE_CONFLICT,
    NEED_TRANSLATE,
    Marker,
    revise_need,
)
from mdait_sync.markdown.unit import Unit

from .matcher import build_synced_targets, match_units
from .models import (
    ChangeKind,
    FrontMatterSyncResult,
    MarkerSyncResult,
    PairSyncResult,
    UnitPair,
    UnitSyncOutcome,
)

logger = logging.getLogger(__name__)

_default_fingerprinter = Fingerprinter()


# ----------------------------------------------------------------------
# Single markers
# ----------------------------------------------------------------------


def sync_source_marker(current_hash: str, existing: Marker | None) -> MarkerSyncResult:
    """Refresh a source marker: only ``hash`` is ever updated."""
    if existing is None:
        return MarkerSyncResult(Marker(hash=current_hash), ChangeKind.NEW, True)
    if existing.hash == current_hash:
        return MarkerSyncResult(existing, ChangeKind.NONE, False)
    return MarkerSyncResult(
        existing.with_hash(current_hash), ChangeKind.SOURCE_CHANGED, True
    )


def _pending_need(existing: Marker) -> str:
    """Need to set when the source moved under an unchanged target."""
    if existing.from_:
        return revise_need(existing.from_)
    return NEED_TRANSLATE


def sync_target_marker(
    source_hash: str, target_hash: str, existing: Marker | None
) -> MarkerSyncResult:
    """Apply the five-case state machine to a target marker."""
    if existing is None or (not existing.hash and not existing.from_):
        marker = Marker(
            hash=target_hash or source_hash,
            from_=source_hash,
            need=NEED_TRANSLATE,
        )
        return MarkerSyncResult(marker, ChangeKind.NEW, marker != existing)

    source_changed = existing.from_ != source_hash
    target_changed = existing.hash != target_hash

    if existing.has_conflict():
        if source_changed or target_changed:
            return MarkerSyncResult(existing, ChangeKind.CONFLICT, False)
        # Both sides match the recorded hashes again: resolved
        return MarkerSyncResult(existing.without_need(), ChangeKind.NONE, True)

    if not source_changed and not target_changed:
        return MarkerSyncResult(existing, ChangeKind.NONE, False)

    if source_changed and not target_changed:
        marker = existing.with_from(source_hash).with_need(_pending_need(existing))
        return MarkerSyncResult(marker, ChangeKind.SOURCE_CHANGED, True)

    if target_changed and not source_changed:
        return MarkerSyncResult(
            existing.with_hash(target_hash), ChangeKind.TARGET_CHANGED, True
        )

    if not existing.from_:
        # Never synced before: nothing to conflict with
        marker = Marker(hash=target_hash, from_=source_hash, need=NEED_TRANSLATE)
        return MarkerSyncResult(marker, ChangeKind.NEW, True)

    return MarkerSyncResult(
        existing.with_need(NEED_SOLVE_CONFLICT), ChangeKind.CONFLICT, True
    )


def sync_marker_pair(
    source_hash: str,
    target_hash: str,
    source_marker: Marker | None,
    target_marker: Marker | None,
) -> PairSyncResult:
    """Sync both markers of a matched pair.

    On conflict both sides get ``need=solve-conflict`` and neither hash is
    advanced.  Once the target conflict is resolved the source flag is
    cleared again.
    """
    target = sync_target_marker(source_hash, target_hash, target_marker)

    if target.kind == ChangeKind.CONFLICT:
        base = source_marker or Marker(hash=source_hash)
        source_new = base.with_need(NEED_SOLVE_CONFLICT)
        logger.debug("Conflict between source %s and target %s", source_hash, target_hash)
    else:
        source_new = sync_source_marker(source_hash, source_marker).marker
        if source_new.has_conflict():
            source_new = source_new.without_need()

    return PairSyncResult(
        source_marker=source_new,
        target_marker=target.marker,
        kind=target.kind,
        source_changed=source_new != source_marker,
        target_changed=target.changed,
    )


# ----------------------------------------------------------------------
# Whole unit lists
# ----------------------------------------------------------------------


def sync_units(
    source_units: Sequence[Unit],
    target_units: Sequence[Unit],
    fingerprinter: Fingerprinter | None = None,
    auto_delete: bool = True,
) -> UnitSyncOutcome:
    """Match units, run the state machine on every pair and build targets.

    Source units come back in their original order, target units in the
    synced document order.
    """
    fp = fingerprinter or _default_fingerprinter
    pairs = match_units(source_units, target_units, fp)

    updated_sources: dict[int, Unit] = {}
    synced_pairs: list[UnitPair] = []
    changes: list[ChangeKind] = []
    source_changed = False

    for pair in pairs:
        source, target = pair.source, pair.target
        if source is None:
            synced_pairs.append(pair)
            continue

        source_hash = source.fingerprint(fp)
        if target is None:
            result = sync_source_marker(source_hash, source.marker)
            new_source = source.with_marker(result.marker)
            changes.append(ChangeKind.NEW)
            source_changed = source_changed or result.changed
            synced_pairs.append(UnitPair(new_source, None))
        else:
            pair_result = sync_marker_pair(
                source_hash, target.fingerprint(fp), source.marker, target.marker
            )
            new_source = source.with_marker(pair_result.source_marker)
            changes.append(pair_result.kind)
            source_changed = source_changed or pair_result.source_changed
            synced_pairs.append(
                UnitPair(new_source, target.with_marker(pair_result.target_marker))
            )
        updated_sources[id(source)] = new_source

    return UnitSyncOutcome(
        source_units=[updated_sources.get(id(u), u) for u in source_units],
        target_units=build_synced_targets(synced_pairs, auto_delete, fp),
        changes=changes,
        source_changed=source_changed,
    )


# ----------------------------------------------------------------------
# Front matter
# ----------------------------------------------------------------------


def sync_front_matter(
    source_fm: FrontMatter | None,
    target_fm: FrontMatter | None,
    keys: Iterable[str],
    fingerprinter: Fingerprinter | None = None,
) -> FrontMatterSyncResult:
    """Track the translatable front matter values with a marker.

    The values of *keys* act as one synthetic unit.  Nothing happens when
    no keys are configured or all source values are empty.  A missing
    target front matter is created with the source values copied over.
    """
    fp = fingerprinter or _default_fingerprinter
    keys = translation_keys(keys)
    skipped = FrontMatterSyncResult(processed=False, source=source_fm, target=target_fm)
    if not keys or source_fm is None:
        return skipped

    source_hash = front_matter_fingerprint(source_fm, keys, fp)
    if source_hash is None:
        return skipped

    source = source_fm.copy()
    target = target_fm.copy() if target_fm is not None else FrontMatter.empty()
    target_marker = get_front_matter_marker(target)

    if target_marker is None:
        for key in keys:
            if not target.has(key) and source.has(key):
                target.set(key, source.get(key))

    target_hash = front_matter_fingerprint(target, keys, fp, allow_empty=True)
    result = sync_marker_pair(
        source_hash,
        target_hash or fp.empty,
        get_front_matter_marker(source),
        target_marker,
    )
    set_front_matter_marker(source, result.source_marker)
    set_front_matter_marker(target, result.target_marker)

    return FrontMatterSyncResult(
        processed=True,
        source=source,
        target=target,
        kind=result.kind,
        source_changed=source.stringify() != source_fm.stringify(),
        target_changed=target_fm is None or target.stringify() != target_fm.stringify(),
    )


def sync_level_setting(
    source_fm: FrontMatter | None, target_fm: FrontMatter | None
) -> tuple[FrontMatter | None, bool]:
    """Mirror ``mdait.sync.level`` from the source into the target.

    Returns:
        ``(target_front_matter, changed)``.
    """
    level = source_fm.get(SYNC_LEVEL_KEY) if source_fm is not None else None
    if level is None:
        if target_fm is None or not target_fm.has(SYNC_LEVEL_KEY):
            return target_fm, False
        target = target_fm.copy()
        target.delete(SYNC_LEVEL_KEY)
        return target, True

    if target_fm is not None and target_fm.get(SYNC_LEVEL_KEY) == level:
        return target_fm, False
    target = target_fm.copy() if target_fm is not None else FrontMatter.empty()
    target.set(SYNC_LEVEL_KEY, level)
    return target, True
