# FILE: backend/lumendocs/services/matching.py
# Display-name matching between metadata records and corpus listing entries.
# Priority: exact name, then substring either way, then extension-stripped
# equality/prefix. Lower tier always wins; within a tier the newest file wins.

import os
from enum import IntEnum
from typing import Collection, Iterable, List, Optional, Sequence

from ..models.document import CorpusFile


class MatchTier(IntEnum):
    EXACT = 1
    SUBSTRING = 2
    STEM = 3


def strip_extension(name: str) -> str:
    return os.path.splitext(name)[0]


def key_basename(object_key: str) -> str:
    return object_key.rstrip("/").rsplit("/", 1)[-1]


def match_tier(name: str, candidate: str) -> Optional[MatchTier]:
    if not name or not candidate:
        return None
    if name == candidate:
        return MatchTier.EXACT
    if name in candidate or candidate in name:
        return MatchTier.SUBSTRING
    name_stem, candidate_stem = strip_extension(name), strip_extension(candidate)
    if name_stem and candidate_stem and (
        name_stem == candidate_stem
        or candidate.startswith(name_stem)
        or name.startswith(candidate_stem)
    ):
        return MatchTier.STEM
    return None


def best_tier(search_terms: Sequence[str], candidate: str) -> Optional[MatchTier]:
    tiers = [t for t in (match_tier(term, candidate) for term in search_terms) if t is not None]
    return min(tiers) if tiers else None


def _newest_first(files: Iterable[CorpusFile]) -> List[CorpusFile]:
    # Listing order is kept for files without a createTime.
    return sorted(files, key=lambda f: f.create_time or "", reverse=True)


def candidates_at_tier(
    search_terms: Sequence[str],
    files: Iterable[CorpusFile],
    tier: MatchTier,
    exclude_ids: Collection[str] = (),
) -> List[CorpusFile]:
    matched = [
        f for f in files
        if f.id not in exclude_ids and best_tier(search_terms, f.display_name) == tier
    ]
    return _newest_first(matched)


def find_best_match(
    search_terms: Sequence[str],
    files: Sequence[CorpusFile],
    exclude_ids: Collection[str] = (),
) -> Optional[CorpusFile]:
    for tier in MatchTier:
        candidates = candidates_at_tier(search_terms, files, tier, exclude_ids)
        if candidates:
            return candidates[0]
    return None
