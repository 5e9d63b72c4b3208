"""\"Did you mean\" suggestions for unknown keys.

Siblings are tried first: a close typo of a key that exists next to the
unknown one. Only when no sibling is close enough is the whole defaults
tree searched, in this priority order:

1. the same key name somewhere else (a relocated key),
2. a close edit-distance match,
3. substring containment where the added or removed part is short
   (``orgCreationDisabled`` -> ``userOrgCreationDisabled``).

Candidates are visited in lexicographic order so ties resolve the same way
on every run.
"""

from __future__ import annotations

from collections.abc import Iterable

from .paths import join_path

# Matches must be strictly closer than this many edits.
MAX_DISTANCE = 4


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings (Wagner-Fischer, two rows)."""
    if a == b:
        return 0
    if not a or not b:
        return max(len(a), len(b))

    prev_row = list(range(len(b) + 1))
    curr_row = [0] * (len(b) + 1)
    for i in range(1, len(a) + 1):
        curr_row[0] = i
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            curr_row[j] = min(
                prev_row[j] + 1,
                curr_row[j - 1] + 1,
                prev_row[j - 1] + cost,
            )
        prev_row, curr_row = curr_row, prev_row
    return prev_row[len(b)]


def find_closest_key(key: str, candidates: Iterable[str]) -> str | None:
    """Closest candidate by case-insensitive edit distance, if under the threshold."""
    best = None
    best_dist = MAX_DISTANCE
    lowered = key.lower()
    for candidate in sorted(candidates):
        dist = levenshtein(lowered, candidate.lower())
        if dist < best_dist:
            best_dist = dist
            best = candidate
    return best


def find_deep_suggestion(unknown_path: str, all_paths: dict[str, str]) -> str | None:
    """Search the whole defaults index for a likely intended path."""
    leaf = unknown_path.rsplit(".", 1)[-1].lower()

    exact_match = None
    near_best = None
    near_best_dist = MAX_DISTANCE
    contain_best = None
    contain_best_diff = None

    for path in sorted(all_paths):
        if path == unknown_path:
            continue
        candidate = all_paths[path].lower()

        if candidate == leaf:
            if exact_match is None or len(path) < len(exact_match):
                exact_match = path
            continue

        dist = levenshtein(leaf, candidate)
        if dist < near_best_dist:
            near_best_dist = dist
            near_best = path

        if leaf in candidate or candidate in leaf:
            shorter = min(len(leaf), len(candidate))
            diff = abs(len(candidate) - len(leaf))
            if diff <= shorter // 2 and (contain_best_diff is None or diff < contain_best_diff):
                contain_best_diff = diff
                contain_best = path

    return exact_match or near_best or contain_best


def suggest(
    unknown_path: str,
    siblings: Iterable[str],
    all_paths: dict[str, str] | None = None,
) -> str | None:
    """Suggest the dot-path the user most likely meant for ``unknown_path``."""
    parent, _, key = unknown_path.rpartition(".")
    sibling = find_closest_key(key, siblings)
    if sibling is not None:
        return join_path(parent, sibling)
    if all_paths:
        return find_deep_suggestion(unknown_path, all_paths)
    return None
