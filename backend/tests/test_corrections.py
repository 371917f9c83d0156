"""
NoteCraft Backend: Correction Applier Tests
=============================================

What we test:
    ✅ apply_one length law and no-op replacement
    ✅ apply_all order independence for disjoint batches
    ✅ Boundary spans (start and end of text, zero length)
    ✅ Atomic rejection of out-of-range batches
    ✅ Overlap detection and rebasing of held batches
"""

import itertools

import pytest

from notecraft.exceptions import OutOfRangeError, OverlappingIssuesError
from notecraft.services.corrections import (
    Issue,
    apply_all,
    apply_one,
    find_overlaps,
    overlaps,
    rebase_issues,
    snapshot_token,
)


def issue(offset, length, *replacements):
    return Issue(offset=offset, length=length, replacements=tuple(replacements))


class TestApplyOne:

    def test_teh_quick_fox(self):
        assert apply_one("Teh quick fox", issue(0, 3, "The"), "The") == "The quick fox"

    @pytest.mark.parametrize(
        "text,span,replacement",
        [
            ("hello world", (0, 5), "goodbye"),
            ("hello world", (6, 5), ""),
            ("hello world", (5, 0), ","),
            ("abc", (0, 3), "x"),
        ],
    )
    def test_length_law(self, text, span, replacement):
        offset, length = span
        result = apply_one(text, issue(offset, length), replacement)
        assert len(result) == len(text) - length + len(replacement)

    def test_replacing_with_same_text_is_noop(self):
        text = "The cat sat"
        assert apply_one(text, issue(4, 3), text[4:7]) == text

    def test_span_at_end_of_text(self):
        assert apply_one("I like cats", issue(7, 4), "dogs") == "I like dogs"

    def test_insert_at_end(self):
        assert apply_one("Hello", issue(5, 0), "!") == "Hello!"

    @pytest.mark.parametrize("offset,length", [(-1, 1), (0, -1), (4, 2), (6, 0)])
    def test_out_of_range_rejected(self, offset, length):
        with pytest.raises(OutOfRangeError) as exc_info:
            apply_one("Hello", Issue(offset=offset, length=length), "x")
        assert exc_info.value.text_length == 5

    def test_astral_characters_count_once(self):
        text = "🎉 Teh party"
        assert apply_one(text, issue(2, 3), "The") == "🎉 The party"


class TestApplyAll:

    def test_empty_batch_returns_text_unchanged(self):
        assert apply_all("Nothing to fix.", []) == "Nothing to fix."

    def test_single_issue(self):
        assert apply_all("Teh quick fox", [issue(0, 3, "The")]) == "The quick fox"

    def test_teh_quick_fox_batch_with_already_correct_issue(self):
        batch = [issue(0, 3, "The"), issue(4, 5, "quick")]
        assert apply_all("Teh quick fox", batch) == "The quick fox"

    def test_same_offset_ties_follow_batch_order(self):
        # Each insert lands at offset 2 of the buffer as already edited, so
        # the later batch entry ends up in front
        batch = [issue(2, 0, "X"), issue(2, 0, "Y")]
        results = {apply_all("abcd", batch) for _ in range(5)}

        assert results == {"abYXcd"}
        assert apply_all("abcd", list(reversed(batch))) == "abXYcd"

    def test_uses_first_candidate(self):
        assert apply_all("Teh fox", [issue(0, 3, "The", "Tea")]) == "The fox"

    def test_skips_issues_without_candidates(self):
        text = "Teh quick fox jumpd"
        batch = [issue(0, 3, "The"), issue(4, 5)]
        assert apply_all(text, batch) == "The quick fox jumpd"

    def test_length_changing_edits_do_not_shift_each_other(self):
        text = "i has a apple and a orange"
        batch = [
            issue(0, 1, "I"),
            issue(2, 3, "have"),
            issue(6, 1, "an"),
            issue(18, 1, "an"),
        ]
        assert apply_all(text, batch) == "I have an apple and an orange"

    def test_disjoint_batch_is_order_independent(self):
        text = "Teh quik brwn fox jumpd"
        batch = [
            issue(0, 3, "The"),
            issue(4, 4, "quick"),
            issue(9, 4, "brown"),
            issue(18, 5, "jumped"),
        ]
        expected = "The quick brown fox jumped"
        for permutation in itertools.permutations(batch):
            assert apply_all(text, list(permutation)) == expected

    def test_boundaries_at_both_ends(self):
        text = "teh end is nigh"
        batch = [issue(0, 3, "The"), issue(11, 4, "near")]
        assert apply_all(text, batch) == "The end is near"

    def test_out_of_range_rejects_whole_batch(self):
        text = "Teh quick fox"
        batch = [issue(0, 3, "The"), issue(10, 10, "dog")]
        with pytest.raises(OutOfRangeError):
            apply_all(text, batch)

    def test_out_of_range_without_candidates_still_rejects(self):
        with pytest.raises(OutOfRangeError):
            apply_all("short", [issue(0, 1, "S"), issue(3, 9)])

    def test_overlaps_are_applied_when_not_rejected(self):
        # Descending application: the later span goes first, then the earlier
        # one rewrites the already-edited buffer
        result = apply_all("abcdef", [issue(0, 4, "X"), issue(2, 2, "YY")])
        assert result == "Xef"

    def test_reject_overlaps(self):
        with pytest.raises(OverlappingIssuesError) as exc_info:
            apply_all("abcdef", [issue(0, 4, "X"), issue(2, 2, "YY")], reject_overlaps=True)
        assert exc_info.value.pairs == 1

    def test_reject_overlaps_ignores_issues_without_candidates(self):
        result = apply_all("abcdef", [issue(0, 4, "X"), issue(2, 2)], reject_overlaps=True)
        assert result == "Xef"

    def test_adjacent_spans_are_not_overlaps(self):
        result = apply_all("abcd", [issue(0, 2, "X"), issue(2, 2, "Y")], reject_overlaps=True)
        assert result == "XY"


class TestOverlaps:

    def test_intersecting_spans(self):
        assert overlaps(issue(0, 4), issue(3, 2))

    def test_same_start_counts_even_when_empty(self):
        assert overlaps(issue(5, 0), issue(5, 3))

    def test_adjacent_spans(self):
        assert not overlaps(issue(0, 3), issue(3, 3))

    def test_find_overlaps_reports_each_pair(self):
        batch = [issue(0, 5), issue(2, 1), issue(4, 3), issue(10, 1)]
        pairs = find_overlaps(batch)
        assert len(pairs) == 2
        assert all(overlaps(a, b) for a, b in pairs)

    def test_find_overlaps_disjoint(self):
        assert find_overlaps([issue(0, 1), issue(2, 1), issue(4, 1)]) == []


class TestRebase:

    def test_later_issues_shift_by_length_delta(self):
        applied = issue(0, 3, "Thee")
        later = issue(10, 2, "x")
        assert rebase_issues([applied, later], applied, "Thee") == [later.shifted(1)]

    def test_earlier_issues_kept(self):
        applied = issue(10, 4, "a")
        earlier = issue(0, 3, "b")
        assert rebase_issues([earlier, applied], applied, "a") == [earlier]

    def test_overlapping_issues_dropped(self):
        applied = issue(4, 5, "quick")
        overlapping = issue(6, 5, "x")
        assert rebase_issues([applied, overlapping], applied, "quick") == []

    def test_rebased_batch_applies_to_new_text(self):
        text = "Teh quik fox"
        batch = [issue(0, 3, "The"), issue(4, 4, "quick")]
        first = batch[1]
        text = apply_one(text, first, "quick")
        rest = rebase_issues(batch, first, "quick")
        assert apply_all(text, rest) == "The quick fox"

    def test_sequential_one_by_one_matches_batch(self):
        text = "i has a apple"
        batch = [issue(0, 1, "I"), issue(2, 3, "have"), issue(6, 1, "an")]
        remaining = list(batch)
        current = text
        while remaining:
            head = remaining[0]
            current = apply_one(current, head, head.replacements[0])
            remaining = rebase_issues(remaining, head, head.replacements[0])
        assert current == apply_all(text, batch)


class TestSnapshotToken:

    def test_stable_and_hex(self):
        token = snapshot_token("Teh quick fox")
        assert token == snapshot_token("Teh quick fox")
        assert len(token) == 64

    def test_differs_for_different_text(self):
        assert snapshot_token("a") != snapshot_token("b")
