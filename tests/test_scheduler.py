from collections import Counter

import pytest
from hypothesis import given
from hypothesis import settings
from hypothesis import strategies as st

from conftest import make_log
from reorder.repo import Commit
from reorder.scheduler import AnchorNotFound
from reorder.scheduler import EmptyLog
from reorder.scheduler import EmptyMoveSet
from reorder.scheduler import Phase
from reorder.scheduler import ScheduleResult
from reorder.scheduler import SchedulerError
from reorder.scheduler import compute_script
from reorder.script import PICK


def hashes(result: ScheduleResult):
    return [e.hash for e in result.unwrap()]


def commit(name: str) -> Commit:
    return Commit(hash=name, summary=f"commit {name}")


@st.composite
def reorder_inputs(draw):
    """Generate a log, a move set in arbitrary order, and an optional anchor.

    :returns:
        Tuple of (log newest-first, oldest-first names, move list, anchor or None)
    """
    n = draw(st.integers(min_value=1, max_value=12))
    names = [f"{i:04x}" for i in range(n)]
    moved = draw(st.sets(st.sampled_from(names), min_size=1, max_size=n))
    move_list = draw(st.permutations(sorted(moved)))

    candidates = [h for h in names if h not in moved]
    anchor = None
    if candidates and draw(st.booleans()):
        anchor = commit(draw(st.sampled_from(candidates)))

    return make_log(*names), names, list(move_list), anchor


class TestComputeScript:
    def test_moves_block_around_anchor(self):
        """Test moving the oldest and newest commit after a middle commit.

        Given:
            A log A, B, C, D, E and a move set {A, E} anchored on C
        When:
            The script is computed
        Then:
            It should read B, C, A, E, D
        """
        # Act
        result = compute_script(make_log(*"ABCDE"), {"A", "E"}, commit("C"))

        # Assert
        assert result.ok
        assert hashes(result) == ["B", "C", "A", "E", "D"]

    def test_moves_to_end_without_anchor(self):
        result = compute_script(make_log(*"ABCDE"), {"B"}, None)

        assert hashes(result) == ["A", "C", "D", "E", "B"]

    def test_moving_everything_keeps_order(self):
        result = compute_script(make_log(*"ABC"), {"A", "B", "C"}, None)

        assert hashes(result) == ["A", "B", "C"]

    def test_anchor_at_root(self):
        result = compute_script(make_log(*"ABCD"), {"D", "C"}, commit("A"))

        assert hashes(result) == ["A", "C", "D", "B"]

    def test_anchor_at_tip(self):
        result = compute_script(make_log(*"ABCD"), {"A", "B"}, commit("D"))

        assert hashes(result) == ["C", "D", "A", "B"]

    def test_emits_pick_with_summary(self):
        script = compute_script(make_log(*"AB"), {"A"}, None).unwrap()

        assert [(e.op, e.hash, e.summary) for e in script] == [
            (PICK, "B", "commit B"),
            (PICK, "A", "commit A"),
        ]

    def test_ignores_caller_order(self):
        """Test the moved block follows log order, never the caller's order."""
        log = make_log(*"ABCDEF")

        forward = compute_script(log, ["B", "D", "F"], commit("C"))
        backward = compute_script(log, ["F", "D", "B"], commit("C"))

        assert hashes(forward) == hashes(backward) == ["A", "C", "B", "D", "F", "E"]

    def test_unknown_moved_hash_is_ignored(self):
        result = compute_script(make_log(*"ABC"), {"A", "Z"}, None)

        assert hashes(result) == ["B", "C", "A"]

    def test_anchor_not_in_log(self):
        """Test a missing anchor fails instead of dropping the moved commits.

        Given:
            A log A, B, C and an anchor Z that is not in the log
        When:
            The script is computed
        Then:
            The result should carry AnchorNotFound and no script
        """
        # Act
        result = compute_script(make_log(*"ABC"), {"A"}, commit("Z"))

        # Assert
        assert not result.ok
        assert result.script is None
        assert isinstance(result.error, AnchorNotFound)
        assert result.error.anchor_hash == "Z"

    def test_anchor_that_is_also_moved_is_never_visited(self):
        result = compute_script(make_log(*"ABC"), {"A", "B"}, commit("B"))

        assert isinstance(result.error, AnchorNotFound)

    def test_empty_log(self):
        result = compute_script([], {"A"}, None)

        assert isinstance(result.error, EmptyLog)

    def test_empty_move_set(self):
        result = compute_script(make_log(*"ABC"), set(), commit("B"))

        assert isinstance(result.error, EmptyMoveSet)

    def test_empty_move_set_checked_before_empty_log(self):
        result = compute_script([], [], commit("Z"))

        assert isinstance(result.error, EmptyMoveSet)

    def test_unwrap_raises_carried_error(self):
        result = compute_script(make_log(*"ABC"), {"A"}, commit("Z"))

        with pytest.raises(AnchorNotFound):
            result.unwrap()

    def test_errors_share_base_class(self):
        for error in (EmptyMoveSet(), EmptyLog(), AnchorNotFound("abc")):
            assert isinstance(error, SchedulerError)

    def test_does_not_mutate_inputs(self):
        log = make_log(*"ABCD")
        snapshot = list(log)
        move = ["D", "A"]

        compute_script(log, move, commit("B"))

        assert log == snapshot
        assert move == ["D", "A"]

    def test_accepts_generator_move_set(self):
        result = compute_script(make_log(*"ABC"), (h for h in "A"), None)

        assert hashes(result) == ["B", "C", "A"]

    def test_phase_values(self):
        assert {p.name for p in Phase} == {"BEFORE_ANCHOR", "AFTER_ANCHOR"}


class TestComputeScriptProperties:
    @settings(max_examples=200)
    @given(inputs=reorder_inputs())
    def test_conservation(self, inputs):
        log, _names, move, anchor = inputs

        script = compute_script(log, move, anchor).unwrap()

        assert len(script) == len(log)
        assert Counter(e.hash for e in script) == Counter(c.hash for c in log)

    @settings(max_examples=200)
    @given(inputs=reorder_inputs())
    def test_non_movers_keep_relative_order(self, inputs):
        log, names, move, anchor = inputs
        anchor_hash = anchor.hash if anchor else None

        script = compute_script(log, move, anchor).unwrap()

        def keep(h):
            return h not in move and h != anchor_hash

        assert [e.hash for e in script if keep(e.hash)] == [h for h in names if keep(h)]

    @settings(max_examples=200)
    @given(inputs=reorder_inputs())
    def test_movers_keep_log_order(self, inputs):
        log, names, move, anchor = inputs

        script = compute_script(log, move, anchor).unwrap()

        assert [e.hash for e in script if e.hash in move] == [h for h in names if h in move]

    @settings(max_examples=200)
    @given(inputs=reorder_inputs())
    def test_block_is_contiguous(self, inputs):
        """Test the moved commits form one run.

        With an anchor the run starts at the anchor. Without one it ends
        the script.
        """
        log, names, move, anchor = inputs

        order = [e.hash for e in compute_script(log, move, anchor).unwrap()]
        block = [h for h in names if h in move]

        if anchor is None:
            assert order[len(order) - len(block):] == block
        else:
            start = order.index(anchor.hash)
            assert order[start:start + len(block) + 1] == [anchor.hash] + block

    @settings(max_examples=200)
    @given(inputs=reorder_inputs())
    def test_matches_reference_layout(self, inputs):
        log, names, move, anchor = inputs
        moved = [h for h in names if h in move]
        kept = [h for h in names if h not in move]

        if anchor is None:
            expected = kept + moved
        else:
            i = kept.index(anchor.hash)
            expected = kept[:i] + [anchor.hash] + moved + kept[i + 1:]

        assert [e.hash for e in compute_script(log, move, anchor).unwrap()] == expected

    @given(
        names=st.lists(st.text("0123456789abcdef", min_size=4, max_size=8), min_size=1, max_size=8, unique=True),
        missing=st.just("zzzz"),
    )
    def test_missing_anchor_always_fails(self, names, missing):
        log = make_log(*names)

        result = compute_script(log, [names[0]], commit(missing))

        assert isinstance(result.error, AnchorNotFound)
        assert result.script is None
