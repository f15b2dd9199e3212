"""Tests for replaying problem history into mastery state."""

import pytest

from curriculum_engine.core.app_exceptions import HistoryOrderError
from curriculum_engine.learning_engine.bkt.core import update_mastery, update_on_correct
from curriculum_engine.learning_engine.bkt.history import (
    compute_mastery,
    merge_histories,
    practicing_skill_ids,
    replay,
)
from curriculum_engine.learning_engine.bkt.priors import get_default_params
from curriculum_engine.learning_engine.constants import MasteryClassification, RecordSource
from tests.helpers.factories import make_history, make_record

ADD = "basic.directAddition"
FIVE = "fiveComplements.4=5-1"


class TestComputeMastery:
    """Test chronological replay."""

    def test_empty_history(self):
        """No records means no states."""
        assert compute_mastery([]) == {}

    def test_state_created_lazily_from_prior(self):
        """First answer starts from the skill prior."""
        states = compute_mastery([make_record(ADD, True)])
        expected = update_on_correct(get_default_params(ADD).p_init, get_default_params(ADD))
        assert set(states) == {ADD}
        assert abs(states[ADD].p_known - expected) < 1e-9
        assert states[ADD].opportunities == 1
        assert states[ADD].successes == 1

    def test_multi_skill_record_updates_each_skill(self):
        """A conjunctive record touches every exercised skill."""
        states = compute_mastery([make_record([ADD, FIVE], False)])
        assert states[ADD].p_known < get_default_params(ADD).p_init
        assert states[FIVE].p_known < get_default_params(FIVE).p_init
        assert states[ADD].opportunities == states[FIVE].opportunities == 1

    def test_out_of_order_rejected(self):
        """Replay never re-sorts; older records after newer ones are an error."""
        history = [make_record(ADD, minute=5), make_record(ADD, minute=1)]
        with pytest.raises(HistoryOrderError) as exc_info:
            compute_mastery(history)
        assert exc_info.value.index == 1
        assert exc_info.value.code == "HISTORY_OUT_OF_ORDER"

    def test_equal_timestamps_allowed(self):
        history = [make_record(ADD, minute=1), make_record(ADD, minute=1, is_correct=False)]
        assert compute_mastery(history)[ADD].opportunities == 2

    def test_confidence_and_provisional(self):
        """Confidence grows with opportunities; low confidence is provisional."""
        states = compute_mastery(make_history(ADD, 5))
        assert abs(states[ADD].confidence - 0.2) < 1e-9
        assert states[ADD].provisional is True

        states = compute_mastery(make_history(ADD, 25))
        assert states[ADD].confidence == 1.0
        assert states[ADD].provisional is False
        assert states[ADD].classification == MasteryClassification.STRONG

    def test_session_count(self):
        """Distinct sessions are counted; missing session ids group by day."""
        history = make_history(ADD, 9, sessions=3) + [
            make_record(ADD, minute=20, session_id=None),
            make_record(ADD, minute=21, session_id=None),
        ]
        assert compute_mastery(history)[ADD].session_count == 4

    def test_recency_refresh_only_touches_tracked_skills(self):
        """Recency refresh moves last practiced forward without a mastery update."""
        history = [
            make_record(ADD, minute=0),
            make_record([ADD, FIVE], minute=60, source=RecordSource.RECENCY_REFRESH),
        ]
        states = compute_mastery(history)
        assert FIVE not in states
        assert states[ADD].opportunities == 1
        assert states[ADD].last_practiced_at == history[1].timestamp
        assert states[ADD].p_known == compute_mastery(history[:1])[ADD].p_known

    def test_teacher_excluded_ignored(self):
        history = [make_record(ADD, minute=0), make_record(ADD, False, minute=1, source=RecordSource.TEACHER_EXCLUDED)]
        assert compute_mastery(history) == compute_mastery(history[:1])

    def test_teacher_corrected_counts(self):
        history = [make_record(ADD, True, source=RecordSource.TEACHER_CORRECTED)]
        assert compute_mastery(history)[ADD].successes == 1

    def test_wrong_retry_has_no_effect_on_mastery(self):
        """Wrong retries carry zero weight and are not opportunities."""
        first = make_record(ADD, False, minute=0)
        retry = make_record(ADD, False, minute=1, is_retry=True, epoch_number=1)
        before = compute_mastery([first])[ADD]
        after = compute_mastery([first, retry])[ADD]
        assert after.p_known == before.p_known
        assert after.opportunities == 1
        assert len(after.recent_attempts) == 1

    def test_correct_retry_is_weighted(self):
        """A correct first-epoch retry moves mastery half way."""
        first = make_record(ADD, False, minute=0)
        retry = make_record(ADD, True, minute=1, is_retry=True, epoch_number=1)
        assert retry.mastery_weight == 0.5

        prior = compute_mastery([first])[ADD].p_known
        expected, _ = update_mastery(prior, True, get_default_params(ADD), weight=0.5)
        assert abs(compute_mastery([first, retry])[ADD].p_known - expected) < 1e-9

    def test_window_bounded(self):
        states = compute_mastery(make_history(ADD, 40), window_size=15)
        assert len(states[ADD].recent_attempts) == 15


class TestReplayResume:
    """Test resuming a replay from earlier state."""

    def test_prefix_then_suffix_equals_whole(self):
        history = make_history(ADD, 12, correct=[True, False, True, True, False, True] * 2)
        history += [make_record([ADD, FIVE], i % 2 == 0, minute=30 + i, session_id="late") for i in range(6)]
        whole = compute_mastery(history)
        resumed = replay(history[7:], compute_mastery(history[:7]))
        assert resumed == whole

    def test_resume_rejects_older_records(self):
        prefix = compute_mastery([make_record(ADD, minute=10)])
        with pytest.raises(HistoryOrderError):
            replay([make_record(ADD, minute=5)], prefix)


class TestHistoryHelpers:
    def test_practicing_skill_ids(self):
        states = compute_mastery([make_record([ADD, FIVE])])
        assert practicing_skill_ids(states) == [ADD, FIVE]

    def test_merge_histories_checks_seams(self):
        early = [make_record(ADD, minute=0), make_record(ADD, minute=1)]
        late = [make_record(ADD, minute=2)]
        assert len(merge_histories(early, late)) == 3
        with pytest.raises(HistoryOrderError):
            merge_histories(late, early)
