from datetime import timedelta
from unittest import TestCase

from votely.errors import ConflictError, ElectionNotOngoingError, ValidationError
from votely.lifecycle import (
    ENDED,
    ONGOING,
    UPCOMING,
    derived_status,
    effective_status,
    ensure_dates_mutable,
    ensure_no_votes,
    ensure_ongoing,
    ensure_window,
    results_visible,
    transition,
)

from tests.factories import T0


def election(status=None, basis=None):
    return {
        "start_date": T0,
        "end_date": T0 + timedelta(hours=1),
        "status": status,
        "status_basis": basis,
    }


class DerivedStatusTests(TestCase):
    def test_window_boundaries(self):
        e = election()
        self.assertEqual(derived_status(e, T0 - timedelta(seconds=1)), UPCOMING)
        self.assertEqual(derived_status(e, T0), ONGOING)
        self.assertEqual(derived_status(e, T0 + timedelta(minutes=59)), ONGOING)
        self.assertEqual(derived_status(e, T0 + timedelta(hours=1)), ENDED)

    def test_naive_stored_dates_are_read_as_utc(self):
        e = {"start_date": T0.replace(tzinfo=None), "end_date": (T0 + timedelta(hours=1)).replace(tzinfo=None)}
        self.assertEqual(derived_status(e, T0 + timedelta(minutes=5)), ONGOING)


class EffectiveStatusTests(TestCase):
    def test_forced_status_holds_within_the_same_phase(self):
        e = election(status=ENDED, basis=ONGOING)
        self.assertEqual(effective_status(e, T0 + timedelta(minutes=10)), ENDED)

    def test_forced_status_lapses_once_the_window_moves_on(self):
        e = election(status=ONGOING, basis=UPCOMING)
        self.assertEqual(effective_status(e, T0 - timedelta(minutes=5)), ONGOING)
        self.assertEqual(effective_status(e, T0 + timedelta(hours=2)), ENDED)

    def test_no_override_uses_window(self):
        self.assertEqual(effective_status(election(), T0 - timedelta(days=1)), UPCOMING)


class TransitionTests(TestCase):
    def test_forward_transitions_allowed_for_non_admin(self):
        before = T0 - timedelta(minutes=1)
        self.assertEqual(
            transition(election(), ONGOING, is_admin=False, now=before),
            {"status": ONGOING, "status_basis": UPCOMING},
        )
        during = T0 + timedelta(minutes=1)
        self.assertEqual(transition(election(), ENDED, is_admin=False, now=during)["status"], ENDED)

    def test_backward_transition_rejected_for_non_admin(self):
        with self.assertRaises(ConflictError):
            transition(election(), UPCOMING, is_admin=False, now=T0 + timedelta(minutes=1))

    def test_admin_may_set_any_state(self):
        changes = transition(election(), UPCOMING, is_admin=True, now=T0 + timedelta(minutes=1))
        self.assertEqual(changes, {"status": UPCOMING, "status_basis": ONGOING})


class GuardTests(TestCase):
    def test_ensure_ongoing(self):
        ensure_ongoing(election(), T0 + timedelta(minutes=1))
        with self.assertRaises(ElectionNotOngoingError):
            ensure_ongoing(election(), T0 + timedelta(hours=1))
        with self.assertRaises(ElectionNotOngoingError):
            ensure_ongoing(election(status=ENDED, basis=ONGOING), T0 + timedelta(minutes=1))

    def test_dates_mutable_only_while_upcoming(self):
        ensure_dates_mutable(election(), T0 - timedelta(minutes=1))
        with self.assertRaises(ConflictError):
            ensure_dates_mutable(election(), T0)

    def test_window_must_be_ordered(self):
        with self.assertRaises(ValidationError):
            ensure_window(T0, T0)

    def test_no_votes_guard(self):
        ensure_no_votes(0)
        with self.assertRaisesRegex(ConflictError, "a candidate"):
            ensure_no_votes(3, "a candidate")

    def test_results_visible(self):
        during = T0 + timedelta(minutes=1)
        self.assertFalse(results_visible(election(), during, "Voter"))
        self.assertTrue(results_visible(election(), during, "Admin"))
        self.assertTrue(results_visible(election(), T0 + timedelta(hours=1), None))
