import pytest

from app.models import Identity, Registration
from app.sync import DEFAULT_RESYNC, Mutation, Resync, resync_for
from app.visibility import FetchScope, all_registrations, fetch_scope, is_registered, user_registrations


def reg(user_id, event_id):
    return Registration.new(user_id, event_id, "2024-05-01T09:00:00.000Z")


REGS = [reg("u1", "e1"), reg("u1", "e2"), reg("u2", "e1")]


@pytest.mark.parametrize(
    "identity,scope",
    [
        (None, FetchScope.NONE),
        (Identity(id="o", role="organizer"), FetchScope.ALL),
        (Identity(id="s", role="student"), FetchScope.OWN),
        (Identity(id="g", role="guest"), FetchScope.NONE),
        (Identity(id="n"), FetchScope.NONE),
    ],
)
def test_fetch_scope_follows_role(identity, scope):
    assert fetch_scope(identity) is scope


def test_student_view_only_holds_own_records():
    student = Identity(id="u1", role="student")
    mine = user_registrations(REGS, student)
    assert [r.id for r in mine] == ["u1-e1", "u1-e2"]
    assert all(r.user_id == student.id for r in mine)
    assert all_registrations(REGS, student) == []


def test_organizer_sees_full_set():
    organizer = Identity(id="org1", role="organizer")
    assert all_registrations(REGS, organizer) == REGS
    assert user_registrations(REGS, organizer) == []


def test_anonymous_sees_nothing():
    assert user_registrations(REGS, None) == []
    assert all_registrations(REGS, None) == []
    assert not is_registered(REGS, None, "e1")


def test_is_registered_checks_own_records_only():
    assert is_registered(REGS, Identity(id="u2", role="student"), "e1")
    assert not is_registered(REGS, Identity(id="u2", role="student"), "e2")


@pytest.mark.parametrize(
    "mutation,role,expected",
    [
        (Mutation.REGISTER, "student", Resync.REFETCH),
        (Mutation.REGISTER, "organizer", Resync.REFETCH),
        (Mutation.MARK_ATTENDANCE, "organizer", Resync.REFETCH),
        (Mutation.MARK_ATTENDANCE, "student", Resync.PATCH_LOCAL),
        (Mutation.MARK_ATTENDANCE, None, Resync.PATCH_LOCAL),
    ],
)
def test_default_resync_table(mutation, role, expected):
    assert resync_for(mutation, Identity(id="x", role=role)) is expected


def test_resync_without_entry_is_an_error():
    table = {k: v for k, v in DEFAULT_RESYNC.items() if k[0] is Mutation.REGISTER}
    with pytest.raises(KeyError):
        resync_for(Mutation.MARK_ATTENDANCE, None, table)
