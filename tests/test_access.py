import pytest

from prismpath.schemas.auth import UserProfile
from prismpath.utils.access import (
    AccessDeniedError,
    can_assign_teachers,
    can_create_student,
    can_view_student,
    ensure_can_view,
    matches,
    visibility_predicates,
)


def user(uid, role, school_id=""):
    return UserProfile(uid=uid, role=role, school_id=school_id)


def student(**overrides):
    record = {
        "id": "s1",
        "name": "Robin",
        "is_active": True,
        "is_sped_student": False,
        "school_id": "school-1",
        "parent_id": "",
        "assigned_teachers": ["teacher-1"],
    }
    record.update(overrides)
    return record


class TestVisibilityPredicates:
    def test_admin_with_school_is_scoped_to_school(self):
        assert visibility_predicates(user("a", "admin", "school-1")) == [
            ("eq", "is_active", True),
            ("eq", "school_id", "school-1"),
        ]

    def test_admin_without_school_sees_all_active(self):
        assert visibility_predicates(user("a", "admin")) == [("eq", "is_active", True)]

    def test_sped_sees_sped_students(self):
        assert ("eq", "is_sped_student", True) in visibility_predicates(user("s", "sped"))

    def test_parent_sees_own_children(self):
        assert ("eq", "parent_id", "p") in visibility_predicates(user("p", "parent"))

    def test_regular_ed_sees_assigned(self):
        assert ("contains", "assigned_teachers", ["t"]) in visibility_predicates(user("t", "regular_ed"))

    def test_unknown_role_sees_nothing(self):
        assert visibility_predicates(user("x", "janitor")) == []


class TestMatches:
    def test_eq_and_contains(self):
        predicates = [("eq", "is_active", True), ("contains", "assigned_teachers", ["teacher-1"])]
        assert matches(student(), predicates)
        assert not matches(student(assigned_teachers=["other"]), predicates)
        assert not matches(student(is_active=False), predicates)

    def test_contains_on_missing_list(self):
        assert not matches(student(assigned_teachers=None), [("contains", "assigned_teachers", ["teacher-1"])])

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            matches(student(), [("gt", "grade", 3)])


class TestCanViewStudent:
    def test_admin_same_school(self):
        assert can_view_student(user("a", "admin", "school-1"), student())
        assert not can_view_student(user("a", "admin", "school-2"), student())

    def test_sped_only_for_sped_students(self):
        assert can_view_student(user("s", "sped"), student(is_sped_student=True))
        assert not can_view_student(user("s", "sped"), student())

    def test_assigned_teacher(self):
        assert can_view_student(user("teacher-1", "regular_ed"), student())
        assert not can_view_student(user("teacher-2", "regular_ed"), student())

    def test_parent(self):
        assert can_view_student(user("p", "parent"), student(parent_id="p", assigned_teachers=[]))
        assert not can_view_student(user("q", "parent"), student(parent_id="p"))

    def test_inactive_never_visible(self):
        assert not can_view_student(user("a", "admin"), student(is_active=False))
        assert not can_view_student(user("teacher-1", "regular_ed"), student(is_active=False))

    def test_ensure_can_view(self):
        ensure_can_view(user("teacher-1", "regular_ed"), student())
        with pytest.raises(AccessDeniedError):
            ensure_can_view(user("x", "parent"), student())


def test_create_and_assign_permissions():
    assert can_create_student("admin")
    assert can_create_student("sped")
    assert can_create_student("parent")
    assert not can_create_student("regular_ed")

    assert can_assign_teachers("admin")
    assert not can_assign_teachers("sped")
