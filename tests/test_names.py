import pytest

from lrcd.names import (
    InvalidNameFormat,
    NameConflict,
    NameDirectory,
    NameUnchanged,
    RenameError,
    is_valid_name,
)


class _Holder:
    pass


def test_guest_names_count_up() -> None:
    d = NameDirectory()
    assert d.allocate_guest_name() == "Guest1"
    assert d.allocate_guest_name() == "Guest2"


def test_guest_counter_is_not_reused_after_release() -> None:
    d = NameDirectory()
    a = _Holder()
    name = d.allocate_guest_name()
    d.claim(name, a)
    d.release(name)
    assert d.allocate_guest_name() == "Guest2"


def test_guest_allocation_skips_taken_names() -> None:
    d = NameDirectory()
    d.claim("Guest1", _Holder())
    d.claim("Guest2", _Holder())
    assert d.allocate_guest_name() == "Guest3"


def test_claim_rejects_name_held_by_another_session() -> None:
    d = NameDirectory()
    d.claim("alice", _Holder())
    with pytest.raises(NameConflict):
        d.claim("alice", _Holder())


@pytest.mark.parametrize(
    "name,ok",
    [
        ("bob", True),
        ("a_b-c9", True),
        ("x" * 20, True),
        ("ab", False),
        ("x" * 21, False),
        ("has space", False),
        ("émile", False),
        ("bob!", False),
    ],
)
def test_name_pattern(name: str, ok: bool) -> None:
    assert is_valid_name(name) is ok


def test_rename_moves_mapping_and_frees_old_name() -> None:
    d = NameDirectory()
    s = _Holder()
    d.claim("Guest1", s)
    d.rename("Guest1", "alice")
    assert d.lookup("alice") is s
    assert not d.is_taken("Guest1")


def test_rename_errors() -> None:
    d = NameDirectory()
    d.claim("alice", _Holder())
    d.claim("bob", _Holder())

    with pytest.raises(InvalidNameFormat):
        d.rename("alice", "a")
    with pytest.raises(NameUnchanged):
        d.rename("alice", "alice")
    with pytest.raises(NameConflict) as exc:
        d.rename("alice", "bob")
    assert isinstance(exc.value, RenameError)
    assert str(exc.value) == "That username is already in use"

    assert d.names() == ["alice", "bob"]


def test_format_is_checked_before_unchanged() -> None:
    d = NameDirectory()
    d.claim("Guest1", _Holder())
    d.claim("x", _Holder())
    with pytest.raises(InvalidNameFormat):
        d.rename("x", "x")


def test_names_are_case_sensitive() -> None:
    d = NameDirectory()
    d.claim("alice", _Holder())
    d.claim("Guest1", _Holder())
    d.rename("Guest1", "Alice")
    assert d.names() == ["Alice", "alice"]


def test_release_is_idempotent() -> None:
    d = NameDirectory()
    d.claim("alice", _Holder())
    d.release("alice")
    d.release("alice")
    d.release("never-held")
    assert len(d) == 0
