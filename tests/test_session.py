"""Tests for the explicit session context."""

from __future__ import annotations

from typing import Iterator

import pytest

from sqlpane.config import Connection
from sqlpane.exceptions import TransactionError, ValidationError
from sqlpane.models import CellValue, DBDMLChange, DMLType, PrimaryKeyInfo
from sqlpane.session import Session


@pytest.fixture()
def session(sqlite_url: str) -> Iterator[Session]:
    with Session(Connection(name="app", url=sqlite_url)) as session:
        yield session


def rename(user_id: int, name: str) -> DBDMLChange:
    return DBDMLChange(
        type=DMLType.UPDATE,
        database="",
        table="",
        values=[CellValue("name", name)],
        primary_key_info=[PrimaryKeyInfo("id", user_id)],
    )


def name_of(session: Session, user_id: int) -> str:
    rows, _ = session.driver.execute_query(f"SELECT name FROM users WHERE id = {user_id}")
    return rows[1][0]


def test_open_and_close(sqlite_url: str) -> None:
    session = Session(Connection(name="app", url=sqlite_url))
    assert not session.is_open

    session.open()
    assert session.is_open

    session.close()
    assert not session.is_open


def test_stage_fills_selection(session: Session) -> None:
    session.select("main", "users")
    change = session.stage(rename(7, "Ada"))

    assert change.database == "main"
    assert change.table == "users"
    assert session.pending_changes == (change,)


def test_stage_rejects_malformed_change(session: Session) -> None:
    session.select("main", "users")
    with pytest.raises(ValidationError):
        session.stage(DBDMLChange(DMLType.DELETE, "", ""))
    assert session.pending_changes == ()


def test_select_requires_database(session: Session) -> None:
    with pytest.raises(ValidationError):
        session.select("")


def test_unstage_and_discard(session: Session) -> None:
    session.select("main", "users")
    session.stage(rename(1, "A"))
    session.stage(rename(2, "B"))

    removed = session.unstage(0)
    assert removed.primary_key_info[0].value == 1
    assert len(session.pending_changes) == 1

    with pytest.raises(ValidationError):
        session.unstage(5)

    assert session.discard_changes() == 1
    assert session.pending_changes == ()


def test_preview(session: Session) -> None:
    session.select("main", "users")
    session.stage(rename(7, "Ada"))
    assert session.preview() == ['UPDATE "main"."users" SET "name" = \'Ada\' WHERE "id" = 7']


def test_commit_clears_staged_changes(session: Session) -> None:
    session.select("main", "users")
    session.stage(rename(7, "Ada"))
    session.stage(rename(8, "Bea"))

    assert session.commit() == 2
    assert session.pending_changes == ()
    assert name_of(session, 7) == "Ada"
    assert name_of(session, 8) == "Bea"


def test_failed_commit_keeps_staged_changes(session: Session) -> None:
    session.select("main", "users")
    session.stage(rename(7, "Ada"))
    session.stage(DBDMLChange(DMLType.INSERT, "main", "users", values=[CellValue("missing", 1)]))

    with pytest.raises(TransactionError):
        session.commit()

    assert len(session.pending_changes) == 2
    assert name_of(session, 7) == "Grace"


def test_commit_without_changes(session: Session) -> None:
    assert session.commit() == 0


def test_sessions_are_independent(sqlite_url: str) -> None:
    with Session(Connection(name="a", url=sqlite_url)) as first, \
            Session(Connection(name="b", url=sqlite_url)) as second:
        first.select("main", "users")
        first.stage(rename(1, "X"))
        assert second.pending_changes == ()
