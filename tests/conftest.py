from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Iterator

import pytest

from sqlpane.drivers.sqlite import SQLite


@pytest.fixture()
def sqlite_db(tmp_path: Path) -> Path:
    """Create a SQLite database with users, orders and a 350-row events table."""
    db_path = tmp_path / "app.db"

    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE users (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            email TEXT,
            nickname TEXT DEFAULT 'anon'
        );

        CREATE UNIQUE INDEX idx_users_email ON users (email);

        CREATE TABLE orders (
            id INTEGER PRIMARY KEY,
            user_id INTEGER REFERENCES users (id),
            amount REAL
        );

        CREATE INDEX idx_orders_user ON orders (user_id);

        CREATE TABLE events (
            id INTEGER PRIMARY KEY,
            kind TEXT
        );
    """)
    conn.executemany(
        "INSERT INTO users (id, name, email) VALUES (?, ?, ?)",
        [
            (1, 'Alice', 'alice@example.com'),
            (2, 'Bob', None),
            (3, 'Carol', ''),
            (4, 'Dan', 'dan@example.com'),
            (5, 'Erin', 'erin@example.com'),
            (6, 'Frank', 'frank@example.com'),
            (7, 'Grace', 'grace@example.com'),
            (8, 'Heidi', 'heidi@example.com'),
            (9, 'Ivan', 'ivan@example.com'),
            (10, 'Judy', 'judy@example.com'),
        ],
    )
    conn.executemany(
        "INSERT INTO orders (user_id, amount) VALUES (?, ?)",
        [(1, 150.0), (1, 89.5), (2, 299.25)],
    )
    conn.executemany(
        "INSERT INTO events (id, kind) VALUES (?, ?)",
        [(i, 'click' if i % 2 else 'view') for i in range(1, 351)],
    )
    conn.commit()
    conn.close()

    return db_path


@pytest.fixture()
def sqlite_url(sqlite_db: Path) -> str:
    return f"sqlite:{sqlite_db}"


@pytest.fixture()
def sqlite_driver(sqlite_url: str) -> Iterator[SQLite]:
    driver = SQLite()
    driver.connect(sqlite_url)
    try:
        yield driver
    finally:
        driver.close()
