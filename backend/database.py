import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from backend.schemas.leads import (
    ConsultationEmailRecord,
    ConsultationEmailRequest,
    ContactRecord,
    ContactRequest,
)

PathLike = Union[str, Path]


def _connect(db_path: PathLike) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def init_db(db_path: PathLike) -> None:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = _connect(db_path)
    try:
        conn.execute(
            """
            create table if not exists consultation_emails (
                id integer primary key autoincrement,
                email text not null,
                investment_data text not null,
                ip text,
                status text not null default 'unread',
                created_at text not null
            )
            """
        )
        conn.execute(
            """
            create table if not exists contacts (
                id integer primary key autoincrement,
                name text not null,
                email text not null,
                subject text not null,
                message text not null,
                ip text,
                status text not null default 'unread',
                created_at text not null
            )
            """
        )
        conn.commit()
    finally:
        conn.close()


def save_consultation_email(
    db_path: PathLike, lead: ConsultationEmailRequest, ip: Optional[str] = None
) -> int:
    conn = _connect(db_path)
    try:
        cursor = conn.execute(
            """
            insert into consultation_emails (email, investment_data, ip, status, created_at)
            values (?, ?, ?, 'unread', ?)
            """,
            (lead.email, json.dumps(lead.investmentData), ip, _now()),
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


def list_consultation_emails(db_path: PathLike) -> List[ConsultationEmailRecord]:
    conn = _connect(db_path)
    try:
        rows = conn.execute(
            """
            select id, email, investment_data, ip, status, created_at
            from consultation_emails
            order by id desc
            """
        ).fetchall()
        return [
            ConsultationEmailRecord(
                id=row["id"],
                email=row["email"],
                investmentData=json.loads(row["investment_data"]),
                ip=row["ip"],
                status=row["status"],
                createdAt=row["created_at"],
            )
            for row in rows
        ]
    finally:
        conn.close()


def save_contact(db_path: PathLike, contact: ContactRequest, ip: Optional[str] = None) -> int:
    conn = _connect(db_path)
    try:
        cursor = conn.execute(
            """
            insert into contacts (name, email, subject, message, ip, status, created_at)
            values (?, ?, ?, ?, ?, 'unread', ?)
            """,
            (
                contact.name,
                contact.email,
                contact.subject,
                contact.message,
                ip,
                contact.timestamp or _now(),
            ),
        )
        conn.commit()
        return cursor.lastrowid
    finally:
        conn.close()


def list_contacts(db_path: PathLike) -> List[ContactRecord]:
    conn = _connect(db_path)
    try:
        rows = conn.execute(
            """
            select id, name, email, subject, message, ip, status, created_at
            from contacts
            order by id desc
            """
        ).fetchall()
        return [_contact_from_row(row) for row in rows]
    finally:
        conn.close()


def _contact_from_row(row: sqlite3.Row) -> ContactRecord:
    data: Dict[str, Any] = dict(row)
    data["createdAt"] = data.pop("created_at")
    return ContactRecord(**data)
