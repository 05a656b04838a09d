"""
===============================================================================
TARJETA CRC — infrastructure/repositories/postgres/announcement.py
===============================================================================

Responsabilidades:
    - Persistir anuncios globales (`announcements`).

Colaboradores:
    - PostgresRepository
    - domain.entities.Announcement / AnnouncementType
===============================================================================
"""

from __future__ import annotations

from typing import List
from uuid import UUID

from ....domain.entities import Announcement, AnnouncementType
from .base import PostgresRepository

_COLUMNS = "id, title, content, announcement_type, created_by, created_at"


def _row_to_announcement(row: tuple) -> Announcement:
    return Announcement(
        id=row[0],
        title=row[1],
        content=row[2],
        announcement_type=AnnouncementType(row[3]),
        created_by=row[4],
        created_at=row[5],
    )


class PostgresAnnouncementRepository(PostgresRepository):
    def list_announcements(self, *, limit: int = 50) -> List[Announcement]:
        if limit <= 0:
            return []
        rows = self._run(
            "list_announcements",
            lambda conn: conn.execute(
                f"""
                SELECT {_COLUMNS}
                FROM announcements
                ORDER BY created_at DESC, id DESC
                LIMIT %s
                """,
                (limit,),
            ).fetchall(),
        )
        return [_row_to_announcement(r) for r in rows]

    def create_announcement(self, announcement: Announcement) -> Announcement:
        row = self._run(
            "create_announcement",
            lambda conn: conn.execute(
                f"""
                INSERT INTO announcements (id, title, content, announcement_type, created_by)
                VALUES (%s, %s, %s, %s, %s)
                RETURNING {_COLUMNS}
                """,
                (
                    announcement.id,
                    announcement.title,
                    announcement.content,
                    announcement.announcement_type.value,
                    announcement.created_by,
                ),
            ).fetchone(),
            retry=False,
        )
        return _row_to_announcement(row)

    def delete_announcement(self, announcement_id: UUID) -> bool:
        deleted = self._run(
            "delete_announcement",
            lambda conn: conn.execute(
                "DELETE FROM announcements WHERE id = %s", (announcement_id,)
            ).rowcount,
            retry=False,
        )
        return deleted > 0
