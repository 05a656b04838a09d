"""
===============================================================================
TARJETA CRC — infrastructure/repositories/postgres/user.py
===============================================================================

Responsabilidades:
    - CRUD de usuarios en la tabla `users`.
    - Búsquedas por id / username (case-insensitive) / email / external_id.
    - Mapear filas -> identity.users.User.

Colaboradores:
    - PostgresRepository (pool, retry, errores tipados)
    - identity.users.User / UserRole

Notas:
    - Unicidad: uq_users_username_lower, uq_users_email, uq_users_external_id
      (violación -> DuplicateRecordError).
===============================================================================
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from ....crosscutting.exceptions import DatabaseError
from ....identity.users import User, UserRole
from .base import PostgresRepository

_USER_COLUMNS = (
    "id, username, email, display_name, role, password_hash, is_disabled, "
    "external_id, security_key_id, bio, location, website, created_at"
)


def _row_to_user(row: tuple) -> User:
    try:
        role = UserRole(row[4])
    except ValueError as exc:
        raise DatabaseError(f"Invalid user role in database: {row[4]}") from exc

    return User(
        id=row[0],
        username=row[1],
        email=row[2],
        display_name=row[3],
        role=role,
        password_hash=row[5],
        is_disabled=row[6],
        external_id=row[7],
        security_key_id=row[8],
        bio=row[9],
        location=row[10],
        website=row[11],
        created_at=row[12],
    )


class PostgresUserRepository(PostgresRepository):
    """Repositorio PostgreSQL para usuarios."""

    def _fetch_one(self, operation: str, where: str, value: object) -> Optional[User]:
        row = self._run(
            operation,
            lambda conn: conn.execute(
                f"SELECT {_USER_COLUMNS} FROM users WHERE {where} LIMIT 1",
                (value,),
            ).fetchone(),
        )
        return _row_to_user(row) if row else None

    def create_user(self, user: User) -> User:
        row = self._run(
            "create_user",
            lambda conn: conn.execute(
                f"""
                INSERT INTO users
                    (id, username, email, display_name, role, password_hash,
                     is_disabled, external_id, security_key_id, bio, location, website)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_USER_COLUMNS}
                """,
                (
                    user.id,
                    user.username,
                    user.email,
                    user.display_name,
                    user.role.value,
                    user.password_hash,
                    user.is_disabled,
                    user.external_id,
                    user.security_key_id,
                    user.bio,
                    user.location,
                    user.website,
                ),
            ).fetchone(),
            retry=False,
            extra={"user_id": str(user.id)},
        )
        return _row_to_user(row)

    def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return self._fetch_one("get_user_by_id", "id = %s", user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self._fetch_one(
            "get_user_by_username", "lower(username) = lower(%s)", username
        )

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._fetch_one("get_user_by_email", "email = %s", email.strip().lower())

    def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        return self._fetch_one("get_user_by_external_id", "external_id = %s", external_id)

    def list_users(self, *, limit: int = 200, offset: int = 0) -> List[User]:
        if limit <= 0:
            return []
        rows = self._run(
            "list_users",
            lambda conn: conn.execute(
                f"""
                SELECT {_USER_COLUMNS}
                FROM users
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
                """,
                (limit, max(offset, 0)),
            ).fetchall(),
        )
        return [_row_to_user(r) for r in rows]

    def set_user_disabled(self, user_id: UUID, disabled: bool) -> Optional[User]:
        row = self._run(
            "set_user_disabled",
            lambda conn: conn.execute(
                f"""
                UPDATE users SET is_disabled = %s
                WHERE id = %s
                RETURNING {_USER_COLUMNS}
                """,
                (disabled, user_id),
            ).fetchone(),
            extra={"user_id": str(user_id)},
        )
        return _row_to_user(row) if row else None

    def delete_user(self, user_id: UUID) -> bool:
        deleted = self._run(
            "delete_user",
            lambda conn: conn.execute(
                "DELETE FROM users WHERE id = %s", (user_id,)
            ).rowcount,
            retry=False,
            extra={"user_id": str(user_id)},
        )
        return deleted > 0

    def ping(self) -> bool:
        self._run("ping", lambda conn: conn.execute("SELECT 1").fetchone(), retry=False)
        return True
