"""
===============================================================================
TARJETA CRC — infrastructure/repositories/postgres/post.py
===============================================================================

Responsabilidades:
    - Persistir posts, likes (`post_likes`) y comentarios (`post_comments`).
    - Mantener los contadores desnormalizados likes_count / comments_count en la
      misma transacción que la fila hija.
    - Cascada explícita para la eliminación de un usuario (likes, comentarios,
      posts) con ajuste de contadores en los posts ajenos afectados.

Colaboradores:
    - PostgresRepository
    - domain.entities.Post / Comment

Notas:
    - post_likes PK (post_id, user_id): un like por usuario y post.
    - FK de likes / comments a posts con ON DELETE CASCADE.
===============================================================================
"""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from ....domain.entities import Comment, Post
from .base import PostgresRepository

_POST_COLUMNS = (
    "id, author_id, content, image_url, likes_count, comments_count, created_at"
)
_COMMENT_COLUMNS = "id, post_id, author_id, content, created_at"


def _row_to_post(row: tuple) -> Post:
    return Post(
        id=row[0],
        author_id=row[1],
        content=row[2],
        image_url=row[3],
        likes_count=row[4],
        comments_count=row[5],
        created_at=row[6],
    )


def _row_to_comment(row: tuple) -> Comment:
    return Comment(
        id=row[0],
        post_id=row[1],
        author_id=row[2],
        content=row[3],
        created_at=row[4],
    )


class PostgresPostRepository(PostgresRepository):
    """Repositorio PostgreSQL para posts, likes y comentarios."""

    # =========================================================
    # Posts
    # =========================================================
    def create_post(self, post: Post) -> Post:
        row = self._run(
            "create_post",
            lambda conn: conn.execute(
                f"""
                INSERT INTO posts (id, author_id, content, image_url)
                VALUES (%s, %s, %s, %s)
                RETURNING {_POST_COLUMNS}
                """,
                (post.id, post.author_id, post.content, post.image_url),
            ).fetchone(),
            retry=False,
        )
        return _row_to_post(row)

    def get_post(self, post_id: UUID) -> Optional[Post]:
        row = self._run(
            "get_post",
            lambda conn: conn.execute(
                f"SELECT {_POST_COLUMNS} FROM posts WHERE id = %s", (post_id,)
            ).fetchone(),
        )
        return _row_to_post(row) if row else None

    def list_posts(self, *, limit: int = 20, offset: int = 0) -> List[Post]:
        if limit <= 0:
            return []
        rows = self._run(
            "list_posts",
            lambda conn: conn.execute(
                f"""
                SELECT {_POST_COLUMNS}
                FROM posts
                ORDER BY created_at DESC, id DESC
                LIMIT %s OFFSET %s
                """,
                (limit, max(offset, 0)),
            ).fetchall(),
        )
        return [_row_to_post(r) for r in rows]

    def list_posts_by_author(self, author_id: UUID, *, limit: int = 50) -> List[Post]:
        if limit <= 0:
            return []
        rows = self._run(
            "list_posts_by_author",
            lambda conn: conn.execute(
                f"""
                SELECT {_POST_COLUMNS}
                FROM posts
                WHERE author_id = %s
                ORDER BY created_at DESC, id DESC
                LIMIT %s
                """,
                (author_id, limit),
            ).fetchall(),
        )
        return [_row_to_post(r) for r in rows]

    def delete_post(self, post_id: UUID) -> bool:
        deleted = self._run(
            "delete_post",
            lambda conn: conn.execute(
                "DELETE FROM posts WHERE id = %s", (post_id,)
            ).rowcount,
            retry=False,
        )
        return deleted > 0

    def delete_posts_by_author(self, author_id: UUID) -> int:
        return self._run(
            "delete_posts_by_author",
            lambda conn: conn.execute(
                "DELETE FROM posts WHERE author_id = %s", (author_id,)
            ).rowcount,
            retry=False,
        )

    # =========================================================
    # Likes
    # =========================================================
    def toggle_like(self, post_id: UUID, user_id: UUID) -> Optional[tuple[bool, int]]:
        def work(conn) -> Optional[tuple[bool, int]]:
            # R: Lock de la fila del post; serializa toggles concurrentes.
            exists = conn.execute(
                "SELECT 1 FROM posts WHERE id = %s FOR UPDATE", (post_id,)
            ).fetchone()
            if exists is None:
                return None

            removed = conn.execute(
                "DELETE FROM post_likes WHERE post_id = %s AND user_id = %s",
                (post_id, user_id),
            ).rowcount
            if removed:
                count = conn.execute(
                    """
                    UPDATE posts SET likes_count = GREATEST(likes_count - 1, 0)
                    WHERE id = %s RETURNING likes_count
                    """,
                    (post_id,),
                ).fetchone()[0]
                return False, count

            conn.execute(
                "INSERT INTO post_likes (post_id, user_id) VALUES (%s, %s)",
                (post_id, user_id),
            )
            count = conn.execute(
                "UPDATE posts SET likes_count = likes_count + 1 WHERE id = %s RETURNING likes_count",
                (post_id,),
            ).fetchone()[0]
            return True, count

        return self._run("toggle_like", work, retry=False)

    def delete_likes_by_user(self, user_id: UUID) -> int:
        def work(conn) -> int:
            conn.execute(
                """
                UPDATE posts p
                SET likes_count = GREATEST(p.likes_count - 1, 0)
                FROM post_likes l
                WHERE l.post_id = p.id AND l.user_id = %s
                """,
                (user_id,),
            )
            return conn.execute(
                "DELETE FROM post_likes WHERE user_id = %s", (user_id,)
            ).rowcount

        return self._run("delete_likes_by_user", work, retry=False)

    # =========================================================
    # Comments
    # =========================================================
    def add_comment(self, comment: Comment) -> Optional[Comment]:
        def work(conn):
            bumped = conn.execute(
                "UPDATE posts SET comments_count = comments_count + 1 WHERE id = %s",
                (comment.post_id,),
            ).rowcount
            if not bumped:
                return None
            return conn.execute(
                f"""
                INSERT INTO post_comments (id, post_id, author_id, content)
                VALUES (%s, %s, %s, %s)
                RETURNING {_COMMENT_COLUMNS}
                """,
                (comment.id, comment.post_id, comment.author_id, comment.content),
            ).fetchone()

        row = self._run("add_comment", work, retry=False)
        return _row_to_comment(row) if row else None

    def list_comments(self, post_id: UUID) -> List[Comment]:
        rows = self._run(
            "list_comments",
            lambda conn: conn.execute(
                f"""
                SELECT {_COMMENT_COLUMNS}
                FROM post_comments
                WHERE post_id = %s
                ORDER BY created_at ASC, id ASC
                """,
                (post_id,),
            ).fetchall(),
        )
        return [_row_to_comment(r) for r in rows]

    def delete_comments_by_user(self, user_id: UUID) -> int:
        def work(conn) -> int:
            conn.execute(
                """
                UPDATE posts p
                SET comments_count = GREATEST(p.comments_count - c.n, 0)
                FROM (
                    SELECT post_id, count(*) AS n
                    FROM post_comments
                    WHERE author_id = %s
                    GROUP BY post_id
                ) c
                WHERE c.post_id = p.id
                """,
                (user_id,),
            )
            return conn.execute(
                "DELETE FROM post_comments WHERE author_id = %s", (user_id,)
            ).rowcount

        return self._run("delete_comments_by_user", work, retry=False)
