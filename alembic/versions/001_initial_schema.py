"""
============================================================
TARJETA CRC (Class / Responsibilities / Collaborators)
============================================================
Class: 001_initial_schema (Alembic Migration)

Responsibilities:
  - Crear el esquema completo desde cero (migración fundacional).
  - Security keys con índice único PARCIAL sobre key_value de keys activas
    (una key desactivada libera su valor).
  - Usuarios, contenido (posts, likes, comentarios, flags), anuncios y
    auditoría append-only.

Collaborators:
  - PostgreSQL 14+
  - infrastructure/repositories/postgres/* (usan este esquema como contrato)

Policy:
  - Convención de nombres:
      pk_<tabla>                         - Primary keys
      uq_<tabla>_<col>                   - Unique constraints / indexes
      ix_<tabla>_<col>                   - Indexes
      fk_<tabla>_<col>__<ref_tabla>      - Foreign keys
  - security_keys.used_by NO tiene FK: release() corre después de borrar el
    usuario y necesita encontrar las keys por used_by.
============================================================
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    """
    Orden:
      1) Security keys
      2) Users
      3) Posts / likes / comments
      4) Flags
      5) Announcements
      6) Audit
    """

    # =========================================================
    # 1) SECURITY KEYS
    # =========================================================
    op.create_table(
        "security_keys",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("key_value", sa.String(128), nullable=False),
        sa.Column("tier", sa.String(20), nullable=False),
        sa.Column(
            "is_used", sa.Boolean, nullable=False, server_default=sa.text("false")
        ),
        sa.Column("used_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "is_active", sa.Boolean, nullable=False, server_default=sa.text("true")
        ),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deactivated_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("deactivated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_security_keys"),
        sa.CheckConstraint("tier IN ('admin','user')", name="ck_security_keys_tier"),
    )

    # Unicidad solo entre keys activas.
    op.execute(
        "CREATE UNIQUE INDEX uq_security_keys_active_value "
        "ON security_keys (key_value) WHERE is_active"
    )
    op.create_index("ix_security_keys_key_value", "security_keys", ["key_value"])
    op.create_index("ix_security_keys_used_by", "security_keys", ["used_by"])
    op.create_index(
        "ix_security_keys_tier_created", "security_keys", ["tier", "created_at"]
    )

    # =========================================================
    # 2) USERS
    # =========================================================
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column(
            "role", sa.String(20), nullable=False, server_default=sa.text("'user'")
        ),
        # NULL para identidades externas (sin password local).
        sa.Column("password_hash", sa.Text, nullable=True),
        sa.Column(
            "is_disabled", sa.Boolean, nullable=False, server_default=sa.text("false")
        ),
        sa.Column("external_id", sa.String(255), nullable=True),
        sa.Column("security_key_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("location", sa.String(100), nullable=True),
        sa.Column("website", sa.String(500), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("external_id", name="uq_users_external_id"),
        sa.ForeignKeyConstraint(
            ["security_key_id"],
            ["security_keys.id"],
            name="fk_users_security_key_id__security_keys",
            ondelete="SET NULL",
        ),
        sa.CheckConstraint("role IN ('admin','user')", name="ck_users_role"),
    )

    # Username case-insensitive (get_user_by_username usa lower()).
    op.execute("CREATE UNIQUE INDEX uq_users_username_lower ON users (lower(username))")
    op.create_index("ix_users_created_at", "users", ["created_at"])

    # =========================================================
    # 3) POSTS / LIKES / COMMENTS
    # =========================================================
    op.create_table(
        "posts",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("image_url", sa.String(2048), nullable=True),
        sa.Column(
            "likes_count", sa.Integer, nullable=False, server_default=sa.text("0")
        ),
        sa.Column(
            "comments_count", sa.Integer, nullable=False, server_default=sa.text("0")
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_posts"),
        sa.ForeignKeyConstraint(
            ["author_id"],
            ["users.id"],
            name="fk_posts_author_id__users",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_posts_created_at", "posts", ["created_at"])
    op.create_index("ix_posts_author_created", "posts", ["author_id", "created_at"])

    op.create_table(
        "post_likes",
        sa.Column("post_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("post_id", "user_id", name="pk_post_likes"),
        sa.ForeignKeyConstraint(
            ["post_id"],
            ["posts.id"],
            name="fk_post_likes_post_id__posts",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"],
            ["users.id"],
            name="fk_post_likes_user_id__users",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_post_likes_user_id", "post_likes", ["user_id"])

    op.create_table(
        "post_comments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("post_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_post_comments"),
        sa.ForeignKeyConstraint(
            ["post_id"],
            ["posts.id"],
            name="fk_post_comments_post_id__posts",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["author_id"],
            ["users.id"],
            name="fk_post_comments_author_id__users",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "ix_post_comments_post_created", "post_comments", ["post_id", "created_at"]
    )
    op.create_index("ix_post_comments_author_id", "post_comments", ["author_id"])

    # =========================================================
    # 4) FLAGS
    # =========================================================
    op.create_table(
        "post_flags",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        # SET NULL: el flag resuelto sobrevive al post / reporter eliminados.
        sa.Column("post_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reporter_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reason", sa.Text, nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column("resolved_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("action", sa.String(20), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_post_flags"),
        sa.ForeignKeyConstraint(
            ["post_id"],
            ["posts.id"],
            name="fk_post_flags_post_id__posts",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["reporter_id"],
            ["users.id"],
            name="fk_post_flags_reporter_id__users",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_post_flags_status_created", "post_flags", ["status", "created_at"])
    op.create_index(
        "ix_post_flags_post_reporter", "post_flags", ["post_id", "reporter_id"]
    )

    # =========================================================
    # 5) ANNOUNCEMENTS
    # =========================================================
    op.create_table(
        "announcements",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column(
            "announcement_type",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'info'"),
        ),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_announcements"),
        sa.ForeignKeyConstraint(
            ["created_by"],
            ["users.id"],
            name="fk_announcements_created_by__users",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_announcements_created_at", "announcements", ["created_at"])

    # =========================================================
    # 6) AUDIT
    # =========================================================
    op.create_table(
        "audit_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("actor", sa.String(255), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("target_type", sa.String(50), nullable=True),
        sa.Column("target_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "metadata",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name="pk_audit_events"),
    )
    op.create_index("ix_audit_events_actor", "audit_events", ["actor"])
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("ix_audit_events_target_id", "audit_events", ["target_id"])
    op.create_index("ix_audit_events_created_at", "audit_events", ["created_at"])


def downgrade() -> None:
    """
    Downgrade NO soportado para la migración fundacional.

    Para resetear el entorno local: dropear la base y volver a `alembic upgrade head`.
    """
    raise NotImplementedError(
        "Baseline: downgrade no soportado por política. "
        "Para resetear la base de datos, recrearla y correr alembic upgrade head"
    )
