from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None

def _timestamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False))
    return cols

def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("role", sa.String(10), nullable=False, server_default="USER"),
        sa.Column("username", sa.String(30), nullable=False, unique=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False, server_default=""),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("role in ('ADMIN','USER')", name="ck_users_role"),
    )

    op.create_table(
        "albums",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("external_id", sa.String(64), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("artist", sa.Text(), nullable=False),
        sa.Column("cover_url", sa.Text(), nullable=True),
        sa.Column("release_year", sa.Integer(), nullable=True),
        sa.Column("genres", sa.JSON(), nullable=False),
        sa.Column("track_count", sa.Integer(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("dominant_color", sa.String(7), nullable=True),
        sa.Column("palette_colors", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_albums_external_id", "albums", ["external_id"], unique=True)
    op.create_index("ix_albums_artist_title", "albums", ["artist", "title"])

    op.create_table(
        "rank_entries",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("album_id", sa.Uuid(as_uuid=True), sa.ForeignKey("albums.id", ondelete="CASCADE"), nullable=False),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("short_blurb", sa.Text(), nullable=True),
        sa.Column("review", sa.Text(), nullable=True),
        sa.Column("listen_date", sa.Date(), nullable=True),
        sa.Column("mood_tags", sa.JSON(), nullable=False),
        sa.Column("user_genre_tags", sa.JSON(), nullable=False),
        sa.Column("favorite_tracks", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="reviewed"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "album_id", name="uq_rank_entries_user_album"),
        sa.CheckConstraint("rank IS NULL OR rank >= 1", name="ck_rank_entries_rank"),
        sa.CheckConstraint("score IS NULL OR (score >= 0 AND score <= 10)", name="ck_rank_entries_score"),
        sa.CheckConstraint("status in ('reviewed','listening','archived')", name="ck_rank_entries_status"),
    )
    op.create_index("ix_rank_entries_user_rank", "rank_entries", ["user_id", "rank"])

    op.create_table(
        "relistens",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("entry_id", sa.Uuid(as_uuid=True), sa.ForeignKey("rank_entries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_relistens_entry_id", "relistens", ["entry_id"])

    op.create_table(
        "activities",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("album_id", sa.Uuid(as_uuid=True), sa.ForeignKey("albums.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_activities_created", "activities", ["created_at"])

def downgrade():
    op.drop_index("ix_activities_created", table_name="activities")
    op.drop_table("activities")
    op.drop_index("ix_relistens_entry_id", table_name="relistens")
    op.drop_table("relistens")
    op.drop_index("ix_rank_entries_user_rank", table_name="rank_entries")
    op.drop_table("rank_entries")
    op.drop_index("ix_albums_artist_title", table_name="albums")
    op.drop_index("ix_albums_external_id", table_name="albums")
    op.drop_table("albums")
    op.drop_table("users")
