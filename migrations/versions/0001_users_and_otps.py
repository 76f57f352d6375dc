"""users with 2fa/phone flags + one-time codes"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_users_and_otps"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("two_fa", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_phone_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'active'")),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status in ('active','disabled')", name="users_status"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "otps",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("use_case", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("use_case in ('PHV','D2FA')", name="otps_use_case"),
    )
    # lookup is (user, use case, code); the sweeper scans by expiry
    op.create_index("ix_otps_lookup", "otps", ["user_id", "use_case", "code"])
    op.create_index("ix_otps_expires_at", "otps", ["expires_at"])


def downgrade():
    op.drop_index("ix_otps_expires_at", table_name="otps")
    op.drop_index("ix_otps_lookup", table_name="otps")
    op.drop_table("otps")
    op.drop_table("users")
