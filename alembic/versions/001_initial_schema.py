"""
Initial database schema: users, routes, checkpoints, fare_matrix, jeepneys.

Revision ID: 001
"""
from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create initial tables."""
    # Users table (Auth0-synced and admin-created)
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("auth0_id", sa.String(255), nullable=True),
        sa.Column("username", sa.String(100), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("email_verified", sa.Boolean(), default=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("nickname", sa.String(100), nullable=True),
        sa.Column("picture", sa.String(500), nullable=True),
        sa.Column("provider", sa.String(50), default="auth0"),
        sa.Column("connection", sa.String(100), nullable=True),
        sa.Column("user_type", sa.String(20), default="passenger"),
        sa.Column("roles", sa.JSON(), nullable=True),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("house_number", sa.String(50), nullable=True),
        sa.Column("street_name", sa.String(100), nullable=True),
        sa.Column("barangay", sa.String(100), nullable=True),
        sa.Column("city_municipality", sa.String(100), nullable=True),
        sa.Column("province", sa.String(100), nullable=True),
        sa.Column("postal_code", sa.String(10), nullable=True),
        sa.Column("birthday", sa.Date(), nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        sa.Column("is_verified", sa.Boolean(), default=False),
        sa.Column("drivers_license_path", sa.String(500), nullable=True),
        sa.Column("drivers_license_verified", sa.Boolean(), default=False),
        sa.Column("discount_type", sa.String(50), nullable=True),
        sa.Column("discount_applied", sa.Boolean(), default=False),
        sa.Column("discount_status", sa.String(20), nullable=True),
        sa.Column("discount_amount", sa.Numeric(5, 2), nullable=True),
        sa.Column("discount_file_path", sa.String(500), nullable=True),
        sa.Column("discount_document_name", sa.String(255), nullable=True),
        sa.Column("discount_verified", sa.Boolean(), default=False),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("auth0_id"),
        sa.UniqueConstraint("username"),
    )
    op.create_index("ix_users_auth0_id", "users", ["auth0_id"])
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_user_type", "users", ["user_type"])

    # Routes table
    op.create_table(
        "routes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("route_name", sa.String(255), nullable=False),
        sa.Column("origin", sa.String(255), nullable=True),
        sa.Column("destination", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), default="active"),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("route_name"),
    )

    # Checkpoints table (order fixed per route)
    op.create_table(
        "checkpoints",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("routes.id"), nullable=False),
        sa.Column("checkpoint_name", sa.String(255), nullable=False),
        sa.Column("sequence_order", sa.Integer(), nullable=False),
        sa.Column("fare_from_origin", sa.Numeric(8, 2), default=8.00),
        sa.Column("is_origin", sa.Boolean(), default=False),
        sa.Column("is_destination", sa.Boolean(), default=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("status", sa.String(20), default="active"),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("route_id", "sequence_order", name="ux_checkpoint_route_sequence"),
        sa.UniqueConstraint("route_id", "checkpoint_name", name="ux_checkpoint_route_name"),
    )
    op.create_index("ix_checkpoints_route_id", "checkpoints", ["route_id"])

    # Directed fare entries
    op.create_table(
        "fare_matrix",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("routes.id"), nullable=False),
        sa.Column("from_checkpoint_id", sa.Integer(), sa.ForeignKey("checkpoints.id"), nullable=False),
        sa.Column("to_checkpoint_id", sa.Integer(), sa.ForeignKey("checkpoints.id"), nullable=False),
        sa.Column("fare_amount", sa.Numeric(8, 2), nullable=False),
        sa.Column("is_base_fare", sa.Boolean(), default=False),
        sa.Column("status", sa.String(20), default="active"),
        sa.Column("effective_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_fare_matrix_route_id", "fare_matrix", ["route_id"])
    op.create_index("ix_fare_matrix_status", "fare_matrix", ["status"])

    # Jeepneys table
    op.create_table(
        "jeepneys",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("jeepney_number", sa.String(50), nullable=False),
        sa.Column("plate_number", sa.String(20), nullable=False),
        sa.Column("model", sa.String(100), nullable=True),
        sa.Column("capacity", sa.Integer(), default=20),
        sa.Column("route_id", sa.Integer(), sa.ForeignKey("routes.id"), nullable=True),
        sa.Column("driver_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("status", sa.String(20), default="active"),
        sa.Column("created_at", sa.DateTime(), default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), default=sa.func.now(), onupdate=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("jeepney_number"),
        sa.UniqueConstraint("plate_number"),
    )
    op.create_index("ix_jeepneys_route_id", "jeepneys", ["route_id"])
    op.create_index("ix_jeepneys_driver_id", "jeepneys", ["driver_id"])
    op.create_index("ix_jeepneys_status", "jeepneys", ["status"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("jeepneys")
    op.drop_table("fare_matrix")
    op.drop_table("checkpoints")
    op.drop_table("routes")
    op.drop_table("users")
