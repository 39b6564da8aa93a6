from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

INDEXES = [
    ("ix_bookings_booking_id", ["booking_id"], True),
    ("ix_bookings_chef_id", ["chef_id"], False),
    ("ix_bookings_user_id", ["user_id"], False),
    ("ix_bookings_date", ["date"], False),
    ("ix_bookings_service_type", ["service_type"], False),
    ("ix_bookings_status", ["status"], False),
    ("ix_bookings_payment_reference", ["payment_reference"], False),
    ("ix_bookings_chef_date", ["chef_id", "date"], False),
    ("ix_bookings_date_status", ["date", "status"], False),
]

def upgrade():
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_id", sa.String(), nullable=False),
        sa.Column("chef_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("duration_hours", sa.Integer(), nullable=False),
        sa.Column("guest_count", sa.Integer(), nullable=False),
        sa.Column("service_type", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("special_requests", sa.Text(), nullable=True),
        sa.Column("add_ons", sa.JSON(), nullable=False),
        sa.Column("base_price", sa.Float(), nullable=False),
        sa.Column("guest_multiplier", sa.Float(), nullable=False),
        sa.Column("surge_multiplier", sa.Float(), nullable=False),
        sa.Column("surge_reason", sa.String(), nullable=False),
        sa.Column("add_on_total", sa.Integer(), nullable=False),
        sa.Column("total_price", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("payment_status", sa.String(), nullable=False),
        sa.Column("payment_reference", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    for name, columns, unique in INDEXES:
        op.create_index(name, "bookings", columns, unique=unique)

def downgrade():
    for name, _, _ in reversed(INDEXES):
        op.drop_index(name, table_name="bookings")
    op.drop_table("bookings")
