"""
SQLAlchemy ORM models for the MySQL database.

Purpose:
- Define User, Route, Checkpoint, FareMatrixEntry and Jeepney tables
- Use SQLAlchemy async-compatible models
- Support migrations via Alembic

Notes:
- users.auth0_id is the external identity key; unique and never rewritten
- checkpoint order (route_id, sequence_order) is fixed once created
- fare entries reference checkpoints of their own route only
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from core.db import Base


class User(Base):
    """
    A passenger, driver or admin.

    Rows arrive either from the Auth0 registration sync (keyed by auth0_id)
    or from the admin panel (username + bcrypt password, auth0_id may be null).
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    auth0_id = Column(String(255), unique=True, index=True, nullable=True)
    username = Column(String(100), unique=True, nullable=True)
    password_hash = Column(String(255), nullable=True)
    email = Column(String(255), index=True, nullable=False)
    email_verified = Column(Boolean, default=False)
    name = Column(String(255), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    nickname = Column(String(100), nullable=True)
    picture = Column(String(500), nullable=True)
    provider = Column(String(50), default="auth0")
    connection = Column(String(100), nullable=True)
    user_type = Column(String(20), default="passenger", index=True)  # passenger, driver, admin
    roles = Column(JSON, nullable=True)

    phone_number = Column(String(20), nullable=True)
    house_number = Column(String(50), nullable=True)
    street_name = Column(String(100), nullable=True)
    barangay = Column(String(100), nullable=True)
    city_municipality = Column(String(100), nullable=True)
    province = Column(String(100), nullable=True)
    postal_code = Column(String(10), nullable=True)
    birthday = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)

    is_verified = Column(Boolean, default=False)
    drivers_license_path = Column(String(500), nullable=True)
    drivers_license_verified = Column(Boolean, default=False)

    discount_type = Column(String(50), nullable=True)
    discount_applied = Column(Boolean, default=False)
    discount_status = Column(String(20), nullable=True)  # pending, approved, rejected
    discount_amount = Column(Numeric(5, 2), nullable=True)
    discount_file_path = Column(String(500), nullable=True)
    discount_document_name = Column(String(255), nullable=True)
    discount_verified = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # One driver -> at most one active jeepney (enforced in JeepneyDBService)
    jeepneys = relationship("Jeepney", back_populates="driver", lazy="selectin")


class Route(Base):
    """A fixed jeepney line, e.g. "Robinson Tejero - Robinson Pala-pala"."""
    __tablename__ = "routes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_name = Column(String(255), unique=True, nullable=False)
    origin = Column(String(255), nullable=True)
    destination = Column(String(255), nullable=True)
    status = Column(String(20), default="active")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    checkpoints = relationship(
        "Checkpoint",
        back_populates="route",
        order_by="Checkpoint.sequence_order",
        lazy="selectin",
    )


class Checkpoint(Base):
    """A named stop on a route; sequence_order defines adjacency."""
    __tablename__ = "checkpoints"

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False, index=True)
    checkpoint_name = Column(String(255), nullable=False)
    sequence_order = Column(Integer, nullable=False)
    fare_from_origin = Column(Numeric(8, 2), default=8.00)
    is_origin = Column(Boolean, default=False)
    is_destination = Column(Boolean, default=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    status = Column(String(20), default="active")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("route_id", "sequence_order", name="ux_checkpoint_route_sequence"),
        UniqueConstraint("route_id", "checkpoint_name", name="ux_checkpoint_route_name"),
    )

    route = relationship("Route", back_populates="checkpoints", lazy="joined")


class FareMatrixEntry(Base):
    """
    Directed fare between two checkpoints of one route.

    Not symmetric: B -> A is a separate row (or absent). Several rows may
    exist for one pair over time; lookups take the newest effective one.
    """
    __tablename__ = "fare_matrix"

    id = Column(Integer, primary_key=True, autoincrement=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False, index=True)
    from_checkpoint_id = Column(Integer, ForeignKey("checkpoints.id"), nullable=False)
    to_checkpoint_id = Column(Integer, ForeignKey("checkpoints.id"), nullable=False)
    fare_amount = Column(Numeric(8, 2), nullable=False)
    is_base_fare = Column(Boolean, default=False)
    status = Column(String(20), default="active", index=True)
    effective_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    from_checkpoint = relationship("Checkpoint", foreign_keys=[from_checkpoint_id], lazy="joined")
    to_checkpoint = relationship("Checkpoint", foreign_keys=[to_checkpoint_id], lazy="joined")


class Jeepney(Base):
    """A vehicle in the fleet, optionally assigned to a route and a driver."""
    __tablename__ = "jeepneys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    jeepney_number = Column(String(50), unique=True, nullable=False)
    plate_number = Column(String(20), unique=True, nullable=False)
    model = Column(String(100), nullable=True)
    capacity = Column(Integer, default=20)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=True, index=True)
    driver_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    status = Column(String(20), default="active", index=True)  # active, inactive, maintenance
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    route = relationship("Route", lazy="joined")
    driver = relationship("User", back_populates="jeepneys", lazy="joined")
