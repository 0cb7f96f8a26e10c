from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Date, Text, ForeignKey, Numeric, JSON, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from smart_ticket.database import Base

# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdType = BigInteger().with_variant(Integer, "sqlite")

ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")

# ================================
# Users
# ================================
class User(Base):
    __tablename__ = "users"
    
    id = Column(IdType, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    bookings = relationship("Booking", foreign_keys="Booking.user_id", back_populates="user")
    
    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

# ================================
# Catalog: Routes / Vehicles / Schedules
# ================================
class Route(Base):
    __tablename__ = "routes"
    
    id = Column(IdType, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    transport_type = Column(String(50), nullable=False, default="bus")
    start_location = Column(String(255), nullable=False)
    end_location = Column(String(255), nullable=False)
    distance_km = Column(Numeric(8, 2))
    base_fare = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    schedules = relationship("Schedule", back_populates="route")
    bookings = relationship("Booking", back_populates="route")

class Vehicle(Base):
    __tablename__ = "vehicles"
    
    id = Column(IdType, primary_key=True, index=True)
    vehicle_code = Column(String(50), unique=True, nullable=False)
    vehicle_type = Column(String(50), nullable=False, default="bus")
    capacity = Column(Integer, nullable=False)
    features = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    schedules = relationship("Schedule", back_populates="vehicle")

class Schedule(Base):
    __tablename__ = "schedules"
    
    id = Column(IdType, primary_key=True, index=True)
    route_id = Column(IdType, ForeignKey("routes.id"), nullable=False, index=True)
    vehicle_id = Column(IdType, ForeignKey("vehicles.id"), nullable=False, index=True)
    departure_time = Column(String(5), nullable=False)  # HH:MM
    arrival_time = Column(String(5), nullable=False)
    days_of_week = Column(JSON, default=list)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    route = relationship("Route", back_populates="schedules")
    vehicle = relationship("Vehicle", back_populates="schedules")
    bookings = relationship("Booking", back_populates="schedule")

# ================================
# Bookings
# ================================
class Booking(Base):
    __tablename__ = "bookings"
    
    id = Column(IdType, primary_key=True, index=True)
    booking_reference = Column(String(32), unique=True, nullable=False, index=True)
    qr_code = Column(String(64), unique=True, nullable=False)
    user_id = Column(IdType, ForeignKey("users.id"), nullable=False, index=True)
    route_id = Column(IdType, ForeignKey("routes.id"), nullable=False)
    schedule_id = Column(IdType, ForeignKey("schedules.id"), nullable=False)
    vehicle_id = Column(IdType, ForeignKey("vehicles.id"), nullable=False)
    travel_date = Column(Date, nullable=False)
    seat_number = Column(String(20), nullable=False)
    fare = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    payment_status = Column(String(20), nullable=False, default="pending")
    payment_method = Column(String(20), default="card")
    
    # Passenger details
    passenger_name = Column(String(255))
    passenger_age = Column(Integer)
    passenger_gender = Column(String(10))
    passenger_id_number = Column(String(100))
    passenger_id_type = Column(String(30))
    special_requests = Column(Text)
    
    # Lifecycle audit
    cancellation_reason = Column(Text)
    cancelled_at = Column(DateTime(timezone=True))
    cancelled_by = Column(IdType, ForeignKey("users.id"))
    check_in_time = Column(DateTime(timezone=True))
    check_out_time = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    
    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="bookings")
    route = relationship("Route", back_populates="bookings")
    schedule = relationship("Schedule", back_populates="bookings")
    vehicle = relationship("Vehicle")
    
    __table_args__ = (
        # A seat can be held by at most one pending/confirmed booking per trip date
        Index(
            "uq_bookings_active_seat",
            "schedule_id", "travel_date", "seat_number",
            unique=True,
            postgresql_where=text("status IN ('pending', 'confirmed')"),
            sqlite_where=text("status IN ('pending', 'confirmed')"),
        ),
        Index("ix_bookings_user_status", "user_id", "status"),
        Index("ix_bookings_route_travel_date", "route_id", "travel_date"),
    )
