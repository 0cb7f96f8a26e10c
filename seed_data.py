#!/usr/bin/env python3

from decimal import Decimal

from smart_ticket.database import SessionLocal, init_db
from smart_ticket.models import Booking, Schedule, Vehicle, Route, User
from smart_ticket.auth.utils import get_password_hash
from smart_ticket.forecast.history import SYNTHETIC_ROUTES

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]
ALL_DAYS = WEEKDAYS + ["saturday", "sunday"]

def create_seed_data():
    init_db()
    db = SessionLocal()
    
    try:
        print("Creating seed data for Smart Ticket Tracker...")
        
        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Booking).delete()
        db.query(Schedule).delete()
        db.query(Vehicle).delete()
        db.query(Route).delete()
        db.query(User).delete()
        
        # 1. Users
        print("Creating users...")
        users = [
            User(name="System Admin", email="admin@smartticket.local",
                 password=get_password_hash("admin123"), role="admin"),
            User(name="Demo Rider", email="rider@smartticket.local",
                 password=get_password_hash("rider123"), role="user"),
        ]
        db.add_all(users)
        db.flush()
        
        # 2. Routes, named after the forecast series so predictions line up
        print("Creating routes...")
        endpoints = [
            ("Central Station", "Airport", Decimal("35.50"), Decimal("45.00")),
            ("City Center", "IT Hub", Decimal("18.20"), Decimal("25.00")),
            ("University", "Mall District", Decimal("9.80"), Decimal("15.00")),
            ("Residential Area", "Business District", Decimal("12.40"), Decimal("20.00")),
        ]
        routes = [
            Route(name=name, transport_type="bus", start_location=start, end_location=end,
                  distance_km=distance, base_fare=fare)
            for name, (start, end, distance, fare) in zip(SYNTHETIC_ROUTES, endpoints)
        ]
        db.add_all(routes)
        db.flush()
        
        # 3. Vehicles
        print("Creating vehicles...")
        vehicles = [
            Vehicle(vehicle_code=f"BUS{index:03d}", vehicle_type="bus", capacity=capacity,
                    features=["ac", "wifi"] if capacity > 50 else ["ac"])
            for index, capacity in enumerate([60, 50, 40, 55], start=1)
        ]
        db.add_all(vehicles)
        db.flush()
        
        # 4. Schedules: morning and evening runs per route
        print("Creating schedules...")
        schedules = []
        for route, vehicle in zip(routes, vehicles):
            schedules.append(Schedule(route_id=route.id, vehicle_id=vehicle.id,
                                      departure_time="07:30", arrival_time="08:30", days_of_week=WEEKDAYS))
            schedules.append(Schedule(route_id=route.id, vehicle_id=vehicle.id,
                                      departure_time="17:30", arrival_time="18:30", days_of_week=ALL_DAYS))
        db.add_all(schedules)
        
        db.commit()
        print(f"Seeded {len(users)} users, {len(routes)} routes, {len(vehicles)} vehicles, {len(schedules)} schedules")
        
    except Exception as e:
        print(f"Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
