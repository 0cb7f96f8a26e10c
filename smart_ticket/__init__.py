"""Smart Ticket Tracker - transport booking and demand forecasting API."""

__version__ = "1.0.0"
