"""
Trip Service

Fleet dispatch microservice: turns delivery orders into trips, gates dispatch
on vehicle capacity and aggregates fleet, fuel, cost, maintenance and driver
performance analytics.

Port: 8260
"""

__version__ = "1.0.0"
__service_name__ = "trip_service"
__service_port__ = 8260
