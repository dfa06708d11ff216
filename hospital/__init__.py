"""
Hospital Management API

A FastAPI-based hospital management system: patients book appointments,
doctors manage their schedules and admins oversee everything, with JWT
authentication and role-based access control.
"""

__version__ = "1.0.0"
