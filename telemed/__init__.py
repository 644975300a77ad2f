"""
Telemed Appointments

A FastAPI service for patients, doctors and providers: signup and login with
JWT bearer tokens, role-based access to patient and consultation listings,
and a public doctor directory.
"""

__version__ = "1.0.0"
