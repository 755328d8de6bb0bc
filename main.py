"""
Vehicle Booking Backend
=======================
Rental and sale reservations over HTTP.
Run with: uvicorn main:app --reload  (apply migrations first: alembic upgrade head)
"""

import uvicorn

from vehicle_booking.api.app import create_app

app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
