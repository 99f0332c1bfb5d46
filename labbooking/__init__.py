"""Lab booking service - labs, time slots and faculty bookings"""
