"""Scheduling domain - lab slots, faculty bookings and their consistency rules"""
