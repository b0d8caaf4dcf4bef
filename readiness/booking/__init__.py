"""Investor meeting booking: availability, slots, bookings, calendar sync"""
