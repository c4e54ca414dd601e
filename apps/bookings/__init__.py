"""Bookings app package.

This app holds the venue booking engine: admission of booking requests
against the venue calendar and the bookings already on it, expansion of
recurring requests into dated occurrences, and the booking lifecycle
driven by venue staff and payment notifications. Overlap protection
combines an in-process keyed lock with a conditional create that the
store re-checks inside its own transaction.
"""
