"""Venues app package.

Holds the venue read model used by the booking engine: the weekly
availability template, date exceptions and the hourly rate. The calendar
is stored as JSON documents on the venue row and evaluated by
``apps.venues.domain.availability.AvailabilityEngine``.
"""
