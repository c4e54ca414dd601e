"""Building blocks shared by the venues and bookings apps: entities, value
objects, domain events, the message bus and units of work."""
