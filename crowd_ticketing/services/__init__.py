"""Business logic services for the Crowd Ticketing platform."""
