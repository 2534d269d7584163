"""Core building blocks of AirLink: errors, models, hashing, settings."""
