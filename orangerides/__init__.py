"""Orange Rides marketplace backend."""
