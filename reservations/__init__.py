"""Court reservations: slot grid, availability and booking protocol."""
