"""Game modules: progression, combat, raid and rewards."""
