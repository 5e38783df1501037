"""Domain services: access control, scheduling rules, and sprint lifecycle."""
