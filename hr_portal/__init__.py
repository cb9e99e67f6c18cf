"""HR Portal — employees, geofenced attendance, leave and tasks."""
