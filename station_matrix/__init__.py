"""Service/station compatibility matrix backend and editing engine."""
