"""Personal-data lifecycle engine: subject erasure and export for the scouting app."""
