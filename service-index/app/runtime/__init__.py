"""Runtime helpers: socket activation and the metrics facade."""
