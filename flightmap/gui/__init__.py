"""PyQt5 front end: map view engine, aircraft layer, info overlay and host window."""
