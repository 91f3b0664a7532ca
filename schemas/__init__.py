"""Sheet table layouts and the row codec."""
