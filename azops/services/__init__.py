"""Services: credentials, VM lifecycle polling and fan-out."""
