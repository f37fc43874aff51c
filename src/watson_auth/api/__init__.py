"""HTTP API for the Watson auth service."""
