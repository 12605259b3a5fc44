"""BIOVERSE HTTP API."""
