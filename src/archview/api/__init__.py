"""Clients for the account API: dataset fetches and environment persistence."""
