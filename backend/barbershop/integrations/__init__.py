"""Clients for the payment gateway and the external calendar."""
