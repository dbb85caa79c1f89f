"""Barbershop booking and QRIS payment backend."""
