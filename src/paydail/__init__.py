"""Paydail - crypto deposits credited to naira balances."""

__version__ = "0.1.0"
