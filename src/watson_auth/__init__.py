"""Wallet sign-in service for Ethereum accounts."""
