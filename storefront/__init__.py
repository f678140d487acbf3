"""Storefront backend: orders, stock reservation and ePayco payments."""
