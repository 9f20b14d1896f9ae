"""
Services module for business logic.

- domain/: order lifecycle, inventory deduction, availability, loyalty
"""
