"""
Order fulfillment service: order lifecycle with exactly-once inventory
deduction and loyalty accrual.
"""
