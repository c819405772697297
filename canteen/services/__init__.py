"""
Services Module

Business logic for the ordering backend:
    - access: role/capability policy and canteen scoping
    - directory / menu: canteen and menu catalog lookups
    - order_store / orders / lifecycle: order persistence and lifecycle engine
    - payment: gateway order creation (mock, Cashfree, Stripe)
"""
