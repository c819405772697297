"""
Campus Canteen Ordering Backend

Per-canteen menus, order placement with snapshot pricing, and a
priority-ordered kitchen queue with a server-enforced status workflow.
"""

__version__ = "1.0.0"
