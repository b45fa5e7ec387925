"""
Foodies POS backend API.

Order lifecycle, split payments, inventory depletion, table sessions and
offline order capture for restaurant terminals.
"""
