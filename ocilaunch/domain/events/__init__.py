"""Domain Event definitions.

Represents significant occurrences within the domain (API calls, waiter
arming) that other parts of the system might react to.
"""
