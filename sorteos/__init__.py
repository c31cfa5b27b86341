"""
Sorteos: raffle administration and participant views over a hosted
Postgres database and auth service.
"""

__version__ = "1.0.0"
