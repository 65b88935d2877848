# opd_pharmacy/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All hospital-scoped tables (patients, visits, pharmacy, sales) inherit from this."""
    pass
